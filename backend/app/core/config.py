# app/core/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def env_csv(name: str) -> list[str]:
    """Comma-separated env var, de-duplicated with order kept."""
    out: list[str] = []
    for part in (os.getenv(name) or "").split(","):
        part = part.strip()
        if part and part not in out:
            out.append(part)
    return out


LOCAL_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


class Settings:
    def __init__(self) -> None:
        self.ENV = env_str("ENV", "dev").lower()  # dev | prod
        if self.ENV != "prod":
            # Prod reads the real environment only; .env is a local convenience.
            load_dotenv()

        # --- database ---
        # A full DATABASE_URL (sqlite for local runs, compose) overrides the DB_* parts.
        self.DATABASE_URL = env_str("DATABASE_URL")
        self.DB_HOST = env_str("DB_HOST")
        self.DB_PORT = env_str("DB_PORT", "5432")
        self.DB_NAME = env_str("DB_NAME")
        self.DB_APP_USER = env_str("DB_APP_USER")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_MIGRATOR_USER = env_str("DB_MIGRATOR_USER")
        self.DB_MIGRATOR_PASSWORD = os.getenv("DB_MIGRATOR_PASSWORD", "")
        self.DB_SSLMODE = env_str("DB_SSLMODE", "require").lower()

        # --- http ---
        origins = env_csv("CORS_ORIGINS")
        if self.ENV != "prod":
            origins += [o for o in LOCAL_ORIGINS if o not in origins]
        self.CORS_ORIGINS = origins

        # --- bearer tokens (issued by the account service; we only verify) ---
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = env_str("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 15)

        # --- registrations ---
        # Announced scores at or above this value count as a pass.
        self.RESULT_PASS_THRESHOLD = env_int("RESULT_PASS_THRESHOLD", 60)
        self.REGISTRATIONS_MAX_PAGE_SIZE = env_int("REGISTRATIONS_MAX_PAGE_SIZE", 100)

        # --- candidate notifications ---
        self.EMAIL_ENABLED = str_to_bool(os.getenv("EMAIL_ENABLED"), default=False)
        self.EMAIL_PROVIDER = env_str("EMAIL_PROVIDER", "resend").lower()  # resend | ses | gmail (smtp)
        self.FROM_EMAIL = env_str("FROM_EMAIL")
        self.RESEND_API_KEY = env_str("RESEND_API_KEY")

        self.SMTP_HOST = env_str("SMTP_HOST")
        self.SMTP_PORT = env_int("SMTP_PORT", 587)
        self.SMTP_USERNAME = env_str("SMTP_USERNAME")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_FROM_EMAIL = env_str("SMTP_FROM_EMAIL")
        self.SMTP_USE_TLS = str_to_bool(os.getenv("SMTP_USE_TLS"), default=True)
        self.SMTP_USE_SSL = str_to_bool(os.getenv("SMTP_USE_SSL"), default=False)

        # SES delivery and the SQS-backed Celery broker share the region.
        self.AWS_REGION = env_str("AWS_REGION")
        self.NOTIFICATIONS_SQS_QUEUE_URL = env_str("NOTIFICATIONS_SQS_QUEUE_URL")

        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        required = {"JWT_SECRET": self.JWT_SECRET, "CORS_ORIGINS": self.CORS_ORIGINS}
        if not self.DATABASE_URL:
            required.update(
                DB_HOST=self.DB_HOST,
                DB_NAME=self.DB_NAME,
                DB_APP_USER=self.DB_APP_USER,
                DB_APP_PASSWORD=self.DB_APP_PASSWORD,
            )
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if any(local in self.CORS_ORIGINS for local in LOCAL_ORIGINS):
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")
        if not 0 <= self.RESULT_PASS_THRESHOLD <= 100:
            raise RuntimeError("RESULT_PASS_THRESHOLD must be between 0 and 100")

        missing = [name for name, value in required.items() if not value]
        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    def _postgres_url(self, user: str, password: str) -> str:
        return (
            f"postgresql+psycopg2://{user}:{quote_plus(password)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or self._postgres_url(self.DB_APP_USER, self.DB_APP_PASSWORD)

    @property
    def migrations_database_url(self) -> str:
        return self.DATABASE_URL or self._postgres_url(self.DB_MIGRATOR_USER, self.DB_MIGRATOR_PASSWORD)


settings = Settings()


def require_jwt_secret() -> None:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set")
