import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import require_jwt_secret, settings
from app.core.database import check_db_connection
from app.routes.registrations import router as registrations_router
from app.routes.slots import admin_router as slots_admin_router
from app.routes.slots import router as slots_router
from app.services.registration_errors import ErrorKind, RegistrationError

logger = logging.getLogger(__name__)

require_jwt_secret()

app = FastAPI(title="Interview Registrations")
logger.info(
    "Startup: email_enabled=%s provider=%s pass_threshold=%s broker=%s",
    settings.EMAIL_ENABLED,
    settings.EMAIL_PROVIDER or "resend",
    settings.RESULT_PASS_THRESHOLD,
    "sqs" if settings.NOTIFICATIONS_SQS_QUEUE_URL else "inline",
)

# Every error body is {"error": message, "code": CODE} plus optional "details".
_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}

# Domain rejections: the status follows the kind, `code` names it.
_DOMAIN_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INVALID_TRANSITION: 400,
    ErrorKind.FORBIDDEN: 403,
}


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return body


@app.exception_handler(RegistrationError)
def registration_error_handler(request: Request, exc: RegistrationError):
    logger.info(
        "Rejected %s %s: %s (%s)",
        request.method,
        request.url.path,
        exc.kind.value,
        exc.message,
    )
    return JSONResponse(status_code=_DOMAIN_STATUS.get(exc.kind, 400), content=_error_body(exc.kind.value, exc.message))


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    details = None
    if isinstance(detail, dict):
        message = detail.get("message") if isinstance(detail.get("message"), str) else ""
        details = detail.get("details") if isinstance(detail.get("details"), dict) else None
    else:
        message = "" if detail is None else str(detail)

    code = _HTTP_ERROR_CODES.get(int(exc.status_code), "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(code, message or "Request failed", details),
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic puts raw exception objects in ctx; stringify them for JSON.
    out = []
    for err in exc.errors():
        item = dict(err)
        if item.get("ctx"):
            item["ctx"] = {k: str(v) for k, v in item["ctx"].items()}
        out.append(item)
    return out


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_ERROR", "Invalid request payload", {"errors": jsonable_errors(exc)}),
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(registrations_router)
app.include_router(slots_router)
app.include_router(slots_admin_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/health/ready")
def readiness_check():
    try:
        check_db_connection()
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ready"}
