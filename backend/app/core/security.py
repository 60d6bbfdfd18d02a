# app/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings

ACCESS_PURPOSE = "access"


def _secret() -> str:
    secret = (settings.JWT_SECRET or "").strip()
    if not secret:
        raise RuntimeError("JWT_SECRET must be set (auth is required).")
    return secret


def create_access_token(subject: str, *, expires_minutes: int | None = None) -> str:
    """
    Mint a bearer token for `subject` (the user's email). Production tokens come
    from the account service; this is for seeding scripts and tests.
    """
    issued = datetime.now(timezone.utc)
    ttl = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": subject,
        "purpose": ACCESS_PURPOSE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(claims, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    # JWTError propagates; callers map it.
    return jwt.decode(token, _secret(), algorithms=[settings.JWT_ALGORITHM])


def verify_token_purpose(token: str, expected_purpose: str) -> dict[str, Any]:
    try:
        claims = decode_token(token)
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
    if claims.get("purpose") != expected_purpose:
        raise ValueError("Invalid token purpose")
    return claims
