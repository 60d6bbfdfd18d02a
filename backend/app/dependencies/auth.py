# app/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import verify_token_purpose
from app.models.user import User
from app.services.access import Actor

bearer_scheme = HTTPBearer(auto_error=False)


def _reject(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _subject_email(token: str) -> str:
    try:
        claims = verify_token_purpose(token, expected_purpose="access")
    except ValueError as exc:
        raise _reject("Invalid or expired token") from exc
    email = str(claims.get("sub") or "").strip().lower()
    if not email:
        raise _reject("Invalid or expired token")
    return email


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolves the bearer access token to an active User. Tokens are minted by the
    account service; this side only verifies them and loads the user row.
    """
    if creds is None or creds.scheme.lower() != "bearer":
        raise _reject("Missing Authorization header")

    email = _subject_email(creds.credentials)
    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if user is None:
        raise _reject("User not found")
    if not user.is_active:
        raise _reject("User is inactive")
    return user


def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(user)
