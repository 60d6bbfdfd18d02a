from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from app.models.interview_slot import slot_interviewers
from app.models.registration import Registration
from app.models.user import User, UserRole
from app.services.registration_errors import ForbiddenError


@dataclass(frozen=True)
class Actor:
    """Who is calling, as far as registration rules care."""

    user_id: int
    role: str

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=int(user.id), role=(user.role or UserRole.USER.value).strip().lower())

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_interviewer(self) -> bool:
        return self.role == UserRole.INTERVIEWER.value

    @property
    def is_staff(self) -> bool:
        return self.is_admin or self.is_interviewer


def is_assigned_interviewer(db: Session, slot_id: int | None, user_id: int) -> bool:
    if not slot_id:
        return False
    stmt = select(
        exists().where(
            slot_interviewers.c.slot_id == slot_id,
            slot_interviewers.c.user_id == user_id,
        )
    )
    return bool(db.execute(stmt).scalar())


def require_admin(actor: Actor, message: str = "Admin access required") -> None:
    if not actor.is_admin:
        raise ForbiddenError(message)


def require_staff(actor: Actor, message: str = "Interviewer or admin access required") -> None:
    if not actor.is_staff:
        raise ForbiddenError(message)


def require_owner_or_admin(actor: Actor, registration: Registration, message: str) -> None:
    if actor.is_admin or registration.user_id == actor.user_id:
        return
    raise ForbiddenError(message)


def require_assigned_or_admin(db: Session, actor: Actor, registration: Registration, message: str) -> None:
    if actor.is_admin:
        return
    if actor.is_interviewer and is_assigned_interviewer(db, registration.slot_id, actor.user_id):
        return
    raise ForbiddenError(message)


def require_can_view(db: Session, actor: Actor, registration: Registration) -> None:
    message = "Not authorized to view this registration"
    if actor.is_admin or registration.user_id == actor.user_id:
        return
    require_assigned_or_admin(db, actor, registration, message)
