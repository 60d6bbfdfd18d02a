from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from app.core.base import Base


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_SHOW = "no_show"


REGISTRATION_STATUSES = tuple(s.value for s in RegistrationStatus)

_LIVE_PREDICATE = text("status <> 'cancelled'")


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    interview_id = Column(
        Integer,
        ForeignKey("interviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slot_id = Column(
        Integer,
        ForeignKey("interview_slots.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status = Column(String(20), nullable=False, server_default=RegistrationStatus.PENDING.value, index=True)

    resume_url = Column(String(500), nullable=True)
    answers = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    interview_score = Column(Integer, nullable=True)
    interview_feedback = Column(Text, nullable=True)
    result_announced = Column(Boolean, nullable=False, server_default="false", default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="registrations")
    interview = relationship("Interview", back_populates="registrations")
    slot = relationship("InterviewSlot")

    __table_args__ = (
        # One live (non-cancelled) registration per candidate per interview.
        Index(
            "uq_registrations_live_user_interview",
            "user_id",
            "interview_id",
            unique=True,
            postgresql_where=_LIVE_PREDICATE,
            sqlite_where=_LIVE_PREDICATE,
        ),
        CheckConstraint(
            "interview_score IS NULL OR (interview_score >= 0 AND interview_score <= 100)",
            name="ck_registrations_score_range",
        ),
    )

    @property
    def is_live(self) -> bool:
        return self.status != RegistrationStatus.CANCELLED.value
