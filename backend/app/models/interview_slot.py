from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.base import Base


# Interviewers assigned to a slot. Scoring rights are a membership test against this table.
slot_interviewers = Table(
    "slot_interviewers",
    Base.metadata,
    Column("slot_id", Integer, ForeignKey("interview_slots.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class InterviewSlot(Base):
    __tablename__ = "interview_slots"

    id = Column(Integer, primary_key=True, index=True)

    interview_id = Column(
        Integer,
        ForeignKey("interviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Classrooms are managed elsewhere; we only keep the reference.
    classroom_id = Column(Integer, nullable=True, index=True)

    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    capacity = Column(Integer, nullable=False)
    # Written only through SlotLedger.reserve/release.
    booked_count = Column(Integer, nullable=False, server_default="0", default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    interview = relationship("Interview", back_populates="slots")
    interviewers = relationship("User", secondary=slot_interviewers, order_by="User.id")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_interview_slots_capacity_positive"),
        CheckConstraint("booked_count >= 0", name="ck_interview_slots_booked_nonnegative"),
        CheckConstraint("booked_count <= capacity", name="ck_interview_slots_booked_within_capacity"),
    )

    @property
    def interviewer_ids(self) -> list[int]:
        return [u.id for u in self.interviewers]

    @property
    def available(self) -> int:
        return max(0, int(self.capacity or 0) - int(self.booked_count or 0))
