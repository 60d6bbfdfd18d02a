from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.base import Base


class InterviewStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"
    COMPLETED = "completed"


class Interview(Base):
    """
    An interview posting. Owned by the postings service; registrations only read it.
    """

    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    position = Column(String(100), nullable=False)
    department = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)

    interview_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Aggregate headcount shown on the posting; per-slot capacity is what registrations enforce.
    capacity = Column(Integer, nullable=False, server_default="0", default=0)
    status = Column(String(20), nullable=False, server_default=InterviewStatus.DRAFT.value, index=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    slots = relationship(
        "InterviewSlot",
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="InterviewSlot.date",
    )
    registrations = relationship("Registration", back_populates="interview", passive_deletes=True)
