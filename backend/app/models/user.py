# app/models/user.py
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from app.core.base import Base


class UserRole(str, Enum):
    USER = "user"
    INTERVIEWER = "interviewer"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    # user (candidate) | interviewer | admin
    role = Column(String(20), nullable=False, server_default=UserRole.USER.value, default=UserRole.USER.value)
    phone = Column(String(30), nullable=True)

    is_active = Column(Boolean, nullable=False, server_default="true", default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # candidate → registrations (slot counters are owned by the ledger, so no ORM cascade here)
    registrations = relationship(
        "Registration",
        back_populates="user",
        passive_deletes=True,
    )
