from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.interview_slot import InterviewSlotOut


RegistrationStatusLiteral = Literal["pending", "confirmed", "cancelled", "completed", "failed", "no_show"]


class RegistrationCreate(BaseModel):
    interview_id: int = Field(gt=0)
    slot_id: Optional[int] = Field(default=None, gt=0)
    resume_url: Optional[str] = Field(default=None, max_length=500)
    answers: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatusLiteral


class RegistrationScoreIn(BaseModel):
    score: int = Field(ge=0, le=100)
    feedback: Optional[str] = Field(default=None, max_length=2000)


class CandidateOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InterviewSummaryOut(BaseModel):
    id: int
    title: str
    position: str
    location: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class RegistrationOut(BaseModel):
    id: int
    user_id: int
    interview_id: int
    slot_id: Optional[int] = None
    status: str
    resume_url: Optional[str] = None
    answers: Optional[dict[str, Any]] = None
    notes: Optional[str] = None
    interview_score: Optional[int] = None
    interview_feedback: Optional[str] = None
    result_announced: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationDetailOut(RegistrationOut):
    user: Optional[CandidateOut] = None
    interview: Optional[InterviewSummaryOut] = None
    slot: Optional[InterviewSlotOut] = None


class RegistrationPageOut(BaseModel):
    items: list[RegistrationDetailOut]
    total: int
    page: int
    page_size: int
    total_pages: int
