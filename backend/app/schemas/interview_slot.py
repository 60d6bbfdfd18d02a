import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InterviewSlotCreate(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    capacity: int = Field(ge=1)
    classroom_id: Optional[int] = Field(default=None, gt=0)
    interviewer_ids: list[int] = Field(default_factory=list)


class InterviewSlotUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    classroom_id: Optional[int] = Field(default=None, gt=0)
    interviewer_ids: Optional[list[int]] = None


class InterviewSlotOut(BaseModel):
    id: int
    interview_id: int
    classroom_id: Optional[int] = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    capacity: int
    booked_count: int
    available: int
    interviewer_ids: list[int] = []
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)
