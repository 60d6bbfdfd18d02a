from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.dependencies.auth import get_actor
from app.dependencies.registrations import get_slot_service
from app.schemas.common import MessageOut
from app.schemas.interview_slot import InterviewSlotCreate, InterviewSlotOut, InterviewSlotUpdate
from app.services.access import Actor
from app.services.slots import SlotService


# Slot browsing. Per-interview listings are public; /slots/mine needs a staff token.
router = APIRouter(prefix="/interviews", tags=["slots"])

# Admin logistics.
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/slots/mine", response_model=list[InterviewSlotOut])
def list_my_slots(actor: Actor = Depends(get_actor), service: SlotService = Depends(get_slot_service)):
    return service.list_for_interviewer(actor)


@router.get("/{interview_id}/slots", response_model=list[InterviewSlotOut])
def list_slots(interview_id: int, service: SlotService = Depends(get_slot_service)):
    return service.list_for_interview(interview_id)


@router.get("/{interview_id}/available-slots", response_model=list[InterviewSlotOut])
def list_available_slots(interview_id: int, service: SlotService = Depends(get_slot_service)):
    return service.list_for_interview(interview_id, available_only=True)


@admin_router.post(
    "/interviews/{interview_id}/slots",
    response_model=InterviewSlotOut,
    status_code=status.HTTP_201_CREATED,
)
def create_slot(
    interview_id: int,
    payload: InterviewSlotCreate,
    actor: Actor = Depends(get_actor),
    service: SlotService = Depends(get_slot_service),
):
    return service.create(
        actor,
        interview_id,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        capacity=payload.capacity,
        classroom_id=payload.classroom_id,
        interviewer_ids=payload.interviewer_ids,
    )


@admin_router.put("/slots/{slot_id}", response_model=InterviewSlotOut)
def update_slot(
    slot_id: int,
    payload: InterviewSlotUpdate,
    actor: Actor = Depends(get_actor),
    service: SlotService = Depends(get_slot_service),
):
    return service.update(actor, slot_id, payload.model_dump(exclude_unset=True))


@admin_router.delete("/slots/{slot_id}", response_model=MessageOut)
def delete_slot(
    slot_id: int,
    actor: Actor = Depends(get_actor),
    service: SlotService = Depends(get_slot_service),
):
    service.delete(actor, slot_id)
    return {"message": "Interview slot deleted successfully"}
