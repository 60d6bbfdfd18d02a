from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies.auth import get_actor, get_current_user
from app.dependencies.registrations import get_registration_lifecycle, get_registration_store
from app.schemas.common import MessageOut
from app.schemas.registration import (
    RegistrationCreate,
    RegistrationDetailOut,
    RegistrationOut,
    RegistrationPageOut,
    RegistrationScoreIn,
    RegistrationStatusLiteral,
    RegistrationStatusUpdate,
)
from app.services import access
from app.services.access import Actor
from app.services.registration_errors import RegistrationNotFoundError
from app.services.registration_lifecycle import RegistrationLifecycle, StatusChange
from app.services.registrations import RegistrationStore


router = APIRouter(prefix="/registrations", tags=["registrations"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=RegistrationOut, status_code=status.HTTP_201_CREATED)
def create_registration(
    payload: RegistrationCreate,
    actor: Actor = Depends(get_actor),
    lifecycle: RegistrationLifecycle = Depends(get_registration_lifecycle),
):
    return lifecycle.register(
        actor,
        interview_id=payload.interview_id,
        slot_id=payload.slot_id,
        resume_url=payload.resume_url,
        answers=payload.answers,
        notes=payload.notes,
    )


@router.get("", response_model=RegistrationPageOut)
def list_registrations(
    interview_id: int | None = Query(default=None, gt=0),
    status_filter: RegistrationStatusLiteral | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=RegistrationStore.DEFAULT_PAGE_SIZE, ge=1),
    actor: Actor = Depends(get_actor),
    store: RegistrationStore = Depends(get_registration_store),
):
    access.require_staff(actor)
    result = store.list_registrations(
        interview_id=interview_id,
        status=status_filter,
        interviewer_id=None if actor.is_admin else actor.user_id,
        page=page,
        page_size=page_size,
    )
    return RegistrationPageOut(
        items=[RegistrationDetailOut.model_validate(r) for r in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/my", response_model=list[RegistrationDetailOut])
def list_my_registrations(
    status_filter: RegistrationStatusLiteral | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    store: RegistrationStore = Depends(get_registration_store),
):
    return store.find_by_user_id(actor.user_id, status=status_filter)


@router.get("/{registration_id}", response_model=RegistrationDetailOut)
def get_registration(
    registration_id: int,
    actor: Actor = Depends(get_actor),
    store: RegistrationStore = Depends(get_registration_store),
    db: Session = Depends(get_db),
):
    registration = store.find_by_id_with_details(registration_id)
    if registration is None:
        raise RegistrationNotFoundError()
    access.require_can_view(db, actor, registration)
    return registration


@router.put("/{registration_id}/cancel", response_model=MessageOut)
def cancel_registration(
    registration_id: int,
    actor: Actor = Depends(get_actor),
    lifecycle: RegistrationLifecycle = Depends(get_registration_lifecycle),
):
    lifecycle.cancel(actor, registration_id)
    return {"message": "Registration cancelled successfully"}


@router.put("/{registration_id}/status", response_model=MessageOut)
def update_registration_status(
    registration_id: int,
    payload: RegistrationStatusUpdate,
    actor: Actor = Depends(get_actor),
    lifecycle: RegistrationLifecycle = Depends(get_registration_lifecycle),
):
    result = lifecycle.change_status(actor, registration_id, payload.status)
    if result == StatusChange.UNCHANGED:
        return {"message": "Registration status unchanged"}
    return {"message": "Registration status updated successfully"}


@router.put("/{registration_id}/score", response_model=MessageOut)
def score_registration(
    registration_id: int,
    payload: RegistrationScoreIn,
    actor: Actor = Depends(get_actor),
    lifecycle: RegistrationLifecycle = Depends(get_registration_lifecycle),
):
    lifecycle.score(actor, registration_id, payload.score, payload.feedback)
    return {"message": "Score submitted successfully"}


@router.post("/{registration_id}/announce", response_model=MessageOut)
def announce_result(
    registration_id: int,
    actor: Actor = Depends(get_actor),
    lifecycle: RegistrationLifecycle = Depends(get_registration_lifecycle),
):
    lifecycle.announce_result(actor, registration_id)
    return {"message": "Result announced successfully"}
