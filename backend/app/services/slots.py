from __future__ import annotations

import logging
from datetime import date, time
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models.interview import Interview
from app.models.interview_slot import InterviewSlot, slot_interviewers
from app.models.registration import Registration, RegistrationStatus
from app.models.user import User, UserRole
from app.services import access
from app.services.access import Actor
from app.services.registration_errors import (
    CapacityBelowBookedError,
    ConflictError,
    InterviewNotFoundError,
    SlotInUseError,
)
from app.services.slot_ledger import SlotLedger

logger = logging.getLogger(__name__)


class SlotService:
    """
    Admin-side slot logistics. booked_count is never written here; capacity
    edits lock the row so they can't race a concurrent reservation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = SlotLedger(db)

    def list_for_interview(self, interview_id: int, *, available_only: bool = False) -> list[InterviewSlot]:
        if self.db.get(Interview, interview_id) is None:
            raise InterviewNotFoundError()
        stmt = (
            select(InterviewSlot)
            .where(InterviewSlot.interview_id == interview_id)
            .options(selectinload(InterviewSlot.interviewers))
            .order_by(InterviewSlot.date, InterviewSlot.start_time, InterviewSlot.id)
        )
        if available_only:
            stmt = stmt.where(InterviewSlot.booked_count < InterviewSlot.capacity)
        return list(self.db.execute(stmt).scalars().all())

    def list_for_interviewer(self, actor: Actor) -> list[InterviewSlot]:
        """Slots the caller is assigned to, across interviews, soonest first."""
        access.require_staff(actor)
        stmt = (
            select(InterviewSlot)
            .join(slot_interviewers, slot_interviewers.c.slot_id == InterviewSlot.id)
            .where(slot_interviewers.c.user_id == actor.user_id)
            .options(selectinload(InterviewSlot.interviewers))
            .order_by(InterviewSlot.date, InterviewSlot.start_time, InterviewSlot.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def create(
        self,
        actor: Actor,
        interview_id: int,
        *,
        date: date,
        start_time: time,
        end_time: time,
        capacity: int,
        classroom_id: int | None = None,
        interviewer_ids: list[int] | None = None,
    ) -> InterviewSlot:
        access.require_admin(actor)
        if self.db.get(Interview, interview_id) is None:
            raise InterviewNotFoundError()
        _check_window(start_time, end_time)

        slot = InterviewSlot(
            interview_id=interview_id,
            classroom_id=classroom_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            capacity=int(capacity),
            booked_count=0,
        )
        slot.interviewers = self._resolve_interviewers(interviewer_ids or [])
        self.db.add(slot)
        self.db.commit()
        self.db.refresh(slot)
        logger.info("Slot created: id=%s interview_id=%s capacity=%s", slot.id, interview_id, slot.capacity)
        return slot

    def update(self, actor: Actor, slot_id: int, data: dict[str, Any]) -> InterviewSlot:
        access.require_admin(actor)
        try:
            slot = self.ledger.lock_slot(slot_id)

            if "capacity" in data and data["capacity"] is not None:
                capacity = int(data["capacity"])
                if capacity < int(slot.booked_count or 0):
                    raise CapacityBelowBookedError()
                slot.capacity = capacity

            for key in ("classroom_id", "date", "start_time", "end_time"):
                if key in data:
                    setattr(slot, key, data[key])
            _check_window(slot.start_time, slot.end_time)

            if "interviewer_ids" in data and data["interviewer_ids"] is not None:
                slot.interviewers = self._resolve_interviewers(data["interviewer_ids"])

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(slot)
        logger.info("Slot updated: id=%s fields=%s", slot_id, sorted(data.keys()))
        return slot

    def delete(self, actor: Actor, slot_id: int) -> None:
        """
        Refuses while any live registration holds a seat. Cancelled registrations
        keep their row; the FK sets their slot_id to NULL.
        """
        access.require_admin(actor)
        try:
            slot = self.ledger.lock_slot(slot_id)
            live = self.db.execute(
                select(Registration.id)
                .where(
                    Registration.slot_id == slot_id,
                    Registration.status != RegistrationStatus.CANCELLED.value,
                )
                .limit(1)
            ).first()
            if live is not None or int(slot.booked_count or 0) > 0:
                raise SlotInUseError()

            # Detach cancelled rows explicitly so sqlite (no FK enforcement by default) matches postgres.
            for registration in self.db.execute(
                select(Registration).where(Registration.slot_id == slot_id)
            ).scalars():
                registration.slot_id = None
            self.db.delete(slot)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Slot deleted: id=%s", slot_id)

    def _resolve_interviewers(self, interviewer_ids: list[int]) -> list[User]:
        wanted = sorted({int(i) for i in interviewer_ids})
        if not wanted:
            return []
        users = list(self.db.execute(select(User).where(User.id.in_(wanted))).scalars().all())
        staff_roles = {UserRole.INTERVIEWER.value, UserRole.ADMIN.value}
        valid = {u.id for u in users if u.role in staff_roles}
        unknown = [i for i in wanted if i not in valid]
        if unknown:
            raise ConflictError(f"Not interviewers: {', '.join(str(i) for i in unknown)}")
        return sorted(users, key=lambda u: u.id)


def _check_window(start_time: time | None, end_time: time | None) -> None:
    if start_time is not None and end_time is not None and end_time <= start_time:
        raise ConflictError("end_time must be after start_time")
