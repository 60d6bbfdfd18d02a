from __future__ import annotations

import logging

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key
from sqlalchemy.sql import func

from app.models.interview_slot import InterviewSlot
from app.services.registration_errors import SlotFullError, SlotNotFoundError

logger = logging.getLogger(__name__)


class SlotLedger:
    """
    Sole writer of InterviewSlot.booked_count.

    Both primitives are single conditional UPDATE statements and never commit;
    they run inside whatever transaction the caller has open. Success is read
    from the affected row count, so two writers racing for the last seat cannot
    both win: the second UPDATE re-evaluates `booked_count < capacity` after the
    first one's row lock is released.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_slot(self, slot_id: int) -> InterviewSlot | None:
        return self.db.get(InterviewSlot, slot_id)

    def lock_slot(self, slot_id: int) -> InterviewSlot:
        slot = (
            self.db.execute(
                select(InterviewSlot)
                .where(InterviewSlot.id == slot_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .first()
        )
        if not slot:
            raise SlotNotFoundError()
        return slot

    def reserve(self, slot_id: int) -> None:
        result = self.db.execute(
            update(InterviewSlot)
            .where(
                InterviewSlot.id == slot_id,
                InterviewSlot.booked_count < InterviewSlot.capacity,
            )
            .values(booked_count=InterviewSlot.booked_count + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Either missing or at capacity; callers that care check existence first.
            logger.info("Slot reservation rejected: slot_id=%s", slot_id)
            raise SlotFullError()
        self._expire_cached(slot_id)

    def release(self, slot_id: int) -> None:
        result = self.db.execute(
            update(InterviewSlot)
            .where(InterviewSlot.id == slot_id)
            .values(
                booked_count=case(
                    (InterviewSlot.booked_count > 0, InterviewSlot.booked_count - 1),
                    else_=0,
                ),
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SlotNotFoundError()
        self._expire_cached(slot_id)

    def _expire_cached(self, slot_id: int) -> None:
        # The UPDATE bypassed the identity map; make a loaded slot re-read its counter.
        cached = self.db.identity_map.get(identity_key(InterviewSlot, slot_id))
        if cached is not None:
            self.db.expire(cached, ["booked_count", "updated_at"])
