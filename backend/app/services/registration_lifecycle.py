from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.interview import Interview, InterviewStatus
from app.models.registration import REGISTRATION_STATUSES, Registration, RegistrationStatus
from app.models.user import User
from app.services import access
from app.services.access import Actor
from app.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    NullNotificationDispatcher,
    registration_confirmation,
    result_announced,
)
from app.services.registration_errors import (
    AlreadyCancelledError,
    AlreadyRegisteredError,
    InterviewNotFoundError,
    InterviewNotOpenError,
    RegistrationNotFoundError,
    ResultNotScoredError,
    ResultOnCancelledError,
    ScoreOutOfRangeError,
    ScoringNotAllowedError,
    SlotMismatchError,
    SlotNotFoundError,
    UnknownStatusError,
)
from app.services.registrations import RegistrationStore
from app.services.slot_ledger import SlotLedger

logger = logging.getLogger(__name__)

CANCELLED = RegistrationStatus.CANCELLED.value
SCORABLE_STATUSES = frozenset({RegistrationStatus.CONFIRMED.value, RegistrationStatus.COMPLETED.value})


class StatusChange(str, Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"


class RegistrationLifecycle:
    """
    The only component that combines slot-ledger and registration-row writes.

    Every public operation is one transaction on the injected session: it either
    commits every write it made or rolls all of them back. Notification events
    collected during an operation are published only after the commit succeeds.
    """

    def __init__(
        self,
        db: Session,
        *,
        dispatcher: NotificationDispatcher | None = None,
        pass_threshold: int = 60,
        max_page_size: int = 100,
    ):
        self.db = db
        self.ledger = SlotLedger(db)
        self.store = RegistrationStore(db, max_page_size=max_page_size)
        self.dispatcher = dispatcher or NullNotificationDispatcher()
        self.pass_threshold = int(pass_threshold)
        self._outbox: list[NotificationEvent] = []

    # ------------------------------------------------------------------
    # Transaction scope
    # ------------------------------------------------------------------
    @contextmanager
    def _transaction(self) -> Iterator[None]:
        self._outbox = []
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._outbox = []
            raise
        events, self._outbox = self._outbox, []
        for event in events:
            self._publish(event)

    def _publish(self, event: NotificationEvent) -> None:
        try:
            self.dispatcher.publish(event)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Notification dispatch failed after commit: purpose=%s registration_id=%s",
                event.purpose,
                event.registration_id,
            )

    def _load_registration(self, registration_id: int) -> Registration:
        registration = self.store.find_by_id(registration_id, for_update=True)
        if registration is None:
            raise RegistrationNotFoundError()
        return registration

    def _lock_candidate(self, user_id: int) -> None:
        # Serializes concurrent Register calls by the same candidate.
        self.db.execute(select(User.id).where(User.id == user_id).with_for_update()).first()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def register(
        self,
        actor: Actor,
        *,
        interview_id: int,
        slot_id: int | None = None,
        resume_url: str | None = None,
        answers: dict[str, Any] | None = None,
        notes: str | None = None,
    ) -> Registration:
        with self._transaction():
            interview = self.db.get(Interview, interview_id)
            if interview is None:
                raise InterviewNotFoundError()
            if interview.status != InterviewStatus.PUBLISHED.value:
                raise InterviewNotOpenError()

            self._lock_candidate(actor.user_id)
            if self.store.find_by_candidate_and_interview(actor.user_id, interview_id) is not None:
                raise AlreadyRegisteredError()

            if slot_id:
                slot = self.ledger.get_slot(slot_id)
                if slot is None:
                    raise SlotNotFoundError()
                if slot.interview_id != interview_id:
                    raise SlotMismatchError()
                self.ledger.reserve(slot_id)

            try:
                registration = self.store.create(
                    user_id=actor.user_id,
                    interview_id=interview_id,
                    slot_id=slot_id,
                    resume_url=resume_url,
                    answers=answers,
                    notes=notes,
                )
            except IntegrityError as exc:
                # A concurrent duplicate committed between our check and insert.
                raise AlreadyRegisteredError() from exc

            self._outbox.append(registration_confirmation(registration.id))

        logger.info(
            "Registration created: id=%s user_id=%s interview_id=%s slot_id=%s",
            registration.id,
            actor.user_id,
            interview_id,
            slot_id,
        )
        self.db.refresh(registration)
        return registration

    def cancel(self, actor: Actor, registration_id: int) -> Registration:
        with self._transaction():
            registration = self._load_registration(registration_id)
            access.require_owner_or_admin(actor, registration, "Not authorized to cancel this registration")
            if not registration.is_live:
                raise AlreadyCancelledError()

            if registration.slot_id:
                self.ledger.release(registration.slot_id)
            self.store.update_status(registration, CANCELLED)

        logger.info("Registration cancelled: id=%s by user_id=%s", registration_id, actor.user_id)
        self.db.refresh(registration)
        return registration

    def change_status(self, actor: Actor, registration_id: int, new_status: str) -> StatusChange:
        access.require_staff(actor)
        status = (new_status or "").strip().lower()
        if status not in REGISTRATION_STATUSES:
            raise UnknownStatusError(f"Unknown registration status: {new_status!r}")

        with self._transaction():
            registration = self._load_registration(registration_id)
            old = registration.status
            if old == status:
                return StatusChange.UNCHANGED

            if registration.slot_id:
                if old != CANCELLED and status == CANCELLED:
                    self.ledger.release(registration.slot_id)
                elif old == CANCELLED and status != CANCELLED:
                    # The seat was given up on cancel; reactivation must win it back.
                    self.ledger.reserve(registration.slot_id)

            try:
                self.store.update_status(registration, status)
            except IntegrityError as exc:
                # Reactivating would create a second live registration for this candidate.
                raise AlreadyRegisteredError(
                    "Candidate already has an active registration for this interview"
                ) from exc

        logger.info(
            "Registration status changed: id=%s %s -> %s by user_id=%s",
            registration_id,
            old,
            status,
            actor.user_id,
        )
        return StatusChange.UPDATED

    def score(self, actor: Actor, registration_id: int, score: int, feedback: str | None = None) -> Registration:
        if not 0 <= int(score) <= 100:
            raise ScoreOutOfRangeError()

        with self._transaction():
            registration = self._load_registration(registration_id)
            access.require_assigned_or_admin(
                self.db, actor, registration, "Not authorized to score this registration"
            )
            if registration.status not in SCORABLE_STATUSES:
                raise ScoringNotAllowedError()

            self.store.update_score_and_feedback(registration, score, feedback)
            self.store.update_status(registration, RegistrationStatus.COMPLETED.value)

        logger.info("Registration scored: id=%s score=%s by user_id=%s", registration_id, score, actor.user_id)
        self.db.refresh(registration)
        return registration

    def announce_result(self, actor: Actor, registration_id: int) -> Registration:
        access.require_admin(actor)

        with self._transaction():
            registration = self._load_registration(registration_id)
            if not registration.is_live:
                raise ResultOnCancelledError()
            if registration.interview_score is None:
                raise ResultNotScoredError()

            passed = registration.interview_score >= self.pass_threshold
            self.store.set_result_announced(registration)
            self.store.update_status(
                registration,
                RegistrationStatus.COMPLETED.value if passed else RegistrationStatus.FAILED.value,
            )
            self._outbox.append(result_announced(registration.id, passed=passed))

        logger.info("Result announced: id=%s passed=%s", registration_id, passed)
        self.db.refresh(registration)
        return registration
