from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from app.models.interview_slot import InterviewSlot, slot_interviewers
from app.models.registration import Registration, RegistrationStatus


@dataclass
class RegistrationPage:
    items: list[Registration]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)


class RegistrationStore:
    """
    Row-level access to registrations. Nothing here commits or enforces the
    status state machine; RegistrationLifecycle owns both.
    """

    DEFAULT_PAGE_SIZE = 10

    def __init__(self, db: Session, *, max_page_size: int = 100):
        self.db = db
        self.max_page_size = max(1, int(max_page_size))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(
        self,
        *,
        user_id: int,
        interview_id: int,
        slot_id: int | None = None,
        resume_url: str | None = None,
        answers: dict[str, Any] | None = None,
        notes: str | None = None,
    ) -> Registration:
        registration = Registration(
            user_id=user_id,
            interview_id=interview_id,
            slot_id=slot_id or None,
            status=RegistrationStatus.PENDING.value,
            resume_url=(resume_url or "").strip() or None,
            answers=answers or None,
            notes=(notes or "").strip() or None,
            result_announced=False,
        )
        self.db.add(registration)
        # Let caller decide commit timing; flush so the unique index is checked now.
        self.db.flush()
        return registration

    def update_status(self, registration: Registration, status: str) -> Registration:
        registration.status = status
        self.db.flush()
        return registration

    def update_score_and_feedback(
        self,
        registration: Registration,
        score: int,
        feedback: str | None,
    ) -> Registration:
        registration.interview_score = int(score)
        registration.interview_feedback = (feedback or "").strip() or None
        self.db.flush()
        return registration

    def set_result_announced(self, registration: Registration) -> Registration:
        registration.result_announced = True
        self.db.flush()
        return registration

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def find_by_id(self, registration_id: int, *, for_update: bool = False) -> Registration | None:
        stmt = select(Registration).where(Registration.id == registration_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def find_by_id_with_details(self, registration_id: int) -> Registration | None:
        stmt = (
            select(Registration)
            .where(Registration.id == registration_id)
            .options(*self._detail_options())
        )
        return self.db.execute(stmt).scalars().first()

    def find_by_candidate_and_interview(
        self,
        user_id: int,
        interview_id: int,
        *,
        live_only: bool = True,
    ) -> Registration | None:
        stmt = select(Registration).where(
            Registration.user_id == user_id,
            Registration.interview_id == interview_id,
        )
        if live_only:
            stmt = stmt.where(Registration.status != RegistrationStatus.CANCELLED.value)
        return self.db.execute(stmt.order_by(Registration.id.desc())).scalars().first()

    def find_by_interview_id(self, interview_id: int, *, status: str | None = None) -> list[Registration]:
        stmt = select(Registration).where(Registration.interview_id == interview_id)
        if status:
            stmt = stmt.where(Registration.status == status)
        stmt = stmt.options(*self._detail_options()).order_by(
            Registration.created_at.desc(), Registration.id.desc()
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_by_status(self, status: str) -> list[Registration]:
        stmt = (
            select(Registration)
            .where(Registration.status == status)
            .order_by(Registration.created_at.desc(), Registration.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_by_user_id(self, user_id: int, *, status: str | None = None) -> list[Registration]:
        stmt = select(Registration).where(Registration.user_id == user_id)
        if status:
            stmt = stmt.where(Registration.status == status)
        stmt = stmt.options(*self._detail_options()).order_by(
            Registration.created_at.desc(), Registration.id.desc()
        )
        return list(self.db.execute(stmt).scalars().all())

    def count(
        self,
        *,
        user_id: int | None = None,
        interview_id: int | None = None,
        slot_id: int | None = None,
        status: str | None = None,
        live_only: bool = False,
    ) -> int:
        stmt = select(func.count(Registration.id))
        if user_id is not None:
            stmt = stmt.where(Registration.user_id == user_id)
        if interview_id is not None:
            stmt = stmt.where(Registration.interview_id == interview_id)
        if slot_id is not None:
            stmt = stmt.where(Registration.slot_id == slot_id)
        if status:
            stmt = stmt.where(Registration.status == status)
        if live_only:
            stmt = stmt.where(Registration.status != RegistrationStatus.CANCELLED.value)
        return int(self.db.execute(stmt).scalar() or 0)

    def list_registrations(
        self,
        *,
        interview_id: int | None = None,
        status: str | None = None,
        interviewer_id: int | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> RegistrationPage:
        normalized_page = max(1, int(page or 1))
        normalized_size = max(1, min(int(page_size or self.DEFAULT_PAGE_SIZE), self.max_page_size))

        filters = []
        if interview_id is not None:
            filters.append(Registration.interview_id == interview_id)
        if status:
            filters.append(Registration.status == status)
        if interviewer_id is not None:
            # Interviewers only see registrations booked into slots they are assigned to.
            filters.append(
                Registration.slot_id.in_(
                    select(slot_interviewers.c.slot_id).where(slot_interviewers.c.user_id == interviewer_id)
                )
            )

        total = int(self.db.execute(select(func.count(Registration.id)).where(*filters)).scalar() or 0)
        items = (
            self.db.execute(
                select(Registration)
                .where(*filters)
                .options(*self._detail_options())
                .order_by(Registration.created_at.desc(), Registration.id.desc())
                .offset((normalized_page - 1) * normalized_size)
                .limit(normalized_size)
            )
            .scalars()
            .all()
        )
        return RegistrationPage(
            items=list(items),
            total=total,
            page=normalized_page,
            page_size=normalized_size,
        )

    @staticmethod
    def _detail_options() -> tuple:
        return (
            joinedload(Registration.user),
            joinedload(Registration.interview),
            joinedload(Registration.slot).selectinload(InterviewSlot.interviewers),
        )
