from __future__ import annotations

import threading
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.base import Base
from app.models.interview import Interview, InterviewStatus
from app.models.interview_slot import InterviewSlot
from app.models.registration import Registration, RegistrationStatus
from app.models.user import User
from app.services.access import Actor
from app.services.registration_errors import AlreadyRegisteredError, SlotFullError
from app.services.registration_lifecycle import RegistrationLifecycle


@pytest.fixture()
def file_sessionmaker(tmp_path):
    # Separate connections per thread need a real file; the shared in-memory engine can't race.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


def _seed(factory, *, candidates: int, capacity: int) -> tuple[list[int], int, int]:
    with factory() as db:
        users = [User(email=f"c{i}@example.com", name=f"C{i}", role="user") for i in range(candidates)]
        interview = Interview(
            title="Race",
            position="Engineer",
            interview_date=date(2030, 1, 15),
            start_time=time(9, 0),
            end_time=time(17, 0),
            status=InterviewStatus.PUBLISHED.value,
        )
        db.add_all(users + [interview])
        db.flush()
        slot = InterviewSlot(
            interview_id=interview.id,
            date=date(2030, 1, 15),
            start_time=time(10, 0),
            end_time=time(11, 0),
            capacity=capacity,
            booked_count=0,
        )
        db.add(slot)
        db.commit()
        return [u.id for u in users], interview.id, slot.id


def _race(factory, attempts: list[tuple[int, int, int | None]]) -> list[object]:
    """
    Run each (user_id, interview_id, slot_id) attempt on its own thread and session,
    released together by a barrier. Returns the registration id or exception per attempt.
    """
    barrier = threading.Barrier(len(attempts))
    results: list[object] = [None] * len(attempts)

    def worker(index: int, user_id: int, interview_id: int, slot_id: int | None) -> None:
        db = factory()
        try:
            lifecycle = RegistrationLifecycle(db)
            barrier.wait()
            reg = lifecycle.register(Actor(user_id=user_id, role="user"), interview_id=interview_id, slot_id=slot_id)
            results[index] = reg.id
        except Exception as exc:  # noqa: BLE001
            results[index] = exc
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i, *attempt)) for i, attempt in enumerate(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


@pytest.mark.parametrize("candidates, capacity", [(6, 1), (8, 3)])
def test_concurrent_registrations_never_overbook(file_sessionmaker, candidates, capacity):
    user_ids, interview_id, slot_id = _seed(file_sessionmaker, candidates=candidates, capacity=capacity)

    results = _race(file_sessionmaker, [(uid, interview_id, slot_id) for uid in user_ids])

    successes = [r for r in results if isinstance(r, int)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == capacity
    assert len(failures) == candidates - capacity
    assert all(isinstance(f, SlotFullError) for f in failures)

    with file_sessionmaker() as db:
        slot = db.get(InterviewSlot, slot_id)
        live = (
            db.query(Registration)
            .filter(Registration.slot_id == slot_id, Registration.status != RegistrationStatus.CANCELLED.value)
            .count()
        )
        assert slot.booked_count == capacity
        assert live == capacity


def test_concurrent_duplicate_registration_yields_one_row(file_sessionmaker):
    user_ids, interview_id, slot_id = _seed(file_sessionmaker, candidates=1, capacity=5)
    uid = user_ids[0]

    results = _race(file_sessionmaker, [(uid, interview_id, slot_id)] * 4)

    successes = [r for r in results if isinstance(r, int)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(f, AlreadyRegisteredError) for f in failures)

    with file_sessionmaker() as db:
        assert db.query(Registration).filter(Registration.user_id == uid).count() == 1
        # Losers rolled back their reservation along with the insert.
        assert db.get(InterviewSlot, slot_id).booked_count == 1


def test_interleaved_last_seat_second_writer_loses(file_sessionmaker):
    user_ids, interview_id, slot_id = _seed(file_sessionmaker, candidates=2, capacity=1)

    first = file_sessionmaker()
    second = file_sessionmaker()
    try:
        RegistrationLifecycle(first).register(Actor(user_ids[0], "user"), interview_id=interview_id, slot_id=slot_id)

        with pytest.raises(SlotFullError):
            RegistrationLifecycle(second).register(
                Actor(user_ids[1], "user"), interview_id=interview_id, slot_id=slot_id
            )
    finally:
        first.close()
        second.close()

    with file_sessionmaker() as db:
        assert db.get(InterviewSlot, slot_id).booked_count == 1
        assert db.query(Registration).count() == 1
