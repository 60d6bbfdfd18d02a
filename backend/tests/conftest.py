import os
from datetime import date, time

# Ensure JWT_SECRET exists before importing app.main (it calls require_jwt_secret() at import time).
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.base import Base
from app.core import config as app_config

# Import models so they register with SQLAlchemy metadata.
from app.models.user import User, UserRole
from app.models.interview import Interview, InterviewStatus
from app.models.interview_slot import InterviewSlot
from app.models.registration import Registration  # noqa: F401
from app.models.notification_log import NotificationLog  # noqa: F401

from app.core.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.registrations import get_notification_dispatcher
from app.services.access import Actor
from app.services.registration_lifecycle import RegistrationLifecycle


class RecordingDispatcher:
    """Collects published events instead of handing them to Celery."""

    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # Important: because we use an in-memory SQLite DB with StaticPool, the DB
    # persists across tests. Reset schema per test to avoid cross-test coupling.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings (app_config.settings.*). Because that object is
    process-global, we must restore values after each test to avoid cross-test coupling.
    """
    keys = [
        "EMAIL_ENABLED",
        "EMAIL_PROVIDER",
        "RESULT_PASS_THRESHOLD",
        "REGISTRATIONS_MAX_PAGE_SIZE",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def lifecycle(db_session, dispatcher):
    return RegistrationLifecycle(db_session, dispatcher=dispatcher, pass_threshold=60)


@pytest.fixture()
def app(db_session, dispatcher):
    # Ensure settings has a JWT secret even if imported earlier.
    app_config.settings.JWT_SECRET = app_config.settings.JWT_SECRET or "test_jwt_secret"

    import app.main as main

    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def _make_user(db_session, email: str, name: str, role: str) -> User:
    user = User(email=email, name=name, role=role, is_active=True)
    db_session.add(user)
    return user


@pytest.fixture()
def users(db_session):
    """
    Two candidates, one interviewer and one admin.
    """
    candidate = _make_user(db_session, "candidate@example.com", "Casey Candidate", UserRole.USER.value)
    other = _make_user(db_session, "other@example.com", "Other Candidate", UserRole.USER.value)
    interviewer = _make_user(db_session, "interviewer@example.com", "Ivy Interviewer", UserRole.INTERVIEWER.value)
    admin = _make_user(db_session, "admin@example.com", "Ada Admin", UserRole.ADMIN.value)
    db_session.commit()
    for u in (candidate, other, interviewer, admin):
        db_session.refresh(u)
    return {"candidate": candidate, "other": other, "interviewer": interviewer, "admin": admin}


@pytest.fixture()
def actors(users):
    return {key: Actor.from_user(user) for key, user in users.items()}


@pytest.fixture()
def make_interview(db_session, users):
    def _make(status: str = InterviewStatus.PUBLISHED.value, title: str = "Backend Engineer") -> Interview:
        interview = Interview(
            title=title,
            position="Engineer",
            department="Platform",
            location="Building A",
            interview_date=date(2030, 1, 15),
            start_time=time(9, 0),
            end_time=time(17, 0),
            capacity=10,
            status=status,
            created_by=users["admin"].id,
        )
        db_session.add(interview)
        db_session.commit()
        db_session.refresh(interview)
        return interview

    return _make


@pytest.fixture()
def make_slot(db_session, users):
    def _make(interview: Interview, capacity: int = 1, *, interviewers=None, start: time = time(10, 0)) -> InterviewSlot:
        slot = InterviewSlot(
            interview_id=interview.id,
            date=interview.interview_date,
            start_time=start,
            end_time=time(start.hour + 1, start.minute),
            capacity=capacity,
            booked_count=0,
        )
        slot.interviewers = [users["interviewer"]] if interviewers is None else list(interviewers)
        db_session.add(slot)
        db_session.commit()
        db_session.refresh(slot)
        return slot

    return _make


@pytest.fixture()
def interview(make_interview):
    return make_interview()


@pytest.fixture()
def slot(make_slot, interview):
    return make_slot(interview, capacity=1)


@pytest.fixture()
def client_for(app):
    """
    Context manager to create a client authenticated as an arbitrary user.

    Usage:
        with client_for(user) as c:
            ...
    """

    @contextmanager
    def _client_for(user: User):
        app.dependency_overrides[get_current_user] = lambda: user
        with TestClient(app) as c:
            yield c
        app.dependency_overrides.pop(get_current_user, None)

    return _client_for


@pytest.fixture()
def anon_client(app):
    with TestClient(app) as c:
        yield c
