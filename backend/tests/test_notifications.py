from __future__ import annotations

from contextlib import contextmanager

import pytest

from app.models.notification_log import NotificationLog
from app.services import notifications as notifications_service
from app.services.email import EmailDeliveryError
from app.services.notifications import (
    CeleryNotificationDispatcher,
    NotificationEvent,
    compose_message,
    deliver,
    registration_confirmation,
    result_announced,
)


@pytest.fixture()
def registration(lifecycle, actors, interview, slot):
    return lifecycle.register(actors["candidate"], interview_id=interview.id, slot_id=slot.id)


def test_event_payload_round_trips_through_json_shape():
    event = result_announced(12, passed=False)
    payload = event.to_payload()
    assert payload == {"purpose": "result", "registration_id": 12, "data": {"passed": False}}
    assert NotificationEvent.from_payload(payload) == event


def test_compose_registration_confirmation_mentions_slot_time(registration):
    subject, body, content = compose_message(registration_confirmation(registration.id), registration)
    assert subject == "Interview Registration Confirmation"
    assert "Dear Casey Candidate" in body
    assert "2030-01-15 10:00 - 11:00" in body
    assert content == "Registration confirmation for Backend Engineer"


def test_compose_result_includes_score_and_outcome(lifecycle, actors, registration):
    lifecycle.change_status(actors["admin"], registration.id, "confirmed")
    scored = lifecycle.score(actors["admin"], registration.id, 42, "Needs practice")

    subject, body, _ = compose_message(result_announced(scored.id, passed=False), scored)
    assert subject == "Interview Result"
    assert "Result: FAILED" in body
    assert "Score: 42/100" in body
    assert "Feedback: Needs practice" in body


def test_compose_rejects_unknown_purpose(registration):
    with pytest.raises(ValueError):
        compose_message(NotificationEvent(purpose="reminder", registration_id=registration.id), registration)


def test_deliver_records_sent_log(db_session, registration, monkeypatch):
    sent = []

    def fake_send(to_email, subject, body):
        sent.append((to_email, subject))
        return "msg_123"

    monkeypatch.setattr(notifications_service, "send_email", fake_send)

    log = deliver(db_session, registration_confirmation(registration.id))
    db_session.commit()

    assert sent == [("candidate@example.com", "Interview Registration Confirmation")]
    assert log.status == "sent"
    assert log.provider_message_id == "msg_123"
    assert log.sent_at is not None
    assert log.user_id == registration.user_id
    assert log.purpose == "registration"


def test_deliver_failure_is_logged_not_raised(db_session, registration, monkeypatch):
    def failing_send(to_email, subject, body):
        raise EmailDeliveryError("Resend send failed: boom")

    monkeypatch.setattr(notifications_service, "send_email", failing_send)

    log = deliver(db_session, result_announced(registration.id, passed=True))
    db_session.commit()

    assert log.status == "failed"
    assert "boom" in log.error_message
    assert db_session.query(NotificationLog).count() == 1


def test_deliver_missing_registration_is_skipped(db_session):
    assert deliver(db_session, registration_confirmation(424242)) is None
    assert db_session.query(NotificationLog).count() == 0


def test_celery_dispatcher_runs_task_inline_without_broker(db_engine, db_session, registration, monkeypatch):
    from sqlalchemy.orm import sessionmaker

    from app.tasks import notifications as notification_tasks

    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    @contextmanager
    def test_scope():
        db = factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    monkeypatch.setattr(notification_tasks, "session_scope", test_scope)
    monkeypatch.setattr(notifications_service, "send_email", lambda to_email, subject, body: "msg_inline")

    CeleryNotificationDispatcher().publish(registration_confirmation(registration.id))

    db_session.expire_all()
    logs = db_session.query(NotificationLog).all()
    assert [(log.status, log.provider_message_id) for log in logs] == [("sent", "msg_inline")]


def test_celery_dispatcher_swallows_enqueue_errors(monkeypatch):
    import app.celery_app as celery_module

    def broken_enqueue(task, *args, **kwargs):
        raise RuntimeError("broker down")

    monkeypatch.setattr(celery_module, "enqueue", broken_enqueue)
    CeleryNotificationDispatcher().publish(registration_confirmation(1))


def test_task_swallows_delivery_errors(monkeypatch):
    from app.tasks import notifications as notification_tasks

    def exploding_scope():
        raise RuntimeError("db unavailable")

    monkeypatch.setattr(notification_tasks, "session_scope", exploding_scope)
    assert notification_tasks.deliver_notification.run({"purpose": "registration", "registration_id": 1}) is None
    assert notification_tasks.deliver_notification.run({"purpose": "registration"}) is None
