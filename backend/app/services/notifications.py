from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.models.notification_log import NotificationLog, NotificationPurpose, NotificationStatus
from app.models.registration import Registration
from app.services.email import send_email

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class NotificationEvent:
    """
    Emitted by RegistrationLifecycle after a transaction commits.
    Plain data only so it can cross the Celery boundary as JSON.
    """

    purpose: str
    registration_id: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "NotificationEvent":
        return cls(
            purpose=str(payload.get("purpose") or ""),
            registration_id=int(payload["registration_id"]),
            data=dict(payload.get("data") or {}),
        )


def registration_confirmation(registration_id: int) -> NotificationEvent:
    return NotificationEvent(purpose=NotificationPurpose.REGISTRATION.value, registration_id=registration_id)


def result_announced(registration_id: int, *, passed: bool) -> NotificationEvent:
    return NotificationEvent(
        purpose=NotificationPurpose.RESULT.value,
        registration_id=registration_id,
        data={"passed": bool(passed)},
    )


class NotificationDispatcher(Protocol):
    def publish(self, event: NotificationEvent) -> None: ...


class NullNotificationDispatcher:
    def publish(self, event: NotificationEvent) -> None:
        logger.debug("Notifications disabled; dropping %s for registration %s", event.purpose, event.registration_id)


class CeleryNotificationDispatcher:
    """
    Hands events to the `notifications.deliver` task. This is the error boundary
    between a committed transaction and delivery: nothing raised here reaches the caller.
    """

    def publish(self, event: NotificationEvent) -> None:
        try:
            from app.celery_app import enqueue
            from app.tasks.notifications import deliver_notification

            enqueue(deliver_notification, event.to_payload())
        except Exception:  # noqa: BLE001
            logger.exception(
                "Failed to dispatch %s notification for registration %s",
                event.purpose,
                event.registration_id,
            )


# ----------------------------------------------------------------------
# Delivery (runs inside the Celery task with its own session)
# ----------------------------------------------------------------------


def _display_time(registration: Registration) -> str:
    slot = registration.slot
    interview = registration.interview
    if slot is not None:
        return f"{slot.date.isoformat()} {slot.start_time.strftime('%H:%M')} - {slot.end_time.strftime('%H:%M')}"
    if interview is not None:
        return (
            f"{interview.interview_date.isoformat()} "
            f"{interview.start_time.strftime('%H:%M')} - {interview.end_time.strftime('%H:%M')}"
        )
    return "to be announced"


def compose_message(event: NotificationEvent, registration: Registration) -> tuple[str, str, str]:
    """
    Returns (subject, body, log_content) for the event.
    """
    name = (registration.user.name if registration.user else None) or "candidate"
    title = registration.interview.title if registration.interview else "your interview"

    if event.purpose == NotificationPurpose.REGISTRATION.value:
        subject = "Interview Registration Confirmation"
        body = "\n".join(
            [
                f"Dear {name},",
                "",
                f"Your registration for {title} has been received.",
                f"When: {_display_time(registration)}",
                "",
                "Please arrive 10 minutes before your scheduled time.",
                "Good luck!",
            ]
        )
        return subject, body, f"Registration confirmation for {title}"

    if event.purpose == NotificationPurpose.RESULT.value:
        passed = bool(event.data.get("passed"))
        outcome = "PASSED" if passed else "FAILED"
        lines = [
            f"Dear {name},",
            "",
            f"Your interview for {title} has been completed.",
            f"Result: {outcome}",
        ]
        if registration.interview_score is not None:
            lines.append(f"Score: {registration.interview_score}/100")
        if registration.interview_feedback:
            lines.append(f"Feedback: {registration.interview_feedback}")
        lines += ["", "Thank you for your participation!"]
        return "Interview Result", "\n".join(lines), f"Interview result for {title}: {outcome.lower()}"

    raise ValueError(f"Unsupported notification purpose: {event.purpose!r}")


def deliver(db: Session, event: NotificationEvent) -> NotificationLog | None:
    """
    Send one notification and record the attempt. Delivery failures are recorded
    on the log row and swallowed; they never roll back anything but the log.
    """
    registration = db.get(Registration, event.registration_id)
    if registration is None:
        logger.warning("Notification skipped: registration %s not found", event.registration_id)
        return None
    user = registration.user
    if user is None or not user.email:
        logger.warning("Notification skipped: registration %s has no candidate email", registration.id)
        return None

    subject, body, content = compose_message(event, registration)

    log = NotificationLog(
        user_id=user.id,
        registration_id=registration.id,
        type="email",
        purpose=event.purpose,
        content=content,
        status=NotificationStatus.PENDING.value,
    )
    db.add(log)
    db.flush()

    try:
        msg_id = send_email(to_email=user.email, subject=subject, body=body)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Notification %s failed for registration %s", event.purpose, registration.id)
        log.status = NotificationStatus.FAILED.value
        log.error_message = str(exc)[:MAX_ERROR_MESSAGE_LENGTH]
    else:
        log.status = NotificationStatus.SENT.value
        log.provider_message_id = msg_id
        log.sent_at = datetime.now(timezone.utc)
        logger.info("Notification %s sent for registration %s", event.purpose, registration.id)

    db.flush()
    return log
