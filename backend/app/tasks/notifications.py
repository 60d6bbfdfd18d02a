from __future__ import annotations

import logging
from typing import Any

from app.celery_app import celery_app
from app.core.database import session_scope
from app.services.notifications import NotificationEvent, deliver


logger = logging.getLogger(__name__)


@celery_app.task(name="notifications.deliver")
def deliver_notification(payload: dict[str, Any]) -> None:
    """
    Best-effort delivery of one registration notification. Runs after the
    originating transaction has committed and owns its own session.
    """
    try:
        event = NotificationEvent.from_payload(payload)
    except (KeyError, TypeError, ValueError):
        logger.error("Dropping malformed notification payload: %r", payload)
        return

    try:
        with session_scope() as db:
            deliver(db, event)
    except Exception:  # pylint: disable=broad-except
        logger.exception(
            "Notification task failed: purpose=%s registration_id=%s",
            event.purpose,
            event.registration_id,
        )
