from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.services.notifications import (
    CeleryNotificationDispatcher,
    NotificationDispatcher,
    NullNotificationDispatcher,
)
from app.services.registration_lifecycle import RegistrationLifecycle
from app.services.registrations import RegistrationStore
from app.services.slots import SlotService


def get_notification_dispatcher() -> NotificationDispatcher:
    if settings.EMAIL_ENABLED:
        return CeleryNotificationDispatcher()
    return NullNotificationDispatcher()


def get_registration_lifecycle(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> RegistrationLifecycle:
    return RegistrationLifecycle(
        db,
        dispatcher=dispatcher,
        pass_threshold=settings.RESULT_PASS_THRESHOLD,
        max_page_size=settings.REGISTRATIONS_MAX_PAGE_SIZE,
    )


def get_registration_store(db: Session = Depends(get_db)) -> RegistrationStore:
    return RegistrationStore(db, max_page_size=settings.REGISTRATIONS_MAX_PAGE_SIZE)


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    return SlotService(db)
