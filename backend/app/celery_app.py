from __future__ import annotations

import logging

from celery import Celery

from app.core.config import settings


logger = logging.getLogger(__name__)

NOTIFICATION_QUEUE = "notification-tasks"

# Without an SQS queue there is no worker; tasks run in-process after commit.
BROKER_CONFIGURED = bool(settings.NOTIFICATIONS_SQS_QUEUE_URL)

celery_app = Celery("interview-registrations")
celery_app.conf.update(
    result_backend=None,
    task_default_queue=NOTIFICATION_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    broker_connection_retry_on_startup=True,
    timezone="UTC",
    enable_utc=True,
    include=["app.tasks.notifications"],
)

if BROKER_CONFIGURED:
    region = settings.AWS_REGION or "us-east-1"
    if not settings.AWS_REGION:
        logger.warning("NOTIFICATIONS_SQS_QUEUE_URL set without AWS_REGION; using %s", region)
    celery_app.conf.broker_url = "sqs://"
    celery_app.conf.broker_transport_options = {
        "region": region,
        "visibility_timeout": 300,
        "queue_name_prefix": "",
        "predefined_queues": {NOTIFICATION_QUEUE: {"url": settings.NOTIFICATIONS_SQS_QUEUE_URL}},
    }
else:
    celery_app.conf.broker_url = "memory://"
    logger.warning("NOTIFICATIONS_SQS_QUEUE_URL is not configured; notifications run inline after commit.")


def enqueue(task, *args, **kwargs):
    """
    Publish to the broker, or run inline when there is none. `apply` stores a
    task's exception on the returned result instead of raising it.
    """
    if BROKER_CONFIGURED:
        return task.delay(*args, **kwargs)
    logger.info("No broker configured; running %s inline", task.name)
    return task.apply(args=args, kwargs=kwargs)
