"""Celery application configuration."""

from __future__ import annotations

import logging

from celery import Celery

from notifyhub.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "notifyhub",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["notifyhub.tasks.dispatch"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    # A dispatch is never retried: deliveries it already made would repeat
    task_acks_late=False,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=500,
)

logger.info(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
