"""Celery tasks for notification dispatch."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlmodel import Session

from notifyhub.celery_app import celery_app
from notifyhub.db import engine
from notifyhub.models import User
from notifyhub.services.dispatch import build_dispatch_engine
from notifyhub.services.web_push import get_delivery_provider

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def dispatch_notification_task(
    self,
    sender_id: str,
    title: str,
    message: str,
    user_ids: list[str] | None = None,
    icon: str | None = None,
    url: str | None = None,
) -> dict:
    """
    Run a dispatch in a worker.

    Args:
        sender_id: Initiating admin account ID
        title: Notification title
        message: Notification body text
        user_ids: Target account IDs, None for everyone
        icon: Notification icon override
        url: Click-through URL override

    Returns:
        dict: Record ID and delivery totals
    """
    with Session(engine) as session:
        sender = session.get(User, UUID(sender_id))
    if not sender:
        logger.warning(f"Sender {sender_id} not found for queued dispatch")
        return {"success": False, "error": "Sender not found"}

    dispatcher = build_dispatch_engine(engine, get_delivery_provider())
    targets = [UUID(user_id) for user_id in user_ids] if user_ids is not None else None
    record = dispatcher.dispatch(sender, title, message, targets, icon, url)

    logger.info(f"Queued dispatch {self.request.id} finished as record {record.id}")
    return {
        "success": True,
        "notification_id": str(record.id),
        "total_sent": record.total_sent,
        "total_delivered": record.total_delivered,
        "total_failed": record.total_failed,
    }
