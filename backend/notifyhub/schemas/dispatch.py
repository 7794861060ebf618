from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .response import CamelModel


class NotificationSendAll(CamelModel):
    # Length limits are enforced by the dispatch engine so they surface as InvalidPayload
    title: str = ""
    message: str = ""
    # Fall back to DEFAULT_NOTIFICATION_ICON and DEFAULT_NOTIFICATION_URL when omitted
    icon: str | None = None
    url: str | None = None


class NotificationSendToUsers(NotificationSendAll):
    user_ids: list[UUID]


class DeliveryOutcomeRead(CamelModel):
    user_id: UUID
    subscription_id: UUID | None = None
    status: str  # delivered, failed
    delivered_at: datetime | None = None
    error: str | None = None


class SenderRead(CamelModel):
    id: UUID
    username: str
    email: str


class DispatchRecordRead(CamelModel):
    id: UUID
    title: str
    message: str
    icon: str
    url: str
    sent_by: UUID
    sent_to: list[UUID] = Field(default_factory=list)
    delivery_status: list[DeliveryOutcomeRead] = Field(default_factory=list)
    total_sent: int
    total_delivered: int
    total_failed: int
    created_at: datetime


class DispatchHistoryEntry(DispatchRecordRead):
    sent_by_user: SenderRead | None = None


class DispatchQueued(CamelModel):
    task_id: str
