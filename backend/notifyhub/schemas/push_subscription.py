from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .response import CamelModel


class PushSubscriptionKeys(CamelModel):
    p256dh: str = Field(default="", max_length=200, description="Encryption key")
    auth: str = Field(default="", max_length=100, description="Auth secret")


class PushSubscriptionCreate(CamelModel):
    """Subscription object produced by the browser's PushManager."""

    endpoint: str = Field(default="", max_length=500)
    keys: PushSubscriptionKeys = Field(default_factory=PushSubscriptionKeys)
    client_descriptor: str | None = Field(default=None, max_length=500)


class PushSubscriptionRead(CamelModel):
    id: UUID
    user_id: UUID
    endpoint: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_used_at: datetime | None


class SubscriptionStatus(CamelModel):
    has_active_subscription: bool
    subscription_count: int


class UnsubscribeResult(CamelModel):
    deactivated: int
