from __future__ import annotations

from datetime import datetime
from uuid import UUID

from .response import CamelModel


class UserRead(CamelModel):
    id: UUID
    username: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


class UserSubscriptionSummary(UserRead):
    """Account annotated with its push subscription state."""

    has_active_subscription: bool = False
    subscription_count: int = 0


class UserList(CamelModel):
    users: list[UserSubscriptionSummary]
