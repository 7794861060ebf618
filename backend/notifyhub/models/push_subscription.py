from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class PushSubscription(SQLModel, table=True):
    """Web Push subscription for browser notifications."""

    __tablename__ = "push_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    # Push subscription info
    endpoint: str = Field(max_length=500, nullable=False)
    p256dh: str = Field(max_length=200, nullable=False)  # Encryption key
    auth: str = Field(max_length=100, nullable=False)  # Auth secret

    # Metadata
    user_agent: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), nullable=False)
    last_used_at: Optional[datetime] = Field(default=None, nullable=True)
