from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, Field, SQLModel

DELIVERY_DELIVERED = "delivered"
DELIVERY_FAILED = "failed"


class DispatchRecord(SQLModel, table=True):
    """One finalized send operation and its per-recipient outcomes."""

    __tablename__ = "dispatch_records"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    title: str = Field(max_length=100)
    message: str = Field(max_length=500)
    icon: str = Field(default="/icon.png", max_length=500)
    url: str = Field(default="/", max_length=500)
    sent_by: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    # Selected accounts, stored as strings in JSON
    sent_to: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    # [{user_id, subscription_id, status, delivered_at, error}]
    delivery_status: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    total_sent: int = Field(default=0, nullable=False)
    total_delivered: int = Field(default=0, nullable=False)
    total_failed: int = Field(default=0, nullable=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False, index=True
    )
