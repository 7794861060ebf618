"""Append-only store of finalized dispatch records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from notifyhub.core.exceptions import PersistenceError
from notifyhub.models import DispatchRecord

logger = logging.getLogger(__name__)


@dataclass
class HistoryPage:
    records: list[DispatchRecord] = field(default_factory=list)
    current_page: int = 1
    total_pages: int = 0
    total_records: int = 0
    has_next: bool = False
    has_prev: bool = False


class DeliveryHistoryStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def append(self, record: DispatchRecord) -> DispatchRecord:
        """
        Persist a finalized record in a single commit.

        Raises:
            PersistenceError: the write failed. Deliveries already made stand.
        """
        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist dispatch record {record.id}: {e}", exc_info=True)
            raise PersistenceError("Failed to save notification history") from e

        logger.info(
            f"Dispatch record {record.id} saved: "
            f"{record.total_delivered}/{record.total_sent} delivered, {record.total_failed} failed"
        )
        return record

    def page(self, page: int = 1, page_size: int = 10) -> HistoryPage:
        """Newest-first page of records. Pages past the end come back empty."""
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be >= 1")

        with Session(self.engine) as session:
            total = session.exec(select(func.count()).select_from(DispatchRecord)).one()
            statement = (
                select(DispatchRecord)
                .order_by(DispatchRecord.created_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            records = list(session.exec(statement).all())

        total_pages = (total + page_size - 1) // page_size if total > 0 else 0
        return HistoryPage(
            records=records,
            current_page=page,
            total_pages=total_pages,
            total_records=total,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
