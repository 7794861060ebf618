from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from notifyhub.models import User


class AccountDirectory:
    """Read-only view over the accounts table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def resolve_accounts(self, ids: Iterable[UUID], active_only: bool = False) -> list[User]:
        """Existing accounts among ``ids``; unknown ids are skipped."""
        ids = set(ids)
        if not ids:
            return []
        statement = select(User).where(User.id.in_(ids))
        if active_only:
            statement = statement.where(User.is_active == True)  # noqa: E712
        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    def list_all_account_ids(self) -> set[UUID]:
        with Session(self.engine) as session:
            statement = select(User.id).where(User.is_active == True)  # noqa: E712
            return set(session.exec(statement).all())

    def role_of(self, user_id: UUID) -> str | None:
        with Session(self.engine) as session:
            user = session.get(User, user_id)
            return user.role if user else None

    def list_accounts(self) -> list[User]:
        with Session(self.engine) as session:
            return list(session.exec(select(User).order_by(User.created_at.asc())).all())
