"""Registry of push endpoints bound to accounts."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from notifyhub.core.exceptions import InvalidSubscription
from notifyhub.models import PushSubscription

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """
    Durable store of push subscriptions keyed by (user_id, endpoint).

    Every call opens its own session, so the registry can be shared between
    request handlers and dispatch worker threads. Rows are deactivated, never
    deleted.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def register(
        self,
        user_id: UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        """
        Create or reactivate the subscription for (user_id, endpoint).

        Raises:
            InvalidSubscription: endpoint or one of the keys is empty.
        """
        endpoint = (endpoint or "").strip()
        p256dh = (p256dh or "").strip()
        auth = (auth or "").strip()
        if not endpoint or not p256dh or not auth:
            raise InvalidSubscription("Invalid subscription data: endpoint, p256dh and auth are required")

        try:
            return self._upsert(user_id, endpoint, p256dh, auth, user_agent)
        except IntegrityError:
            # Lost an insert race against a concurrent registration of the same pair
            logger.info(f"Concurrent registration for user {user_id}, retrying as update")
            return self._upsert(user_id, endpoint, p256dh, auth, user_agent)

    def _upsert(
        self,
        user_id: UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None,
    ) -> PushSubscription:
        with Session(self.engine) as session:
            statement = select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
            subscription = session.exec(statement).first()

            if subscription:
                subscription.p256dh = p256dh
                subscription.auth = auth
                subscription.user_agent = user_agent
                subscription.is_active = True
                subscription.updated_at = datetime.now(timezone.utc)
                logger.info(f"Updated push subscription {subscription.id} for user {user_id}")
            else:
                subscription = PushSubscription(
                    user_id=user_id,
                    endpoint=endpoint,
                    p256dh=p256dh,
                    auth=auth,
                    user_agent=user_agent,
                )
                logger.info(f"Created push subscription for user {user_id}, endpoint: {endpoint[:50]}...")

            session.add(subscription)
            session.commit()
            session.refresh(subscription)
            return subscription

    def list_active_for_accounts(
        self,
        account_ids: Iterable[UUID] | None = None,
    ) -> list[PushSubscription]:
        """Active subscriptions owned by ``account_ids``, or all of them when None."""
        statement = select(PushSubscription).where(PushSubscription.is_active == True)  # noqa: E712
        if account_ids is not None:
            ids = set(account_ids)
            if not ids:
                return []
            statement = statement.where(PushSubscription.user_id.in_(ids))

        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    def deactivate(self, subscription_id: UUID) -> None:
        with Session(self.engine) as session:
            subscription = session.get(PushSubscription, subscription_id)
            if not subscription:
                logger.warning(f"Cannot deactivate unknown push subscription {subscription_id}")
                return
            if not subscription.is_active:
                return
            subscription.is_active = False
            subscription.updated_at = datetime.now(timezone.utc)
            session.add(subscription)
            session.commit()
            logger.info(f"Deactivated push subscription {subscription_id} for user {subscription.user_id}")

    def deactivate_all_for_account(self, user_id: UUID) -> int:
        """Deactivate every active subscription of an account. Returns the number changed."""
        with Session(self.engine) as session:
            statement = select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active == True,  # noqa: E712
            )
            subscriptions = session.exec(statement).all()

            now = datetime.now(timezone.utc)
            for subscription in subscriptions:
                subscription.is_active = False
                subscription.updated_at = now
                session.add(subscription)

            session.commit()
            logger.info(f"Deactivated {len(subscriptions)} push subscriptions for user {user_id}")
            return len(subscriptions)

    def active_count_for_account(self, user_id: UUID) -> int:
        statement = select(func.count()).select_from(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.is_active == True,  # noqa: E712
        )
        with Session(self.engine) as session:
            return session.exec(statement).one()

    def active_counts_by_account(self) -> dict[UUID, int]:
        statement = (
            select(PushSubscription.user_id, func.count())
            .where(PushSubscription.is_active == True)  # noqa: E712
            .group_by(PushSubscription.user_id)
        )
        with Session(self.engine) as session:
            return {user_id: count for user_id, count in session.exec(statement).all()}

    def mark_used(self, subscription_id: UUID) -> None:
        with Session(self.engine) as session:
            subscription = session.get(PushSubscription, subscription_id)
            if subscription:
                subscription.last_used_at = datetime.now(timezone.utc)
                session.add(subscription)
                session.commit()
