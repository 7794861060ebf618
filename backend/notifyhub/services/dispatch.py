"""
Fan-out of one notification to every resolved push endpoint.

A dispatch validates the request, resolves the target subscriptions, makes one
delivery attempt per subscription on a bounded thread pool, retires endpoints
the provider reports as gone, and persists a single finalized record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.engine import Engine

from notifyhub.core.config import settings
from notifyhub.core.exceptions import (
    InvalidPayload,
    InvalidTargetSet,
    ProviderDeliveryFailure,
    Unauthorized,
)
from notifyhub.models import (
    DELIVERY_DELIVERED,
    DELIVERY_FAILED,
    ROLE_ADMIN,
    DispatchRecord,
    PushSubscription,
    User,
)
from notifyhub.services.accounts import AccountDirectory
from notifyhub.services.history import DeliveryHistoryStore
from notifyhub.services.subscriptions import SubscriptionRegistry
from notifyhub.services.web_push import DeliveryProvider, PushEndpoint, get_delivery_provider

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_BODY_LENGTH = 500
MAX_LINK_LENGTH = 500


@dataclass(frozen=True)
class DeliveryOutcome:
    user_id: UUID
    subscription_id: UUID
    status: str
    delivered_at: datetime | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "subscription_id": str(self.subscription_id),
            "status": self.status,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "error": self.error,
        }


@dataclass
class PendingDispatch:
    """A send operation between target resolution and finalization."""

    sender_id: UUID
    title: str
    body: str
    icon: str
    url: str
    target_account_ids: list[UUID]

    def payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "url": self.url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def finalize(self, outcomes: list[DeliveryOutcome]) -> DispatchRecord:
        delivered = sum(1 for outcome in outcomes if outcome.status == DELIVERY_DELIVERED)
        return DispatchRecord(
            title=self.title,
            message=self.body,
            icon=self.icon,
            url=self.url,
            sent_by=self.sender_id,
            sent_to=[str(account_id) for account_id in self.target_account_ids],
            delivery_status=[outcome.as_dict() for outcome in outcomes],
            total_sent=len(outcomes),
            total_delivered=delivered,
            total_failed=len(outcomes) - delivered,
        )


class DispatchEngine:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        accounts: AccountDirectory,
        history: DeliveryHistoryStore,
        provider: DeliveryProvider,
        max_workers: int | None = None,
        default_icon: str | None = None,
        default_url: str | None = None,
    ) -> None:
        self.registry = registry
        self.accounts = accounts
        self.history = history
        self.provider = provider
        self.max_workers = max(1, max_workers or settings.DISPATCH_MAX_WORKERS)
        self.default_icon = default_icon or settings.DEFAULT_NOTIFICATION_ICON
        self.default_url = default_url or settings.DEFAULT_NOTIFICATION_URL

    def validate_request(
        self,
        sender: User,
        title: str,
        body: str,
        target_account_ids: Iterable[UUID] | None = None,
        icon: str | None = None,
        url: str | None = None,
    ) -> None:
        """
        Check a dispatch request without delivering anything.

        Raises:
            Unauthorized: sender is not an administrator.
            InvalidPayload: title or body is empty or too long, or icon or url is too long.
            InvalidTargetSet: an explicit target list is empty.
        """
        if self.accounts.role_of(sender.id) != ROLE_ADMIN:
            raise Unauthorized("Only administrators can send notifications")

        if not title or not title.strip():
            raise InvalidPayload("Title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise InvalidPayload(f"Title must be at most {MAX_TITLE_LENGTH} characters")
        if not body or not body.strip():
            raise InvalidPayload("Message is required")
        if len(body) > MAX_BODY_LENGTH:
            raise InvalidPayload(f"Message must be at most {MAX_BODY_LENGTH} characters")
        for name, value in (("Icon", icon), ("URL", url)):
            if value is not None and len(value) > MAX_LINK_LENGTH:
                raise InvalidPayload(f"{name} must be at most {MAX_LINK_LENGTH} characters")

        if target_account_ids is not None and not list(target_account_ids):
            raise InvalidTargetSet("userIds must contain at least one user")

    def dispatch(
        self,
        sender: User,
        title: str,
        body: str,
        target_account_ids: Iterable[UUID] | None = None,
        icon: str | None = None,
        url: str | None = None,
    ) -> DispatchRecord:
        """
        Send one notification to every active subscription of the targets.

        Args:
            sender: Initiating account, must be an administrator
            title: Notification title
            body: Notification body text
            target_account_ids: Accounts to reach; None means every active account
            icon: Notification icon, defaults to DEFAULT_NOTIFICATION_ICON
            url: Click-through URL, defaults to DEFAULT_NOTIFICATION_URL

        Returns:
            The persisted, finalized dispatch record.
        """
        if target_account_ids is not None:
            target_account_ids = list(target_account_ids)
        self.validate_request(sender, title, body, target_account_ids, icon, url)

        # Only active accounts are reached, so sent_to covers every recipient
        if target_account_ids is None:
            targets = sorted(self.accounts.list_all_account_ids(), key=str)
        else:
            targets = [
                account.id
                for account in self.accounts.resolve_accounts(target_account_ids, active_only=True)
            ]
        subscriptions = self.registry.list_active_for_accounts(targets)

        pending = PendingDispatch(
            sender_id=sender.id,
            title=title,
            body=body,
            icon=icon or self.default_icon,
            url=url or self.default_url,
            target_account_ids=targets,
        )

        if not subscriptions:
            logger.info(f"No active push subscriptions for dispatch by {sender.id}")
            return self.history.append(pending.finalize([]))

        outcomes = self._fan_out(subscriptions, pending.payload())
        record = self.history.append(pending.finalize(outcomes))
        logger.info(
            f"Dispatch by {sender.id}: delivered {record.total_delivered}/{record.total_sent}, "
            f"failed {record.total_failed}"
        )
        return record

    def _fan_out(
        self,
        subscriptions: list[PushSubscription],
        payload: dict[str, Any],
    ) -> list[DeliveryOutcome]:
        workers = min(self.max_workers, len(subscriptions))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push-dispatch") as executor:
            futures = [
                executor.submit(self._deliver, subscription, payload)
                for subscription in subscriptions
            ]
            # Leaving the block joins every attempt
        return [future.result() for future in futures]

    def _deliver(self, subscription: PushSubscription, payload: dict[str, Any]) -> DeliveryOutcome:
        try:
            self.provider.send(PushEndpoint.from_subscription(subscription), payload)
        except ProviderDeliveryFailure as e:
            logger.error(f"Failed to send web push to user {subscription.user_id}: {e.detail}")
            if e.permanent:
                self._retire(subscription)
            return DeliveryOutcome(
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                status=DELIVERY_FAILED,
                error=e.detail,
            )
        except Exception as e:
            logger.error(
                f"Unexpected error sending web push to user {subscription.user_id}: {e}",
                exc_info=True,
            )
            return DeliveryOutcome(
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                status=DELIVERY_FAILED,
                error=str(e) or type(e).__name__,
            )

        try:
            self.registry.mark_used(subscription.id)
        except Exception as e:
            logger.warning(f"Could not update last_used_at for subscription {subscription.id}: {e}")

        return DeliveryOutcome(
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            status=DELIVERY_DELIVERED,
            delivered_at=datetime.now(timezone.utc),
        )

    def _retire(self, subscription: PushSubscription) -> None:
        logger.info(f"Deactivating invalid subscription {subscription.id} for user {subscription.user_id}")
        try:
            self.registry.deactivate(subscription.id)
        except Exception as e:
            logger.error(f"Failed to deactivate subscription {subscription.id}: {e}", exc_info=True)


def build_dispatch_engine(engine: Engine, provider: DeliveryProvider | None = None) -> DispatchEngine:
    return DispatchEngine(
        registry=SubscriptionRegistry(engine),
        accounts=AccountDirectory(engine),
        history=DeliveryHistoryStore(engine),
        provider=provider or get_delivery_provider(),
    )
