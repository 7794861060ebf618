from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from pywebpush import WebPushException, webpush
from requests import RequestException

from notifyhub.core.config import settings
from notifyhub.core.exceptions import ProviderDeliveryFailure
from notifyhub.models import PushSubscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushEndpoint:
    """Endpoint descriptor handed to a delivery provider."""

    endpoint: str
    p256dh: str
    auth: str

    @classmethod
    def from_subscription(cls, subscription: PushSubscription) -> PushEndpoint:
        return cls(
            endpoint=subscription.endpoint,
            p256dh=subscription.p256dh,
            auth=subscription.auth,
        )

    def as_subscription_info(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "keys": {
                "p256dh": self.p256dh,
                "auth": self.auth,
            },
        }


class DeliveryProvider(Protocol):
    def send(self, endpoint: PushEndpoint, payload: dict[str, Any]) -> None:
        """
        Attempt one delivery.

        Returns normally when the provider accepted the message.

        Raises:
            ProviderDeliveryFailure: the provider rejected the message.
        """
        ...


class WebPushProvider:
    """Delivers payloads through the Web Push protocol with VAPID auth."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_claims_email: str,
        ttl: int = 86400,
        permanent_status_codes: Iterable[int] = (404, 410),
    ) -> None:
        self.vapid_private_key = vapid_private_key
        self.vapid_claims_email = vapid_claims_email
        self.ttl = ttl
        self.permanent_status_codes = frozenset(permanent_status_codes)

    def send(self, endpoint: PushEndpoint, payload: dict[str, Any]) -> None:
        if not self.vapid_private_key:
            raise ProviderDeliveryFailure("VAPID keys not configured")

        try:
            webpush(
                subscription_info=endpoint.as_subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_claims_email},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise ProviderDeliveryFailure(
                str(e),
                status_code=status_code,
                permanent=self.is_permanent(status_code),
            ) from e
        except RequestException as e:
            raise ProviderDeliveryFailure(f"Push service unreachable: {e}") from e

        logger.debug(f"Web push sent to endpoint: {endpoint.endpoint[:50]}...")

    def is_permanent(self, status_code: int | None) -> bool:
        return status_code is not None and status_code in self.permanent_status_codes


def get_delivery_provider() -> WebPushProvider:
    if not settings.VAPID_PRIVATE_KEY or not settings.VAPID_PUBLIC_KEY:
        logger.warning("VAPID keys not configured, web push deliveries will fail")
    return WebPushProvider(
        vapid_private_key=settings.VAPID_PRIVATE_KEY,
        vapid_claims_email=settings.VAPID_CLAIMS_EMAIL,
        ttl=settings.PUSH_TTL_SECONDS,
        permanent_status_codes=settings.PUSH_PERMANENT_STATUS_CODES,
    )
