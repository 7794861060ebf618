"""Error taxonomy for subscription and dispatch operations."""

from __future__ import annotations

from fastapi import status


class NotifyHubError(Exception):
    """Base error rendered by the API as ``{success: false, message}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidSubscription(NotifyHubError):
    """Registration is missing the endpoint or its key material."""


class InvalidPayload(NotifyHubError):
    """Title or body is empty or too long."""


class InvalidTargetSet(NotifyHubError):
    """An explicit recipient list was given but is empty."""


class Unauthorized(NotifyHubError):
    status_code = status.HTTP_403_FORBIDDEN


class PersistenceError(NotifyHubError):
    """Storage failure. Deliveries that already happened are not undone."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ProviderDeliveryFailure(Exception):
    """A single delivery attempt was rejected by the push provider.

    Captured per recipient by the dispatch engine, never raised to API callers.
    """

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        permanent: bool = False,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.permanent = permanent
