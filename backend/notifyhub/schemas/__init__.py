from .dispatch import (
    DeliveryOutcomeRead,
    DispatchHistoryEntry,
    DispatchQueued,
    DispatchRecordRead,
    NotificationSendAll,
    NotificationSendToUsers,
    SenderRead,
)
from .pagination import PaginatedNotifications, PaginationMeta
from .push_subscription import (
    PushSubscriptionCreate,
    PushSubscriptionKeys,
    PushSubscriptionRead,
    SubscriptionStatus,
    UnsubscribeResult,
)
from .response import ApiResponse, CamelModel
from .user import UserList, UserRead, UserSubscriptionSummary

__all__ = [
    "ApiResponse",
    "CamelModel",
    "DeliveryOutcomeRead",
    "DispatchHistoryEntry",
    "DispatchQueued",
    "DispatchRecordRead",
    "NotificationSendAll",
    "NotificationSendToUsers",
    "PaginatedNotifications",
    "PaginationMeta",
    "PushSubscriptionCreate",
    "PushSubscriptionKeys",
    "PushSubscriptionRead",
    "SenderRead",
    "SubscriptionStatus",
    "UnsubscribeResult",
    "UserList",
    "UserRead",
    "UserSubscriptionSummary",
]
