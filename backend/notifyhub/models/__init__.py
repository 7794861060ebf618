from .dispatch_record import DELIVERY_DELIVERED, DELIVERY_FAILED, DispatchRecord
from .push_subscription import PushSubscription
from .user import ROLE_ADMIN, ROLE_USER, User

__all__ = [
    "DELIVERY_DELIVERED",
    "DELIVERY_FAILED",
    "DispatchRecord",
    "PushSubscription",
    "ROLE_ADMIN",
    "ROLE_USER",
    "User",
]
