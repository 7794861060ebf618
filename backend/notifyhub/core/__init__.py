from .config import settings
from .security import (
    create_access_token,
    verify_token,
)

__all__ = [
    "settings",
    "create_access_token",
    "verify_token",
]
