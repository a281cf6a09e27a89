from .config import settings
from .errors import (
    CalendarError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from .security import create_access_token, verify_token

__all__ = [
    "settings",
    "CalendarError",
    "NotFoundError",
    "PermissionDeniedError",
    "PersistenceError",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
