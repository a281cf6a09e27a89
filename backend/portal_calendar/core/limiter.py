"""Rate limiting configuration."""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from portal_calendar.core.config import settings

# In-memory storage: the calendar engine runs without a shared Redis instance
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)
