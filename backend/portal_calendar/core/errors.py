"""
Domain exceptions for the calendar engine.

Services raise these; the HTTP layer translates them into responses
(see ``portal_calendar.main``).
"""

from __future__ import annotations

from typing import Any, Optional


class CalendarError(Exception):
    """Base exception for calendar engine errors."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CalendarError):
    """Raised when event or recurrence input is invalid."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(CalendarError):
    """Raised when a requested event, template or user is absent."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class PermissionDeniedError(CalendarError):
    """Raised when the caller may not view or change an event."""

    status_code = 403


class PersistenceError(CalendarError):
    """Raised when the storage collaborator fails to read or write a record."""

    status_code = 503
