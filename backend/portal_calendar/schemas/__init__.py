from .event import (
    DeleteResult,
    EventCreate,
    EventRead,
    EventUpdate,
    InvitedUserRead,
    Reminder,
    RsvpUpdate,
    UpdateResult,
)
from .recurrence import RecurrenceRule

__all__ = [
    "DeleteResult",
    "EventCreate",
    "EventRead",
    "EventUpdate",
    "InvitedUserRead",
    "RecurrenceRule",
    "Reminder",
    "RsvpUpdate",
    "UpdateResult",
]
