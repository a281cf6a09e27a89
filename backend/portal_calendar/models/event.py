from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


def _default_reminders() -> list[dict]:
    return [{"type": "email", "minutes_before": 15}]


class Event(SQLModel, table=True):
    """Calendar event.

    One table holds three roles: a plain single event, a hidden recurring
    template (carries ``recurrence``), and the materialized instances that
    point back at their template through ``original_event_id``.
    """

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    title: str = Field(max_length=255)
    description: str = Field(default="", max_length=2000)
    location: str = Field(default="", max_length=255)
    starts_at: datetime = Field(nullable=False, index=True)
    ends_at: datetime = Field(nullable=False, index=True)
    all_day: bool = Field(default=False)
    color: str = Field(default="#3788d8", max_length=16)
    privacy: str = Field(default="private", max_length=32, index=True)

    owner_id: UUID = Field(nullable=False, index=True)
    # Owners may come from a separate identity system, so comparisons use email
    owner_email: str = Field(max_length=255, index=True)

    invited_users: list = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    reminders: list = Field(
        default_factory=_default_reminders, sa_column=Column(JSON, nullable=False)
    )
    recurrence: Optional[dict] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )

    is_recurring_instance: bool = Field(default=False, index=True)
    # No FK constraint: pruning may remove a template while past instances stay
    original_event_id: Optional[UUID] = Field(default=None, index=True, nullable=True)
    is_modified_instance: bool = Field(default=False, index=True)
    is_deleted: bool = Field(default=False, index=True)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def role(self) -> str:
        if self.is_recurring_instance:
            return "instance"
        if self.recurrence and self.recurrence.get("is_recurring", True):
            return "template"
        return "single"

    @property
    def duration(self):
        return self.ends_at - self.starts_at

    def invitee(self, user_id: UUID) -> Optional[dict]:
        for entry in self.invited_users:
            if entry.get("user_id") == str(user_id):
                return entry
        return None

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
