from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from portal_calendar.schemas.recurrence import RecurrenceRule, to_naive_utc

EventPrivacy = Literal["public", "private", "invite_only"]
RsvpStatus = Literal["pending", "accepted", "declined", "maybe"]


class Reminder(BaseModel):
    type: Literal["email", "push", "sms"] = "email"
    minutes_before: int = 15

    @field_validator("minutes_before")
    @classmethod
    def validate_minutes_before(cls, value: int) -> int:
        if value < 0:
            raise ValueError("minutes_before must not be negative")
        return value


class EventBase(BaseModel):
    title: str
    description: str = ""
    location: str = ""
    starts_at: datetime
    ends_at: datetime
    all_day: bool = False
    color: Optional[str] = None
    privacy: EventPrivacy = "private"
    reminders: Optional[List[Reminder]] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("description", "location")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("starts_at", "ends_at")
    @classmethod
    def normalize_datetime(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("ends_at")
    @classmethod
    def check_ends_after_start(
        cls, ends_at: datetime, info: ValidationInfo
    ) -> datetime:
        starts_at: datetime | None = info.data.get("starts_at")
        if starts_at and ends_at <= starts_at:
            raise ValueError("ends_at must be greater than starts_at")
        return ends_at


class EventCreate(EventBase):
    invited_user_ids: List[UUID] = []
    recurrence: Optional[RecurrenceRule] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    all_day: Optional[bool] = None
    color: Optional[str] = None
    privacy: Optional[EventPrivacy] = None
    reminders: Optional[List[Reminder]] = None
    invited_user_ids: Optional[List[UUID]] = None
    recurrence: Optional[RecurrenceRule] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("title must not be empty")
        return value

    @field_validator("starts_at", "ends_at")
    @classmethod
    def normalize_datetime(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None

    @field_validator("ends_at")
    @classmethod
    def check_ends_after_start(
        cls, ends_at: Optional[datetime], info: ValidationInfo
    ) -> Optional[datetime]:
        starts_at: datetime | None = info.data.get("starts_at")
        if starts_at and ends_at and ends_at <= starts_at:
            raise ValueError("ends_at must be greater than starts_at")
        return ends_at


class InvitedUserRead(BaseModel):
    user_id: UUID
    email: Optional[str] = None
    rsvp: RsvpStatus = "pending"
    responded_at: Optional[datetime] = None


class EventRead(BaseModel):
    id: UUID
    title: str
    description: str
    location: str
    starts_at: datetime
    ends_at: datetime
    all_day: bool
    color: str
    privacy: EventPrivacy
    owner_id: UUID
    owner_email: str
    invited_users: List[InvitedUserRead] = []
    reminders: List[Reminder] = []
    recurrence: Optional[RecurrenceRule] = None
    role: Literal["single", "template", "instance"]
    is_recurring_instance: bool
    original_event_id: Optional[UUID] = None
    is_modified_instance: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RsvpUpdate(BaseModel):
    rsvp: Literal["accepted", "declined", "maybe"]


class UpdateResult(BaseModel):
    updated_count: int
    event: EventRead


class DeleteResult(BaseModel):
    deleted_count: int
