from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

RecurrencePattern = Literal["daily", "weekly", "monthly", "yearly", "weekdays", "custom"]

# 0 = Sunday ... 6 = Saturday
MONDAY_TO_FRIDAY = frozenset({1, 2, 3, 4, 5})


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting aware datetimes to UTC; storage is naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecurrenceRule(BaseModel):
    """How an event repeats. Stored as JSON on the template record."""

    model_config = ConfigDict(extra="ignore")

    is_recurring: bool = True
    pattern: RecurrencePattern = "daily"
    interval: int = 1
    end_after: Optional[int] = None
    end_date: Optional[datetime] = None
    days_of_week: List[int] = []
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("interval must be greater than 0")
        return value

    @field_validator("end_after")
    @classmethod
    def validate_end_after(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("end_after must be greater than 0")
        return value

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: List[int]) -> List[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError("days_of_week entries must be between 0 (Sunday) and 6")
        return sorted(set(value))

    @field_validator("day_of_month")
    @classmethod
    def validate_day_of_month(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= 31:
            raise ValueError("day_of_month must be between 1 and 31")
        return value

    @field_validator("month_of_year")
    @classmethod
    def validate_month_of_year(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= 12:
            raise ValueError("month_of_year must be between 1 and 12")
        return value

    @model_validator(mode="after")
    def check_single_bound(self) -> "RecurrenceRule":
        if self.end_after is not None and self.end_date is not None:
            raise ValueError("specify either end_after or end_date, not both")
        return self

    def effective_days_of_week(self) -> frozenset[int]:
        if self.pattern == "weekdays":
            return MONDAY_TO_FRIDAY
        return frozenset(self.days_of_week)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    def same_shape(self, other: Optional["RecurrenceRule"]) -> bool:
        return other is not None and self.to_storage() == other.to_storage()
