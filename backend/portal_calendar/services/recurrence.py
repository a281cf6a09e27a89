"""Expansion of recurrence rules into concrete occurrence times."""

from __future__ import annotations

import logging
from calendar import monthrange
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from portal_calendar.core.config import settings
from portal_calendar.core.errors import ValidationError
from portal_calendar.schemas.recurrence import RecurrenceRule

logger = logging.getLogger(__name__)

# Upper bound for the day-of-week scan, in multiples of the rule interval
WEEKDAY_SCAN_WEEKS = 10


def sunday_first_weekday(value: datetime) -> int:
    """Weekday numbered like ``RecurrenceRule.days_of_week`` (0 = Sunday)."""
    return value.isoweekday() % 7


def _clamp_day(base: datetime, year: int, month: int, day: int) -> datetime:
    last_day = monthrange(year, month)[1]
    return base.replace(year=year, month=month, day=min(day, last_day))


def _add_months(base: datetime, months: int, day: Optional[int] = None) -> datetime:
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    return _clamp_day(base, year, month, day or base.day)


def safety_horizon(anchor: datetime, years: Optional[int] = None) -> datetime:
    years = years or settings.RECURRENCE_HORIZON_YEARS
    return _add_months(anchor, years * 12)


def load_rule(data: Optional[dict]) -> Optional[RecurrenceRule]:
    """Validate a stored recurrence payload."""
    if not data:
        return None
    try:
        return RecurrenceRule.model_validate(data)
    except PydanticValidationError as exc:
        message = exc.errors()[0]["msg"]
        raise ValidationError(
            f"Invalid recurrence rule: {message}", field="recurrence"
        ) from exc


class OccurrenceExpander:
    """Occurrences of ``rule`` after the anchor, as ``(starts_at, ends_at)`` pairs.

    The anchor itself is never yielded: it is represented by the template
    record. Every iteration starts over from the anchor, so the same
    expander can be consumed more than once.

    Monthly and yearly steps are computed from the anchor rather than
    from the previous occurrence, so a day clamped in a short month
    (Jan 31 -> Feb 28) does not drift for the rest of the series.
    """

    def __init__(
        self,
        starts_at: datetime,
        ends_at: datetime,
        rule: RecurrenceRule,
        *,
        horizon_years: Optional[int] = None,
        max_occurrences: Optional[int] = None,
    ):
        self.anchor = starts_at
        self.duration = ends_at - starts_at
        self.rule = rule
        self.horizon = safety_horizon(starts_at, horizon_years)
        self.max_occurrences = max_occurrences or settings.MAX_RECURRENCE_OCCURRENCES

    def __iter__(self) -> Iterator[Tuple[datetime, datetime]]:
        for starts_at in self.starts():
            yield starts_at, starts_at + self.duration

    def starts(self) -> Iterator[datetime]:
        rule = self.rule
        if not rule.is_recurring:
            return

        limit = rule.end_after or self.max_occurrences
        last_day = rule.end_date.date() if rule.end_date else None
        current = self.anchor
        emitted = 0
        step = 0

        while emitted < limit:
            step += 1
            current = self._advance(current, step)
            if last_day is not None:
                if current.date() > last_day:
                    break
            elif rule.end_after is None and current > self.horizon:
                break
            emitted += 1
            yield current

    def _advance(self, current: datetime, step: int) -> datetime:
        rule = self.rule
        pattern = rule.pattern

        if pattern in ("daily", "custom"):
            return current + timedelta(days=rule.interval)
        if pattern == "weekly":
            days = rule.effective_days_of_week()
            if days:
                return self._next_matching_weekday(current, days)
            return current + timedelta(weeks=rule.interval)
        if pattern == "weekdays":
            candidate = current + timedelta(days=1)
            while sunday_first_weekday(candidate) in (0, 6):
                candidate += timedelta(days=1)
            return candidate
        if pattern == "monthly":
            return _add_months(self.anchor, step * rule.interval, rule.day_of_month)
        if pattern == "yearly":
            return _clamp_day(
                self.anchor,
                self.anchor.year + step * rule.interval,
                rule.month_of_year or self.anchor.month,
                rule.day_of_month or self.anchor.day,
            )
        raise ValueError(f"Unsupported recurrence pattern: {pattern}")

    def _next_matching_weekday(self, current: datetime, days: frozenset[int]) -> datetime:
        candidate = current
        for _ in range(WEEKDAY_SCAN_WEEKS * self.rule.interval * 7):
            candidate += timedelta(days=1)
            if sunday_first_weekday(candidate) in days:
                return candidate
        logger.warning(
            f"No weekday in {sorted(days)} found after {current.isoformat()}, "
            f"falling back to a {self.rule.interval}-week step"
        )
        return current + timedelta(weeks=self.rule.interval)


def expand_occurrences(
    starts_at: datetime, ends_at: datetime, rule: RecurrenceRule
) -> List[Tuple[datetime, datetime]]:
    return list(OccurrenceExpander(starts_at, ends_at, rule))
