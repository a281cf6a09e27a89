from __future__ import annotations

import copy
import logging
from datetime import datetime

from portal_calendar.core.errors import PersistenceError, ValidationError
from portal_calendar.models import Event
from portal_calendar.services.recurrence import OccurrenceExpander, load_rule
from portal_calendar.services.repository import EventRepository

logger = logging.getLogger(__name__)

# Template fields carried over to every instance; timing is recomputed
INSTANCE_FIELDS = (
    "title",
    "description",
    "location",
    "all_day",
    "color",
    "privacy",
    "owner_id",
    "owner_email",
    "invited_users",
    "reminders",
    "recurrence",
)


def build_instance(template: Event, starts_at: datetime, ends_at: datetime) -> Event:
    data = {field: copy.deepcopy(getattr(template, field)) for field in INSTANCE_FIELDS}
    return Event(
        **data,
        starts_at=starts_at,
        ends_at=ends_at,
        is_recurring_instance=True,
        original_event_id=template.id,
        is_active=True,
    )


class InstanceMaterializer:
    """Persists the expanded occurrences of a template as instance records."""

    def __init__(self, repository: EventRepository):
        self.repository = repository

    def materialize(
        self, template: Event, *, include_anchor: bool = False, force: bool = False
    ) -> int:
        """
        Create one instance per occurrence and hide the template.

        Args:
            template: Template event carrying the recurrence rule
            include_anchor: Also create an instance at the template's own start
            force: Expand even if instances already exist from the template's
                start on; the caller has cleared the range it regenerates

        Returns:
            Number of instances actually created. Records that fail to
            persist are logged and skipped.
        """
        if template.role == "instance":
            raise ValidationError("Cannot expand a recurring instance")
        rule = load_rule(template.recurrence)
        if rule is None:
            raise ValidationError("Event has no recurrence rule", field="recurrence")

        existing = []
        if not force:
            existing = self.repository.find_series(
                template.id, starts_from=template.starts_at, include_template=False
            )
        if existing:
            logger.warning(
                f"Event {template.id} already has {len(existing)} instances from "
                f"{template.starts_at.isoformat()}, skipping expansion"
            )
            return 0

        occurrences = []
        if include_anchor:
            occurrences.append((template.starts_at, template.ends_at))
        occurrences.extend(OccurrenceExpander(template.starts_at, template.ends_at, rule))

        created = 0
        with self.repository.batch():
            for starts_at, ends_at in occurrences:
                try:
                    self.repository.add(build_instance(template, starts_at, ends_at))
                    created += 1
                except PersistenceError as exc:
                    logger.error(
                        f"Skipping occurrence {starts_at.isoformat()} of event {template.id}: {exc}"
                    )

            template.is_active = False
            self.repository.save(template)

        logger.info(
            f"Created {created} of {len(occurrences)} recurring instances for event {template.id}"
        )
        return created
