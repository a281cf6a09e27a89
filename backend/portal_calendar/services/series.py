"""
Edits and deletions that span a recurring series.

A series is a hidden template plus the instances materialized from it.
"Future" operations act on every record of the series that starts at or
after the cutoff (the start of the occurrence the caller picked) and
leave earlier records untouched. Batch loops are best-effort: a record
that fails to persist is logged and the loop moves on. Regeneration and
future deletes run inside one repository batch; the field-update loop
mutates records before writing them, so it commits record by record.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from portal_calendar.core.errors import NotFoundError, PersistenceError, ValidationError
from portal_calendar.models import Event
from portal_calendar.schemas.recurrence import RecurrenceRule
from portal_calendar.services.directory import merge_invitees
from portal_calendar.services.materializer import InstanceMaterializer
from portal_calendar.services.recurrence import load_rule
from portal_calendar.services.repository import EventRepository

logger = logging.getLogger(__name__)

TIMING_FIELDS = ("starts_at", "ends_at")


def resolve_template(repository: EventRepository, event: Event) -> Event:
    if event.role != "instance":
        return event
    template = repository.get(event.original_event_id)
    if template is None:
        raise NotFoundError("Recurring template", event.original_event_id)
    return template


def _check_timing(starts_at: datetime, ends_at: datetime) -> None:
    if ends_at <= starts_at:
        raise ValidationError("ends_at must be greater than starts_at", field="ends_at")


def _timing_shift(origin: Event, fields: Dict[str, Any]) -> Tuple[timedelta, timedelta]:
    """Translate absolute start/end edits on one occurrence into offsets."""
    start_shift = timedelta(0)
    if fields.get("starts_at") is not None:
        start_shift = fields["starts_at"] - origin.starts_at
    end_shift = start_shift
    if fields.get("ends_at") is not None:
        end_shift = fields["ends_at"] - origin.ends_at
    return start_shift, end_shift


def _apply_fields(event: Event, fields: Dict[str, Any]) -> None:
    for field, value in fields.items():
        if field == "invited_users":
            value = merge_invitees(event.invited_users, value)
        setattr(event, field, copy.deepcopy(value))


class SeriesEditor:
    """Applies field changes to one occurrence or to a series from a cutoff on."""

    def __init__(self, repository: EventRepository, materializer: InstanceMaterializer):
        self.repository = repository
        self.materializer = materializer

    def apply_single(self, target: Event, fields: Dict[str, Any]) -> int:
        _check_timing(
            fields.get("starts_at") or target.starts_at,
            fields.get("ends_at") or target.ends_at,
        )
        _apply_fields(target, fields)
        if target.role == "instance":
            target.is_modified_instance = True
        self.repository.save(target)
        return 1

    def apply_future(
        self,
        origin: Event,
        fields: Dict[str, Any],
        new_rule: Optional[RecurrenceRule] = None,
    ) -> int:
        """
        Apply ``fields`` to ``origin`` and every later record of its series.

        Start/end changes are taken relative to ``origin`` and applied to
        each record as a shift. When ``new_rule`` differs from the stored
        rule the instances from the cutoff (or from the new anchor, when the
        edit moves it earlier) are discarded and the series is expanded
        again from the new anchor in one transaction.

        Returns:
            Number of records updated or regenerated, template included.
        """
        if origin.role == "single":
            return self.apply_single(origin, fields)

        template = resolve_template(self.repository, origin)
        cutoff = origin.starts_at
        start_shift, end_shift = _timing_shift(origin, fields)
        _check_timing(origin.starts_at + start_shift, origin.ends_at + end_shift)
        plain = {k: v for k, v in fields.items() if k not in TIMING_FIELDS}

        regenerate = new_rule is not None and not new_rule.same_shape(
            load_rule(template.recurrence)
        )

        origin_is_instance = origin is not template
        if origin_is_instance and (cutoff > template.starts_at or regenerate):
            # The series anchor moves forward to the edited occurrence
            template.starts_at = origin.starts_at
            template.ends_at = origin.ends_at

        _apply_fields(template, plain)
        template.starts_at += start_shift
        template.ends_at += end_shift
        if regenerate:
            template.recurrence = new_rule.to_storage()
        self.repository.save(template)
        updated = 1

        if regenerate:
            # Also clears instances between an earlier new anchor and the cutoff
            boundary = min(cutoff, template.starts_at)
            stale = self.repository.find_series(
                template.id, starts_from=boundary, include_template=False
            )
            with self.repository.batch():
                discarded = self._discard(stale)
                created = self.materializer.materialize(
                    template, include_anchor=origin_is_instance, force=True
                )
            logger.info(
                f"Regenerated series {template.id} from {cutoff.isoformat()}: "
                f"{discarded} discarded, {created} created"
            )
            return updated + created

        future_instances = self.repository.find_series(
            template.id, starts_from=cutoff, include_template=False
        )
        for instance in future_instances:
            instance_id = instance.id
            try:
                _apply_fields(instance, plain)
                instance.starts_at += start_shift
                instance.ends_at += end_shift
                self.repository.save(instance)
                updated += 1
            except PersistenceError as exc:
                logger.error(f"Failed to update instance {instance_id} of series {template.id}: {exc}")

        logger.info(
            f"Updated {updated} events of series {template.id} from {cutoff.isoformat()}"
        )
        return updated

    def _discard(self, instances: List[Event]) -> int:
        discarded = 0
        for instance in instances:
            instance_id = instance.id
            try:
                self.repository.delete(instance)
                discarded += 1
            except PersistenceError as exc:
                logger.error(f"Failed to discard instance {instance_id}: {exc}")
        return discarded


class SeriesPruner:
    """Hard-deletes one occurrence or a series from a cutoff on."""

    def __init__(self, repository: EventRepository):
        self.repository = repository

    def delete_single(self, event: Event) -> int:
        if event.role == "template":
            raise ValidationError(
                "A recurring template cannot be deleted on its own; delete the series instead"
            )
        self.repository.delete(event)
        return 1

    def delete_future(self, origin: Event) -> int:
        if origin.role == "single":
            return self.delete_single(origin)

        # Past instances may outlive their template, so go by id
        template_id = origin.original_event_id if origin.role == "instance" else origin.id
        cutoff = origin.starts_at
        doomed = self.repository.find_series(template_id, starts_from=cutoff)
        # Template last, after its instances
        doomed.sort(key=lambda record: record.id == template_id)

        deleted = 0
        with self.repository.batch():
            for record in doomed:
                record_id = record.id
                try:
                    self.repository.delete(record)
                    deleted += 1
                except PersistenceError as exc:
                    logger.error(
                        f"Failed to delete event {record_id} of series {template_id}: {exc}"
                    )

        logger.info(
            f"Deleted {deleted} of {len(doomed)} events of series {template_id} "
            f"from {cutoff.isoformat()}"
        )
        return deleted
