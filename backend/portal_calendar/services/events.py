"""
Event service.

Entry points used by the HTTP layer: create, update, delete, list,
fetch and RSVP. Recurring series are delegated to the materializer and
the series editor/pruner.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple
from uuid import UUID

from sqlmodel import Session

from portal_calendar.core.config import settings
from portal_calendar.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from portal_calendar.models import Event, User
from portal_calendar.schemas import EventCreate, EventUpdate
from portal_calendar.services.directory import UserDirectory
from portal_calendar.services.materializer import InstanceMaterializer
from portal_calendar.services.repository import EventRepository, SqlEventRepository
from portal_calendar.services.series import SeriesEditor, SeriesPruner

logger = logging.getLogger(__name__)

UpdateScope = Literal["single", "future"]
DeleteScope = Literal["single", "series"]


def can_view(event: Event, user: User) -> bool:
    if event.privacy == "public":
        return True
    if event.owner_email.lower() == user.email.lower():
        return True
    return event.invitee(user.id) is not None


def ensure_can_edit(event: Event, user: User) -> None:
    # Public events stay editable by anyone, as in the portal's calendar
    if event.privacy == "public" or event.owner_email.lower() == user.email.lower():
        return
    raise PermissionDeniedError("Not authorized to modify this event")


class EventService:
    """Calendar operations for a single request."""

    def __init__(self, session: Session, repository: Optional[EventRepository] = None):
        self.repository = repository or SqlEventRepository(session)
        self.directory = UserDirectory(session)
        self.materializer = InstanceMaterializer(self.repository)
        self.editor = SeriesEditor(self.repository, self.materializer)
        self.pruner = SeriesPruner(self.repository)

    def _get(self, event_id: UUID) -> Event:
        event = self.repository.get(event_id)
        if event is None or event.is_deleted:
            raise NotFoundError("Event", event_id)
        return event

    def get_event(self, event_id: UUID, viewer: User) -> Event:
        event = self._get(event_id)
        if not can_view(event, viewer):
            raise PermissionDeniedError("Access to event denied")
        return event

    def list_visible_events(
        self,
        viewer: User,
        *,
        starts_after: Optional[datetime] = None,
        ends_before: Optional[datetime] = None,
        mine: bool = False,
    ) -> List[Event]:
        """Events the viewer may see; templates and deleted records never appear."""
        events = self.repository.find_visible(
            starts_after=starts_after,
            ends_before=ends_before,
            owner_email=viewer.email if mine else None,
        )
        visible = [event for event in events if can_view(event, viewer)]
        logger.debug(f"Found {len(visible)} events for user {viewer.email}")
        return visible

    def create_event(self, payload: EventCreate, owner: User) -> Event:
        rule = payload.recurrence
        if rule and rule.end_date and rule.end_date.date() < payload.starts_at.date():
            raise ValidationError("Recurrence end_date is before the event start", field="recurrence")

        event = Event(
            title=payload.title,
            description=payload.description,
            location=payload.location,
            starts_at=payload.starts_at,
            ends_at=payload.ends_at,
            all_day=payload.all_day,
            color=payload.color or settings.DEFAULT_EVENT_COLOR,
            privacy=payload.privacy,
            owner_id=owner.id,
            owner_email=owner.email,
            invited_users=self.directory.resolve_invitees(payload.invited_user_ids),
            recurrence=rule.to_storage() if rule and rule.is_recurring else None,
        )
        if payload.reminders is not None:
            event.reminders = [reminder.model_dump() for reminder in payload.reminders]
        if event.role != "template":
            self.repository.add(event)
            logger.info(f"Created event {event.id}")
            return event

        # Template and instances commit together
        with self.repository.batch():
            self.repository.add(event)
            created = self.materializer.materialize(event)
        logger.info(f"Created recurring event {event.id} with {created} instances")
        return event

    def update_event(
        self,
        event_id: UUID,
        payload: EventUpdate,
        caller: User,
        scope: UpdateScope = "single",
    ) -> Tuple[int, Event]:
        """
        Update one event or a series from the given occurrence on.

        Returns:
            Tuple of (records updated, event to show the caller). After a
            regeneration the edited occurrence may have been replaced, in
            which case the template is returned.
        """
        event = self._get(event_id)
        ensure_can_edit(event, caller)

        fields = self._collect_fields(payload)
        new_rule = payload.recurrence if "recurrence" in payload.model_fields_set else None
        template_id = event.original_event_id or event.id

        if event.role == "single":
            updated = self.editor.apply_single(event, fields)
            if new_rule is not None and new_rule.is_recurring:
                event.recurrence = new_rule.to_storage()
                self.repository.save(event)
                updated += self.materializer.materialize(event)
            return updated, event

        if scope == "future":
            updated = self.editor.apply_future(event, fields, new_rule)
        else:
            if new_rule is not None:
                raise ValidationError(
                    "Changing the recurrence requires scope=future", field="recurrence"
                )
            updated = self.editor.apply_single(event, fields)

        current = self.repository.get(event_id) or self.repository.get(template_id)
        logger.info(f"Updated event {event_id} (scope: {scope}, events: {updated})")
        return updated, current

    def delete_event(
        self,
        event_id: UUID,
        caller: User,
        scope: DeleteScope = "single",
    ) -> int:
        event = self._get(event_id)
        ensure_can_edit(event, caller)

        if scope == "series":
            deleted = self.pruner.delete_future(event)
        else:
            deleted = self.pruner.delete_single(event)
        logger.info(f"Deleted event {event_id} (scope: {scope}, events: {deleted})")
        return deleted

    def respond_to_invitation(
        self,
        event_id: UUID,
        user: User,
        rsvp: Literal["accepted", "declined", "maybe"],
    ) -> Event:
        event = self._get(event_id)
        if event.invitee(user.id) is None:
            raise PermissionDeniedError("You are not invited to this event")

        responded_at = datetime.utcnow().isoformat()
        event.invited_users = [
            {**entry, "rsvp": rsvp, "responded_at": responded_at}
            if entry.get("user_id") == str(user.id)
            else dict(entry)
            for entry in event.invited_users
        ]
        self.repository.save(event)
        logger.info(f"User {user.email} responded {rsvp} to event {event_id}")
        return event

    def _collect_fields(self, payload: EventUpdate) -> Dict[str, Any]:
        fields = payload.model_dump(
            exclude_unset=True,
            exclude={"invited_user_ids", "recurrence", "reminders"},
        )
        for name in (
            "title",
            "description",
            "location",
            "starts_at",
            "ends_at",
            "all_day",
            "privacy",
            "color",
        ):
            if name in fields and fields[name] is None:
                raise ValidationError(f"{name} cannot be null", field=name)
        if "description" in fields:
            fields["description"] = fields["description"].strip()
        if "location" in fields:
            fields["location"] = fields["location"].strip()
        if payload.reminders is not None:
            fields["reminders"] = [reminder.model_dump() for reminder in payload.reminders]
        if payload.invited_user_ids is not None:
            fields["invited_users"] = self.directory.resolve_invitees(payload.invited_user_ids)
        return fields
