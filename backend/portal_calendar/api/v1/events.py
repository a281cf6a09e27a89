from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from portal_calendar.api.deps import CurrentUser, EventServiceDep
from portal_calendar.core.config import settings
from portal_calendar.core.errors import NotFoundError
from portal_calendar.core.limiter import limiter
from portal_calendar.schemas import (
    DeleteResult,
    EventCreate,
    EventRead,
    EventUpdate,
    RsvpUpdate,
    UpdateResult,
)
from portal_calendar.schemas.recurrence import to_naive_utc

router = APIRouter()


def resolve_event_reference(event_ref: str) -> UUID:
    """
    Turn a path reference into an event id.

    Calendar views address an occurrence as ``<eventId>_<occurrenceIndex>``;
    only the part before the first underscore identifies the record.
    """
    raw_id = event_ref.split("_", 1)[0]
    try:
        return UUID(raw_id)
    except ValueError:
        raise NotFoundError("Event", event_ref) from None


@router.get("/", response_model=List[EventRead], summary="List visible events")
def list_events(
    service: EventServiceDep,
    current_user: CurrentUser,
    starts_after: Optional[datetime] = Query(
        default=None, alias="from", description="ISO timestamp filter start"
    ),
    ends_before: Optional[datetime] = Query(
        default=None, alias="to", description="ISO timestamp filter end"
    ),
    mine: bool = Query(default=False, description="Only events owned by the caller"),
) -> List[EventRead]:
    events = service.list_visible_events(
        current_user,
        starts_after=to_naive_utc(starts_after) if starts_after else None,
        ends_before=to_naive_utc(ends_before) if ends_before else None,
        mine=mine,
    )
    return [EventRead.model_validate(event) for event in events]


@router.get("/{event_ref}", response_model=EventRead, summary="Get event by id")
def get_event(
    event_ref: str,
    service: EventServiceDep,
    current_user: CurrentUser,
) -> EventRead:
    event = service.get_event(resolve_event_reference(event_ref), current_user)
    return EventRead.model_validate(event)


@router.post(
    "/",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
@limiter.limit(settings.RATE_LIMIT_CREATE_EVENT)
def create_event(
    request: Request,
    payload: EventCreate,
    service: EventServiceDep,
    current_user: CurrentUser,
) -> EventRead:
    event = service.create_event(payload, current_user)
    return EventRead.model_validate(event)


@router.put("/{event_ref}", response_model=UpdateResult, summary="Update event")
def update_event(
    event_ref: str,
    payload: EventUpdate,
    service: EventServiceDep,
    current_user: CurrentUser,
    scope: Literal["single", "future"] = Query(
        default="single",
        description="single: only this occurrence, future: this and all later occurrences",
    ),
) -> UpdateResult:
    updated_count, event = service.update_event(
        resolve_event_reference(event_ref), payload, current_user, scope=scope
    )
    return UpdateResult(updated_count=updated_count, event=EventRead.model_validate(event))


@router.delete("/{event_ref}", response_model=DeleteResult, summary="Delete event")
def delete_event(
    event_ref: str,
    service: EventServiceDep,
    current_user: CurrentUser,
    scope: Literal["single", "series"] = Query(
        default="single",
        description="single: only this occurrence, series: this and all later occurrences",
    ),
) -> DeleteResult:
    deleted_count = service.delete_event(
        resolve_event_reference(event_ref), current_user, scope=scope
    )
    return DeleteResult(deleted_count=deleted_count)


@router.post("/{event_ref}/rsvp", response_model=EventRead, summary="Respond to invitation")
def respond_to_invitation(
    event_ref: str,
    payload: RsvpUpdate,
    service: EventServiceDep,
    current_user: CurrentUser,
) -> EventRead:
    event = service.respond_to_invitation(
        resolve_event_reference(event_ref), current_user, payload.rsvp
    )
    return EventRead.model_validate(event)
