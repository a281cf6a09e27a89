"""
Persistence collaborator for event records.

Engine code depends on the ``EventRepository`` protocol only; the
application wires in ``SqlEventRepository``. Outside a batch every write
commits on its own. Inside ``batch()`` each write runs in a savepoint, so
a failing record rolls back alone and the batch commits once at the end.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, ContextManager, Iterator, List, Optional, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, or_, select

from portal_calendar.core.errors import PersistenceError
from portal_calendar.models import Event

logger = logging.getLogger(__name__)


class EventRepository(Protocol):
    """Storage operations the recurrence engine relies on."""

    def get(self, event_id: UUID) -> Optional[Event]: ...

    def add(self, event: Event) -> Event: ...

    def save(self, event: Event) -> Event: ...

    def delete(self, event: Event) -> None: ...

    def batch(self) -> ContextManager[None]: ...

    def find_series(
        self,
        template_id: UUID,
        *,
        starts_from: Optional[datetime] = None,
        include_template: bool = True,
    ) -> List[Event]: ...

    def find_visible(
        self,
        *,
        starts_after: Optional[datetime] = None,
        ends_before: Optional[datetime] = None,
        owner_email: Optional[str] = None,
    ) -> List[Event]: ...


class SqlEventRepository:
    """SQLModel-backed ``EventRepository``."""

    def __init__(self, session: Session):
        self.session = session
        self._batch_depth = 0

    def get(self, event_id: UUID) -> Optional[Event]:
        try:
            return self.session.get(Event, event_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load event {event_id}") from exc

    def add(self, event: Event) -> Event:
        self._write("create", event.id, lambda: self.session.add(event))
        self.session.refresh(event)
        return event

    def save(self, event: Event) -> Event:
        event.touch()
        self._write("update", event.id, lambda: self.session.add(event))
        self.session.refresh(event)
        return event

    def delete(self, event: Event) -> None:
        self._write("delete", event.id, lambda: self.session.delete(event))

    @contextmanager
    def batch(self) -> Iterator[None]:
        """
        Group writes into one transaction.

        Nested batches join the outermost one. An exception escaping the
        block rolls the whole batch back; ``PersistenceError`` raised by a
        single write and handled inside the block does not.
        """
        if self._batch_depth:
            self._batch_depth += 1
            try:
                yield
            finally:
                self._batch_depth -= 1
            return

        self._batch_depth = 1
        try:
            yield
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._batch_depth = 0
        self._commit("commit", "event batch")

    def find_series(
        self,
        template_id: UUID,
        *,
        starts_from: Optional[datetime] = None,
        include_template: bool = True,
    ) -> List[Event]:
        if include_template:
            membership = or_(
                Event.id == template_id, Event.original_event_id == template_id
            )
        else:
            membership = Event.original_event_id == template_id

        statement = select(Event).where(membership)
        if starts_from is not None:
            statement = statement.where(Event.starts_at >= starts_from)
        statement = statement.order_by(Event.starts_at)
        return self._all(statement, f"series {template_id}")

    def find_visible(
        self,
        *,
        starts_after: Optional[datetime] = None,
        ends_before: Optional[datetime] = None,
        owner_email: Optional[str] = None,
    ) -> List[Event]:
        statement = select(Event).where(
            Event.is_active == True,  # noqa: E712
            Event.is_deleted == False,  # noqa: E712
        )
        if starts_after:
            statement = statement.where(Event.starts_at >= starts_after)
        if ends_before:
            statement = statement.where(Event.ends_at <= ends_before)
        if owner_email:
            statement = statement.where(Event.owner_email == owner_email)
        statement = statement.order_by(Event.starts_at)
        return self._all(statement, "visible events")

    def _all(self, statement, label: str) -> List[Event]:
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not query {label}") from exc

    def _write(self, action: str, event_id: UUID, operation: Callable[[], None]) -> None:
        if not self._batch_depth:
            operation()
            self._commit(action, f"event {event_id}")
            return
        try:
            # Flushed on exit; a failure rolls back to the savepoint only
            with self.session.begin_nested():
                operation()
        except SQLAlchemyError as exc:
            logger.error(f"Failed to {action} event {event_id}: {exc}")
            raise PersistenceError(f"Could not {action} event {event_id}") from exc

    def _commit(self, action: str, label: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"Failed to {action} {label}: {exc}")
            raise PersistenceError(f"Could not {action} {label}") from exc
