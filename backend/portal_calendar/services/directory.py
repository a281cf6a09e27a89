from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from uuid import UUID

from sqlmodel import Session, select

from portal_calendar.models import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Read-only view of the portal's user records."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email)).one_or_none()

    def resolve_invitees(self, user_ids: Iterable[UUID]) -> List[dict]:
        """
        Build invitation entries for the given users, preserving order.

        Unknown or inactive users are skipped with a warning instead of
        failing the whole request.
        """
        ordered_ids = list(dict.fromkeys(user_ids))
        if not ordered_ids:
            return []

        users = self.session.exec(
            select(User).where(User.id.in_(ordered_ids), User.is_active == True)  # noqa: E712
        ).all()
        by_id = {user.id: user for user in users}

        invitees = []
        for user_id in ordered_ids:
            user = by_id.get(user_id)
            if user is None:
                logger.warning(f"Skipping unknown or inactive invitee {user_id}")
                continue
            invitees.append(
                {
                    "user_id": str(user.id),
                    "email": user.email,
                    "rsvp": "pending",
                    "responded_at": None,
                }
            )
        return invitees


def merge_invitees(existing: List[dict], incoming: List[dict]) -> List[dict]:
    """Take the incoming invitee order but keep responses of users still invited."""
    previous = {entry["user_id"]: entry for entry in existing}
    return [dict(previous.get(entry["user_id"], entry)) for entry in incoming]
