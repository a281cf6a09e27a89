from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from portal_calendar.core.config import settings
from portal_calendar.core.security import verify_token
from portal_calendar.db import SessionDep
from portal_calendar.models import User
from portal_calendar.services.directory import UserDirectory
from portal_calendar.services.events import EventService

# Tokens come from the portal's sign-in flow; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_current_user(
    session: SessionDep,
    token: str = Depends(oauth2_scheme),
) -> User:
    try:
        payload = verify_token(token, token_type="access")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    # Identities are matched by email, as user ids differ between systems
    user = UserDirectory(session).get_by_email(payload["email"])
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_event_service(session: SessionDep) -> EventService:
    return EventService(session)


CurrentUser = Annotated[User, Depends(get_current_user)]
EventServiceDep = Annotated[EventService, Depends(get_event_service)]
