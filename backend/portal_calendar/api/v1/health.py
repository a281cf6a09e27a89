import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from portal_calendar.core.config import settings
from portal_calendar.db import SessionDep
from portal_calendar.models import Event

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", summary="Health check", tags=["health"])
def read_health() -> dict[str, str]:
    """Liveness probe; does not touch the database."""
    return {"status": "ok", "service": settings.PROJECT_NAME}


@router.get("/ready", summary="Readiness check", tags=["health"])
def read_ready(session: SessionDep):
    """Readiness probe: the events table must exist and answer a count."""
    try:
        total = session.exec(select(func.count()).select_from(Event)).one()
    except SQLAlchemyError as exc:
        logger.error(f"Readiness check failed: {exc}")
        detail = str(exc) if settings.ENVIRONMENT != "production" else "Event store unavailable"
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "disconnected", "error": detail},
        )
    return {"status": "ready", "database": "connected", "events": total}
