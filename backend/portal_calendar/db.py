from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from portal_calendar.core.config import settings

logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside one transaction."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})
        enable_sqlite_savepoints(sqlite_engine)
        return sqlite_engine
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)


def init_db() -> None:
    """Create the events and users tables where no schema exists yet."""
    import portal_calendar.models  # noqa: F401  registers table metadata

    SQLModel.metadata.create_all(bind=engine)
    logger.info(f"Event store ready: {', '.join(sorted(SQLModel.metadata.tables))}")


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
