"""
Remove every event (single events, recurring templates and their
instances) from the database. Users are kept.

Usage:
    python scripts/delete_all_events.py [--yes]
"""

import argparse
import logging
import sys
from pathlib import Path

# Make the backend package importable when run from a checkout
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from sqlalchemy import delete, func
from sqlmodel import Session, select

from portal_calendar.core.logging_config import configure_logging
from portal_calendar.db import engine
from portal_calendar.models import Event

logger = logging.getLogger("delete_all_events")


def delete_all_events(assume_yes: bool = False) -> int:
    with Session(engine) as session:
        total = session.exec(select(func.count()).select_from(Event)).one()
        templates = session.exec(
            select(func.count()).select_from(Event).where(Event.is_active == False)  # noqa: E712
        ).one()
        instances = session.exec(
            select(func.count()).select_from(Event).where(Event.is_recurring_instance == True)  # noqa: E712
        ).one()

        logger.info(f"Found {total} events ({templates} hidden templates, {instances} instances)")
        if total == 0:
            logger.info("Nothing to delete")
            return 0

        if not assume_yes:
            response = input(f"Delete all {total} events? (yes/no): ")
            if response.lower() not in ("yes", "y"):
                logger.info("Cancelled")
                return 0

        try:
            session.execute(delete(Event))
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Failed to delete events")
            raise

        logger.info(f"Deleted {total} events; users were kept")
        return total


if __name__ == "__main__":
    configure_logging()
    parser = argparse.ArgumentParser(description="Delete all calendar events")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    args = parser.parse_args()
    delete_all_events(assume_yes=args.yes)
