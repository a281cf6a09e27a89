#!/usr/bin/env python3
"""
Add (or reactivate) a directory user and print an access token for
local testing of the calendar API.

Usage:
    python scripts/create_user.py someone@example.com --name "Some One"
"""

import argparse
import logging
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

from sqlmodel import Session, select

from portal_calendar.core.logging_config import configure_logging
from portal_calendar.core.security import create_access_token
from portal_calendar.db import engine, init_db
from portal_calendar.models import User

logger = logging.getLogger("create_user")


def create_user(email: str, full_name: str | None = None) -> User:
    email = email.strip().lower()
    with Session(engine) as session:
        user = session.exec(select(User).where(User.email == email)).first()
        if user:
            logger.info(f"User {email} already exists, reactivating")
            user.is_active = True
            if full_name:
                user.full_name = full_name
        else:
            user = User(email=email, full_name=full_name)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


if __name__ == "__main__":
    configure_logging()
    parser = argparse.ArgumentParser(description="Create a calendar directory user")
    parser.add_argument("email")
    parser.add_argument("--name", default=None, help="full name")
    args = parser.parse_args()

    init_db()
    user = create_user(args.email, args.name)
    logger.info(f"User {user.email} ready (id {user.id})")
    print(create_access_token(user.id, user.email))
