"""
Create (or promote) an admin account from the command line.

    python -m kiosk.scripts.create_admin --username alice
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys

from sqlalchemy import select

from kiosk.core.security import get_password_hash
from kiosk.db.base import Base
from kiosk.db.session import async_session_factory, engine
from kiosk.models.employee import ActivityLog, Employee  # noqa: F401
from kiosk.models.notification_settings import NotificationSettings  # noqa: F401
from kiosk.models.user import User
from kiosk.schemas.user import UserCreate

logger = logging.getLogger("kiosk.scripts.create_admin")


async def create_admin(username: str, password: str) -> str:
    """Insert an admin user, or promote and re-password an existing one."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            session.add(
                User(username=username, hashed_password=get_password_hash(password), role="admin")
            )
            outcome = "created"
        else:
            user.hashed_password = get_password_hash(password)
            user.role = "admin"
            outcome = "updated"
        await session.commit()

    await engine.dispose()
    return outcome


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Create a kiosk admin account")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Password: ")
    try:
        # Same username and password rules as the register endpoint
        UserCreate(username=args.username, password=password, role="admin")
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    outcome = asyncio.run(create_admin(args.username, password))
    logger.info("Admin %s %s", args.username, outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
