"""Seed an administrator account.

Usage:
    python -m backoffice.scripts.create_admin --name "Jane Doe" --email jane@example.com --password s3cret-pass
"""
import argparse
import asyncio
import getpass
import logging

from fastapi import HTTPException

from backoffice.core.config import get_settings
from backoffice.core.errors import AppError
from backoffice.core.log_config import configure_logging
from backoffice.db.base import AsyncSessionLocal
from backoffice.db.models.admin import ADMIN_ROLES
from backoffice.services.auth_service import create_admin

logger = logging.getLogger(__name__)


async def seed_admin(name: str, email: str, password: str, role: str) -> None:
    async with AsyncSessionLocal() as db:
        admin = await create_admin(name, email, password, db, role=role)
        logger.info(f"Created {admin.role} {admin.email} ({admin.id})")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a back office administrator")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="prompted for when omitted")
    parser.add_argument("--role", choices=ADMIN_ROLES, default="admin")
    args = parser.parse_args(argv)

    configure_logging(get_settings().LOG_LEVEL)
    password = args.password or getpass.getpass("Password: ")

    try:
        asyncio.run(seed_admin(args.name, args.email, password, args.role))
    except HTTPException as e:
        logger.error(e.detail)
        return 1
    except AppError as e:
        logger.error(e.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
