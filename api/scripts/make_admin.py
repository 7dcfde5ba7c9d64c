"""Promote a user to admin by email.

The user must have signed in at least once.

Usage:
    cd api && python -m scripts.make_admin someone@bootlabstech.com
"""

import argparse
import asyncio
import sys

import structlog

from scripts.cluster import cassandra_session
from securelearn.auth.permissions import UserRole
from securelearn.auth.service import AuthService
from securelearn.config import get_settings


logger = structlog.get_logger(__name__)


async def make_admin(email: str) -> bool:
    """Set the ADMIN role on the user with ``email``.

    Returns:
        False when no user has that email
    """
    settings = get_settings()

    with cassandra_session(settings) as session:
        auth_service = AuthService(session=session, keyspace=settings.cassandra_keyspace)
        user = await auth_service.get_user_by_email(email)
        if user is None:
            logger.warning("make_admin_user_not_found", email=email)
            return False

        user = await auth_service.update_user_role(user.id, UserRole.ADMIN)
        logger.info(
            "make_admin_completed",
            user_id=str(user.id),
            email=user.email,
            name=user.display_name,
            role=user.role,
        )
        return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Promote a user to admin")
    parser.add_argument("email", help="Email address of the user to promote")
    args = parser.parse_args()

    if not asyncio.run(make_admin(args.email)):
        sys.exit(1)


if __name__ == "__main__":
    main()
