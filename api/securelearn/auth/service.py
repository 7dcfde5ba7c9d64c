"""User management service.

Users are created and refreshed by the OAuth callback (upsert keyed by the
provider's subject id). Roles only change through the admin endpoint or
the make_admin script.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from securelearn.auth.models import User
from securelearn.auth.permissions import UserRole
from securelearn.auth.schemas import OAuthProfile, UserResponse
from securelearn.core.rows import utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserNotFoundError(AuthError):
    """User does not exist."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Service for user lookup, OAuth upsert and role management."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with aexecute()
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_id_by_external_id = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.users_by_external_id "
            "WHERE external_id = ?"
        )
        self._list_users = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, external_id, email, first_name, last_name, profile_image_url,
             role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_external_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_external_id (external_id, user_id)
            VALUES (?, ?)
        """)
        self._update_profile = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET email = ?, first_name = ?, last_name = ?, profile_image_url = ?,
                updated_at = ?
            WHERE id = ?
        """)
        self._update_user_role = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET role = ?, updated_at = ?
            WHERE id = ?
        """)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address (case-insensitive)."""
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_external_id(self, external_id: str) -> User | None:
        """Find user by OAuth subject id."""
        result = await self.session.aexecute(
            self._get_user_id_by_external_id, [external_id]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_user_by_id(row.user_id)

    async def list_users(self) -> list[User]:
        """All users, sorted by email."""
        rows = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in rows]
        return sorted(users, key=lambda u: (u.email or "", str(u.id)))

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Batch lookup used by the admin reports."""
        users: dict[UUID, User] = {}
        for user_id in set(user_ids):
            user = await self.get_user_by_id(user_id)
            if user:
                users[user_id] = user
        return users

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def upsert_oauth_user(self, profile: OAuthProfile) -> User:
        """Create the user on first login, refresh profile fields afterwards.

        The role of an existing user is never touched here.
        """
        now = utcnow()
        existing = await self.get_user_by_external_id(profile.sub)

        if existing:
            existing.email = profile.email.lower().strip() if profile.email else None
            existing.first_name = profile.given_name
            existing.last_name = profile.family_name
            existing.profile_image_url = profile.picture
            existing.updated_at = now
            await self.session.aexecute(
                self._update_profile,
                [
                    existing.email,
                    existing.first_name,
                    existing.last_name,
                    existing.profile_image_url,
                    existing.updated_at,
                    existing.id,
                ],
            )
            logger.info("user_profile_refreshed", user_id=str(existing.id))
            return existing

        user = User(
            external_id=profile.sub,
            email=profile.email,
            first_name=profile.given_name,
            last_name=profile.family_name,
            profile_image_url=profile.picture,
            role=UserRole.EMPLOYEE.value,
            created_at=now,
            updated_at=now,
        )
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.external_id,
                user.email,
                user.first_name,
                user.last_name,
                user.profile_image_url,
                user.role,
                user.created_at,
                user.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_external_id, [user.external_id, user.id]
        )
        logger.info("user_created", user_id=str(user.id))
        return user

    async def update_user_role(self, user_id: UUID, new_role: UserRole) -> User:
        """Change a user's role.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError

        user.role = new_role.value
        user.updated_at = utcnow()
        await self.session.aexecute(
            self._update_user_role,
            [user.role, user.updated_at, user.id],
        )
        logger.info("user_role_updated", user_id=str(user_id), role=user.role)
        return user

    def to_response(self, user: User) -> UserResponse:
        """Convert User entity to response schema."""
        return UserResponse.from_user(user)
