"""Database models for authentication.

Cassandra table definitions for:
- Users: main user table, looked up by id or email
- UsersByExternalId: lookup table from OAuth subject to user id

Users are created on first OAuth login and never hard-deleted.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from securelearn.auth.permissions import UserRole
from securelearn.core.rows import ensure_utc_aware


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    external_id TEXT,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    profile_image_url TEXT,
    role TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USERS_BY_EXTERNAL_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_external_id (
    external_id TEXT PRIMARY KEY,
    user_id UUID
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USERS_BY_EXTERNAL_ID_TABLE_CQL,
]


class User:
    """Employee or admin account.

    Attributes:
        id: Internal UUID
        external_id: OAuth subject identifier
        email: Lower-cased email address
        first_name: Given name from the provider (optional)
        last_name: Family name from the provider (optional)
        profile_image_url: Avatar URL from the provider (optional)
        role: employee or admin
        created_at: First login timestamp
        updated_at: Last profile refresh or role change
    """

    def __init__(
        self,
        id: UUID | None = None,
        external_id: str = "",
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image_url: str | None = None,
        role: str = UserRole.EMPLOYEE.value,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.external_id = external_id
        self.email = email.lower().strip() if email else None
        self.first_name = first_name
        self.last_name = last_name
        self.profile_image_url = profile_image_url
        self.role = role or UserRole.EMPLOYEE.value
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def display_name(self) -> str | None:
        """First and last name joined, or None when both are blank."""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name.strip() or None

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            external_id=row.external_id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            profile_image_url=row.profile_image_url,
            role=row.role,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_image_url": self.profile_image_url,
            "role": self.role,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
