"""Pydantic schemas for authentication and user management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from securelearn.auth.models import User
from securelearn.auth.permissions import UserRole


class OAuthProfile(BaseModel):
    """Claims returned by the provider's userinfo endpoint."""

    sub: str = Field(..., description="Provider subject identifier")
    email: str | None = None
    email_verified: bool | None = None
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None


class UserResponse(BaseModel):
    """User data returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    role: UserRole
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Create response from entity."""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_image_url=user.profile_image_url,
            role=UserRole(user.role),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class UpdateRoleRequest(BaseModel):
    """Admin request to change a user's role."""

    role: UserRole
