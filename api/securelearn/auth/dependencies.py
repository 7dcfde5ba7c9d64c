"""FastAPI dependencies for authentication.

Provides dependency injection for:
- AuthService and OAuth client
- Current user extraction from the session cookie
- Role-based access control
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from securelearn.auth.oauth import GoogleOAuthClient
from securelearn.auth.permissions import UserRole, has_permission
from securelearn.auth.schemas import UserResponse
from securelearn.auth.security import decode_session_token
from securelearn.auth.service import AuthService
from securelearn.config.settings import get_settings
from securelearn.core.context import set_user_id


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function."""
    global _auth_service_getter
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    if _auth_service_getter is None:
        msg = "AuthService not configured"
        raise RuntimeError(msg)
    return _auth_service_getter()


def get_oauth_client() -> GoogleOAuthClient:
    """Build the OAuth client from settings."""
    return GoogleOAuthClient(get_settings())


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
OAuthClientDep = Annotated[GoogleOAuthClient, Depends(get_oauth_client)]


# ==============================================================================
# Current User
# ==============================================================================


def get_session_token(request: Request) -> str | None:
    """Read the session token from its httpOnly cookie."""
    return request.cookies.get(get_settings().auth_cookie_name)


async def get_current_user(
    token: Annotated[str | None, Depends(get_session_token)],
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Resolve the authenticated user from the session cookie.

    The user is re-read from the database so the role is always current.

    Raises:
        HTTPException(401): If the cookie is missing, invalid or expired,
            or the user no longer exists
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    try:
        user_id = decode_session_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        ) from e

    user = await auth_service.get_user_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    set_user_id(user.id)
    return UserResponse.from_user(user)


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level.

    Example:
        @router.get("/admin/stats")
        async def stats(
            user: Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]
        ):
            ...
    """

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden - Admin access required",
            )
        return user

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
AdminUser = Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]
