"""Role-based access control for SecureLearn.

Two roles:
- ADMIN (level 1): manages training content and sees compliance reports
- EMPLOYEE (level 0): takes training and assessments
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    EMPLOYEE = "employee"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.EMPLOYEE: 0,
    UserRole.ADMIN: 1,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (0 for unknown roles)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.EMPLOYEE)
        True
        >>> has_permission("employee", "admin")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return get_role_level(role) >= ROLE_HIERARCHY[UserRole.ADMIN]
