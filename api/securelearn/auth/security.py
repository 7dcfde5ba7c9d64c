"""Session token utilities.

The session is a signed JWT stored in an httpOnly cookie. It carries only
the user id; the role is read from the database on every request so role
changes take effect immediately.
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from securelearn.config.settings import get_settings


SESSION_TOKEN_TYPE = "session"
OAUTH_STATE_TOKEN_TYPE = "oauth_state"
OAUTH_STATE_TTL = timedelta(minutes=10)


def _encode(claims: dict[str, Any], lifetime: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(UTC)
    to_encode = {**claims, "iat": now, "exp": now + lifetime}
    return jwt.encode(to_encode, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def _decode(token: str, expected_type: str) -> dict[str, Any]:
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )
    if payload.get("type") != expected_type:
        msg = f"Invalid token type: expected '{expected_type}'"
        raise JWTError(msg)
    return payload


def create_session_token(
    user_id: UUID | str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create the signed session token for a user.

    Args:
        user_id: Internal user id (``sub`` claim)
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(days=settings.auth_session_expire_days)
    return _encode({"sub": str(user_id), "type": SESSION_TOKEN_TYPE}, lifetime)


def decode_session_token(token: str) -> UUID:
    """Validate a session token and return the user id.

    Raises:
        JWTError: If the token is invalid, expired, of the wrong type or
            does not carry a UUID subject
    """
    payload = _decode(token, SESSION_TOKEN_TYPE)
    try:
        return UUID(payload["sub"])
    except (KeyError, ValueError) as e:
        msg = "Session token has no valid subject"
        raise JWTError(msg) from e


def create_oauth_state() -> str:
    """Create a short-lived signed ``state`` parameter for the OAuth flow."""
    return _encode(
        {"nonce": secrets.token_urlsafe(16), "type": OAUTH_STATE_TOKEN_TYPE},
        OAUTH_STATE_TTL,
    )


def verify_oauth_state(state: str | None) -> bool:
    """Check a ``state`` value returned by the provider."""
    if not state:
        return False
    try:
        _decode(state, OAUTH_STATE_TOKEN_TYPE)
    except JWTError:
        return False
    return True
