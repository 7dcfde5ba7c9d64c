"""Authentication API endpoints.

OAuth login restricted to the corporate email domain, session cookie
management and the current-user endpoint.
"""

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from securelearn.auth.dependencies import AuthServiceDep, CurrentUser, OAuthClientDep
from securelearn.auth.oauth import OAuthError
from securelearn.auth.schemas import UserResponse
from securelearn.auth.security import (
    create_oauth_state,
    create_session_token,
    verify_oauth_state,
)
from securelearn.auth.service import AuthError
from securelearn.config.settings import get_settings
from securelearn.core.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

OAUTH_STATE_COOKIE = "securelearn_oauth_state"


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "auth_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


def _error_redirect(reason: str) -> RedirectResponse:
    response = RedirectResponse(url=f"/?error={reason}", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth")
    return response


@router.get("/login", include_in_schema=False)
async def login() -> RedirectResponse:
    """Entry point used by the client's sign-in button."""
    return RedirectResponse(url="/api/auth/google")


@router.get("/auth/google", include_in_schema=False)
async def google_login(oauth_client: OAuthClientDep) -> RedirectResponse:
    """Redirect to the provider's consent screen."""
    settings = get_settings()
    if not settings.oauth_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sign-in is not configured",
        )

    state = create_oauth_state()
    response = RedirectResponse(url=oauth_client.authorize_url(state))
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        max_age=10 * 60,
        path="/api/auth",
    )
    return response


@router.get("/auth/callback/google", include_in_schema=False)
async def google_callback(
    request: Request,
    oauth_client: OAuthClientDep,
    auth_service: AuthServiceDep,
    code: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """Finish the OAuth flow: upsert the user and start a session.

    Failures never surface as API errors; the browser is sent back to the
    client with ``?error=<code>`` (``domain_restricted``, ``email_unverified``
    or ``auth_failed``).
    """
    settings = get_settings()

    cookie_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not code or not verify_oauth_state(state) or state != cookie_state:
        logger.warning("oauth_callback_rejected", has_code=bool(code))
        return _error_redirect("auth_failed")

    try:
        profile = await oauth_client.fetch_profile(code)
    except OAuthError as e:
        return _error_redirect(e.code)

    user = await auth_service.upsert_oauth_user(profile)
    logger.info("user_logged_in", user_id=str(user.id))

    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth")
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=create_session_token(user.id),
        httponly=settings.auth_cookie_httponly,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        max_age=settings.auth_session_expire_days * 24 * 60 * 60,
        path="/",
    )
    return response


@router.get("/logout", include_in_schema=False)
async def logout() -> RedirectResponse:
    """Clear the session cookie and return to the client."""
    settings = get_settings()
    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return response


@router.get(
    "/auth/user",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(user: CurrentUser) -> UserResponse:
    """Return the authenticated user (401 when not signed in)."""
    return user
