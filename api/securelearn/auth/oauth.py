"""Google OAuth client (authorization code flow).

Only the parts the API needs: build the authorize URL, exchange the
callback code for an access token and read the userinfo claims.
"""

from urllib.parse import urlencode

import httpx
import structlog

from securelearn.auth.schemas import OAuthProfile
from securelearn.config.settings import Settings


logger = structlog.get_logger(__name__)

OAUTH_SCOPES = ("openid", "email", "profile")


class OAuthError(Exception):
    """Provider call failed or returned unusable data."""

    def __init__(self, message: str, code: str = "auth_failed"):
        self.message = message
        self.code = code
        super().__init__(message)


class DomainRestrictedError(OAuthError):
    """Email is not on the allowed corporate domain."""

    def __init__(self, message: str = "Email domain is not allowed"):
        super().__init__(message, "domain_restricted")


class UnverifiedEmailError(OAuthError):
    """Provider has not verified the account's email."""

    def __init__(self, message: str = "Email address is not verified"):
        super().__init__(message, "email_unverified")


def is_allowed_email(email: str | None, allowed_domain: str | None) -> bool:
    """Check an email against the allowed domain (case-insensitive).

    Examples:
        >>> is_allowed_email("Ana@BootLabsTech.com", "bootlabstech.com")
        True
        >>> is_allowed_email("ana@evil-bootlabstech.com", "bootlabstech.com")
        False
    """
    if not allowed_domain:
        return True
    if not email or "@" not in email:
        return False
    return email.rsplit("@", 1)[1].lower() == allowed_domain.lower().lstrip("@")


class GoogleOAuthClient:
    """Thin httpx wrapper around the provider endpoints."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def authorize_url(self, state: str) -> str:
        """URL the browser is redirected to for consent."""
        params = {
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.oauth_redirect_uri,
            "response_type": "code",
            "scope": " ".join(OAUTH_SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        if self.settings.auth_allowed_email_domain:
            params["hd"] = self.settings.auth_allowed_email_domain
        return f"{self.settings.google_authorize_url}?{urlencode(params)}"

    async def fetch_profile(self, code: str) -> OAuthProfile:
        """Exchange an authorization code and return the user's claims.

        Raises:
            OAuthError: On transport errors or non-200 responses
            UnverifiedEmailError: If the provider has not verified the email
            DomainRestrictedError: If the email is outside the allowed domain
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.oauth_timeout_seconds
            ) as client:
                token_response = await client.post(
                    self.settings.google_token_url,
                    data={
                        "code": code,
                        "client_id": self.settings.google_client_id,
                        "client_secret": self.settings.google_client_secret,
                        "redirect_uri": self.settings.oauth_redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                if token_response.status_code != httpx.codes.OK:
                    logger.error(
                        "oauth_token_exchange_failed",
                        status_code=token_response.status_code,
                        response_text=token_response.text[:500],
                    )
                    raise OAuthError("Token exchange failed")

                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise OAuthError("Provider returned no access token")

                userinfo_response = await client.get(
                    self.settings.google_userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if userinfo_response.status_code != httpx.codes.OK:
                    logger.error(
                        "oauth_userinfo_failed",
                        status_code=userinfo_response.status_code,
                    )
                    raise OAuthError("Userinfo request failed")

                profile = OAuthProfile.model_validate(userinfo_response.json())
        except ValueError as e:
            logger.error("oauth_invalid_response", error=str(e))
            raise OAuthError("Provider returned an invalid response") from e
        except httpx.TimeoutException as e:
            logger.error("oauth_timeout", error=str(e))
            raise OAuthError("Provider timeout") from e
        except httpx.RequestError as e:
            logger.error("oauth_request_error", error=str(e))
            raise OAuthError("Provider request error") from e

        if not profile.email_verified:
            logger.warning("oauth_email_unverified", email=profile.email)
            raise UnverifiedEmailError

        if not is_allowed_email(profile.email, self.settings.auth_allowed_email_domain):
            logger.warning("oauth_domain_restricted", email=profile.email)
            raise DomainRestrictedError

        return profile
