"""Tests for the OAuth client and login callback."""

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from securelearn.auth.models import User
from securelearn.auth.oauth import (
    DomainRestrictedError,
    GoogleOAuthClient,
    OAuthError,
    UnverifiedEmailError,
    is_allowed_email,
)
from securelearn.auth.schemas import OAuthProfile
from securelearn.auth.security import create_oauth_state, decode_session_token
from securelearn.config import Settings


@pytest.fixture
def oauth_settings() -> Settings:
    return Settings(
        environment="testing",
        google_client_id="client-id",
        google_client_secret="client-secret",
        oauth_base_url="https://learn.bootlabstech.com",
        auth_allowed_email_domain="bootlabstech.com",
    )


def install_transport(
    monkeypatch: pytest.MonkeyPatch,
    handler: Callable[[httpx.Request], httpx.Response],
) -> None:
    """Route the client's HTTP calls to ``handler``."""
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", factory)


def provider(userinfo: dict, token_status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            return httpx.Response(token_status, json={"access_token": "at-123"})
        return httpx.Response(200, json=userinfo)

    return handler


class TestIsAllowedEmail:
    @pytest.mark.parametrize(
        "email,allowed",
        [
            ("ana@bootlabstech.com", True),
            ("Ana@BOOTLABSTECH.COM", True),
            ("ana@gmail.com", False),
            ("ana@sub.bootlabstech.com", False),
            ("ana@bootlabstech.com.evil.io", False),
            ("not-an-email", False),
            (None, False),
        ],
    )
    def test_domain_match(self, email: str | None, allowed: bool) -> None:
        assert is_allowed_email(email, "bootlabstech.com") is allowed

    def test_no_restriction_when_domain_unset(self) -> None:
        assert is_allowed_email("anyone@example.org", None) is True


class TestGoogleOAuthClient:
    def test_authorize_url_carries_state_and_redirect(self, oauth_settings: Settings) -> None:
        url = GoogleOAuthClient(oauth_settings).authorize_url("state-xyz")
        query = parse_qs(urlparse(url).query)
        assert query["state"] == ["state-xyz"]
        assert query["client_id"] == ["client-id"]
        assert query["redirect_uri"] == [
            "https://learn.bootlabstech.com/api/auth/callback/google"
        ]
        assert query["hd"] == ["bootlabstech.com"]

    @pytest.mark.asyncio
    async def test_fetch_profile_returns_claims(
        self, oauth_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        install_transport(
            monkeypatch,
            provider(
                {
                    "sub": "g-1",
                    "email": "ana@bootlabstech.com",
                    "email_verified": True,
                    "given_name": "Ana",
                }
            ),
        )
        profile = await GoogleOAuthClient(oauth_settings).fetch_profile("code")
        assert profile.sub == "g-1"
        assert profile.given_name == "Ana"

    @pytest.mark.asyncio
    async def test_fetch_profile_rejects_other_domains(
        self, oauth_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        install_transport(
            monkeypatch,
            provider({"sub": "g-2", "email": "ana@gmail.com", "email_verified": True}),
        )
        with pytest.raises(DomainRestrictedError) as exc_info:
            await GoogleOAuthClient(oauth_settings).fetch_profile("code")
        assert exc_info.value.code == "domain_restricted"

    @pytest.mark.parametrize("verified", [False, None])
    @pytest.mark.asyncio
    async def test_fetch_profile_rejects_unverified_email(
        self, oauth_settings: Settings, monkeypatch: pytest.MonkeyPatch, verified: bool | None
    ) -> None:
        claims = {"sub": "g-3", "email": "ana@bootlabstech.com"}
        if verified is not None:
            claims["email_verified"] = verified
        install_transport(monkeypatch, provider(claims))

        with pytest.raises(UnverifiedEmailError) as exc_info:
            await GoogleOAuthClient(oauth_settings).fetch_profile("code")
        assert exc_info.value.code == "email_unverified"

    @pytest.mark.asyncio
    async def test_failed_token_exchange(
        self, oauth_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        install_transport(monkeypatch, provider({}, token_status=400))
        with pytest.raises(OAuthError) as exc_info:
            await GoogleOAuthClient(oauth_settings).fetch_profile("bad-code")
        assert exc_info.value.code == "auth_failed"


class TestCallbackRoute:
    @pytest.fixture
    def oauth_client(self) -> MagicMock:
        return MagicMock(spec=GoogleOAuthClient)

    @pytest.fixture
    def callback_client(
        self, api_client: TestClient, oauth_client: MagicMock
    ) -> TestClient:
        from securelearn.auth.dependencies import get_oauth_client

        api_client.app.dependency_overrides[get_oauth_client] = lambda: oauth_client
        yield api_client
        api_client.app.dependency_overrides.clear()

    def _callback(self, client: TestClient, state: str, cookie_state: str | None = None):
        headers = {"Cookie": f"securelearn_oauth_state={cookie_state or state}"}
        return client.get(
            f"/api/auth/callback/google?code=abc&state={state}",
            headers=headers,
            follow_redirects=False,
        )

    def test_successful_login_sets_session(
        self,
        callback_client: TestClient,
        oauth_client: MagicMock,
        mock_auth_service: MagicMock,
        employee_user: User,
        settings: Settings,
    ) -> None:
        oauth_client.fetch_profile = AsyncMock(
            return_value=OAuthProfile(sub="g-1", email=employee_user.email)
        )
        mock_auth_service.upsert_oauth_user = AsyncMock(return_value=employee_user)

        response = self._callback(callback_client, create_oauth_state())

        assert response.status_code == 302
        assert response.headers["location"] == "/"
        token = response.cookies.get(settings.auth_cookie_name)
        assert decode_session_token(token) == employee_user.id

    def test_domain_restricted_redirects_with_error(
        self, callback_client: TestClient, oauth_client: MagicMock
    ) -> None:
        oauth_client.fetch_profile = AsyncMock(side_effect=DomainRestrictedError())

        response = self._callback(callback_client, create_oauth_state())

        assert response.status_code == 302
        assert response.headers["location"] == "/?error=domain_restricted"

    def test_unverified_email_redirects_with_error(
        self, callback_client: TestClient, oauth_client: MagicMock
    ) -> None:
        oauth_client.fetch_profile = AsyncMock(side_effect=UnverifiedEmailError())

        response = self._callback(callback_client, create_oauth_state())

        assert response.headers["location"] == "/?error=email_unverified"

    def test_state_mismatch_rejected(
        self, callback_client: TestClient, oauth_client: MagicMock
    ) -> None:
        oauth_client.fetch_profile = AsyncMock()

        response = self._callback(
            callback_client, create_oauth_state(), cookie_state=create_oauth_state()
        )

        assert response.headers["location"] == "/?error=auth_failed"
        oauth_client.fetch_profile.assert_not_called()

    def test_current_user_requires_session(self, api_client: TestClient) -> None:
        response = api_client.get("/api/auth/user")
        assert response.status_code == 401

    def test_current_user(
        self, api_client: TestClient, employee_headers: dict, employee_user: User
    ) -> None:
        response = api_client.get("/api/auth/user", headers=employee_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == employee_user.email
        assert data["role"] == "employee"
