"""Tests for session and OAuth state tokens."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError

from securelearn.auth.security import (
    create_oauth_state,
    create_session_token,
    decode_session_token,
    verify_oauth_state,
)


class TestSessionToken:
    """Tests for the session cookie token."""

    def test_round_trip_returns_user_id(self) -> None:
        user_id = uuid4()
        token = create_session_token(user_id)
        assert decode_session_token(token) == user_id

    def test_expired_token_rejected(self) -> None:
        token = create_session_token(uuid4(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_session_token(token)

    def test_tampered_token_rejected(self) -> None:
        token = create_session_token(uuid4())
        with pytest.raises(JWTError):
            decode_session_token(token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1])

    def test_oauth_state_is_not_a_session(self) -> None:
        """A state token cannot be replayed as a session cookie."""
        with pytest.raises(JWTError):
            decode_session_token(create_oauth_state())

    def test_subject_must_be_uuid(self) -> None:
        token = create_session_token("not-a-uuid")
        with pytest.raises(JWTError):
            decode_session_token(token)


class TestOAuthState:
    """Tests for the OAuth state parameter."""

    def test_fresh_state_verifies(self) -> None:
        assert verify_oauth_state(create_oauth_state()) is True

    def test_states_are_unique(self) -> None:
        assert create_oauth_state() != create_oauth_state()

    @pytest.mark.parametrize("state", [None, "", "garbage"])
    def test_invalid_state_rejected(self, state: str | None) -> None:
        assert verify_oauth_state(state) is False

    def test_session_token_is_not_a_state(self) -> None:
        assert verify_oauth_state(create_session_token(uuid4())) is False
