"""Shared fixtures: app client, signed-in users and mocked services."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", "/tmp/securelearn-test-logs")

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, Mock, NonCallableMock
from uuid import UUID

import pytest
from cassandra.cluster import Session
from fastapi.testclient import TestClient

from securelearn.auth.models import User
from securelearn.auth.permissions import UserRole
from securelearn.auth.security import create_session_token
from securelearn.config import Settings, get_settings


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def mock_session() -> Mock:
    """Mock Cassandra session.

    Every prepared statement is a distinct non-callable mock carrying its
    CQL, so tests can tell statements apart.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: NonCallableMock(query_string=query))
    # cassandra-asyncio-driver adds aexecute to the session
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def employee_user() -> User:
    return User(
        external_id="google-employee",
        email="ana.souza@bootlabstech.com",
        first_name="Ana",
        last_name="Souza",
        role=UserRole.EMPLOYEE.value,
    )


@pytest.fixture
def admin_user() -> User:
    return User(
        external_id="google-admin",
        email="it.admin@bootlabstech.com",
        first_name="Ravi",
        last_name="Menon",
        role=UserRole.ADMIN.value,
    )


@pytest.fixture
def mock_auth_service(employee_user: User, admin_user: User) -> MagicMock:
    """AuthService stand-in that knows the employee and the admin."""
    users: dict[UUID, User] = {employee_user.id: employee_user, admin_user.id: admin_user}

    service = MagicMock()
    service.get_user_by_id = AsyncMock(side_effect=lambda user_id: users.get(user_id))
    service.get_users_by_ids = AsyncMock(
        side_effect=lambda ids: {i: users[i] for i in ids if i in users}
    )
    service.list_users = AsyncMock(return_value=list(users.values()))
    return service


def session_cookie(settings: Settings, user: User) -> dict[str, str]:
    """Cookie header for a signed-in user."""
    token = create_session_token(user.id)
    return {"Cookie": f"{settings.auth_cookie_name}={token}"}


@pytest.fixture
def employee_headers(settings: Settings, employee_user: User) -> dict[str, str]:
    return session_cookie(settings, employee_user)


@pytest.fixture
def admin_headers(settings: Settings, admin_user: User) -> dict[str, str]:
    return session_cookie(settings, admin_user)


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no database connection)."""
    from securelearn.main import app

    return TestClient(app)


@pytest.fixture
def api_client(mock_auth_service: MagicMock) -> Iterator[TestClient]:
    """Test client whose auth service resolves the fixture users."""
    from securelearn.auth.dependencies import set_auth_service_getter
    from securelearn.main import app, get_auth_service

    set_auth_service_getter(lambda: mock_auth_service)
    yield TestClient(app)
    set_auth_service_getter(get_auth_service)
