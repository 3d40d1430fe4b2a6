"""
Global pytest configuration and fixtures for the casegate test suite.
"""

import os

# Settings are read at import time, so the environment comes first
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"

from typing import Dict, Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from casegate.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.permission_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.permission_fixtures import UPSTREAM_URL, FakeUpstream  # noqa: E402
from tests.helpers.route_testing import RouteTestHelper  # noqa: E402


@pytest.fixture
def test_jwt_secret() -> str:
    """JWT secret for generating test tokens."""
    return "test-secret-key-for-testing-only-32-chars"


@pytest.fixture
def client(upstream: FakeUpstream) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the fake upstream API."""
    with TestClient(app) as test_client:
        service = app.state.session_service
        service.base_url = UPSTREAM_URL
        service.transport = upstream.transport
        yield test_client


@pytest.fixture
def auth_headers(client: TestClient) -> Dict[str, str]:
    """Bearer headers for a session opened against the fake upstream."""
    return RouteTestHelper.login(client)
