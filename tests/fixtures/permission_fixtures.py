"""
Test fixtures and fakes for the upstream case-management API.
"""

import asyncio
import json
from collections import Counter
from typing import Any, Dict, Iterable, Optional

import httpx
import pytest

from casegate.shared.permissions.models import User, parse_permission_name
from casegate.shared.permissions.modules import ModuleRegistry
from casegate.shared.permissions.store import PermissionStore
from casegate.shared.permissions.transport import PermissionTransport

UPSTREAM_URL = "http://upstream.test/api"


def permission_payload(name: str, active: bool = True) -> Dict[str, Any]:
    """Upstream JSON for a canonical permission name."""
    parsed = parse_permission_name(name)
    assert parsed is not None and parsed.scope is not None, name
    return {
        "id": f"perm-{name}",
        "name": name,
        "module": parsed.module,
        "action": parsed.action,
        "scope": parsed.scope.value,
        "description": f"Permission {name}",
        "isActive": active,
    }


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    In-memory stand-in for the upstream API, served through httpx.MockTransport.

    Grants can be changed between calls to simulate role changes. Setting
    `hold` makes permission and module checks wait until it is set;
    `hold_grants` does the same for the grant list, which is read before
    waiting so a held response carries the grants of when it was sent.
    """

    def __init__(
        self,
        permissions: Iterable[str] = (),
        modules: Iterable[str] = (),
        role_name: str = "Agent",
        user_id: str = "user-1",
        password: str = "secret",
    ):
        self.permissions = set(permissions)
        self.modules = set(modules)
        self.role_name = role_name
        self.user_id = user_id
        self.password = password
        self.catalog: list[Dict[str, Any]] = []
        self.failures: Dict[str, int] = {}  # Path prefix -> HTTP status
        self.hold: Optional[asyncio.Event] = None
        self.hold_grants: Optional[asyncio.Event] = None
        self.calls: Counter[str] = Counter()
        self.refresh_count = 0
        self.transport = httpx.MockTransport(self.handle)

    def user_payload(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "email": "agent@example.com",
            "fullName": "Test Agent",
            "roleName": self.role_name,
            "roleId": f"role-{self.role_name.lower()}",
            "isActive": True,
        }

    def calls_to(self, prefix: str) -> int:
        return sum(n for path, n in self.calls.items() if path.startswith(prefix))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.calls[path] += 1

        for prefix, status in self.failures.items():
            if path.startswith(prefix):
                return httpx.Response(status, json={"success": False})

        if path == "/auth/login":
            body = json.loads(request.content)
            if body.get("password") != self.password:
                return httpx.Response(
                    401, json={"success": False, "message": "Invalid credentials"}
                )
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "user": self.user_payload(),
                        "token": "upstream-token-1",
                        "refreshToken": "refresh-token-1",
                    },
                },
            )

        if path == "/auth/refresh":
            self.refresh_count += 1
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "token": f"upstream-token-{self.refresh_count + 1}",
                        "refreshToken": f"refresh-token-{self.refresh_count + 1}",
                    },
                },
            )

        if path == "/auth/permissions":
            body = {
                "success": True,
                "data": {
                    "permissions": [
                        permission_payload(name) for name in sorted(self.permissions)
                    ],
                    "modules": sorted(self.modules),
                    "role": {"id": "role-1", "name": self.role_name},
                },
            }
            if self.hold_grants is not None:
                await self.hold_grants.wait()
            return httpx.Response(200, json=body)

        if path.startswith("/auth/check-permission/"):
            if self.hold is not None:
                await self.hold.wait()
            name = path.rsplit("/", 1)[1]
            return httpx.Response(
                200, json={"success": True, "hasPermission": name in self.permissions}
            )

        if path.startswith("/auth/check-module/"):
            if self.hold is not None:
                await self.hold.wait()
            module = path.rsplit("/", 1)[1]
            return httpx.Response(
                200, json={"success": True, "hasAccess": module in self.modules}
            )

        if path == "/permissions":
            return httpx.Response(200, json={"success": True, "data": self.catalog})

        return httpx.Response(404, json={"success": False, "message": "Not found"})


@pytest.fixture
def upstream() -> FakeUpstream:
    """Upstream API granting nothing until a test says otherwise."""
    return FakeUpstream()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def module_registry() -> ModuleRegistry:
    return ModuleRegistry()


@pytest.fixture
def permission_transport(upstream: FakeUpstream) -> PermissionTransport:
    return PermissionTransport(UPSTREAM_URL, "upstream-token-1", transport=upstream.transport)


@pytest.fixture
def store(
    permission_transport: PermissionTransport,
    module_registry: ModuleRegistry,
    fake_clock: FakeClock,
) -> PermissionStore:
    """Unloaded store with a manual clock and no background refresher."""
    return PermissionStore(
        permission_transport, module_registry, refresh_interval=30.0, clock=fake_clock
    )


@pytest.fixture
def agent_user() -> User:
    return User(
        id="user-1",
        email="agent@example.com",
        full_name="Test Agent",
        role_name="Agent",
    )


@pytest.fixture
def admin_user() -> User:
    return User(
        id="admin-1",
        email="admin@example.com",
        full_name="Test Admin",
        role_name="Administrator",
    )
