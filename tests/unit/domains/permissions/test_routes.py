"""
Route tests for the permission endpoints.
"""

from typing import Dict

from fastapi.testclient import TestClient

from tests.fixtures.permission_fixtures import FakeUpstream, permission_payload
from tests.helpers.route_testing import RouteTestHelper


class TestPermissionCheckRoutes:
    """Test batch permission and module checks."""

    def test_cached_check(self, client: TestClient, upstream: FakeUpstream):
        upstream.permissions = {"cases.view.own"}
        headers = RouteTestHelper.login(client)

        response = client.post(
            "/api/v1/permissions/check",
            json={"permissions": ["cases.view.own", "cases.view.all"], "modules": ["cases"]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "permissions": {"cases.view.own": True, "cases.view.all": False},
            "modules": {"cases": True},
        }

    def test_fresh_check_asks_upstream_for_unknown_names(
        self, client: TestClient, upstream: FakeUpstream, auth_headers: Dict[str, str]
    ):
        upstream.permissions = {"reports.view.team"}
        upstream.modules = {"reports"}

        response = client.post(
            "/api/v1/permissions/check",
            json={"permissions": ["reports.view.team"], "modules": ["reports"], "fresh": True},
            headers=auth_headers,
        )

        assert response.json() == {
            "permissions": {"reports.view.team": True},
            "modules": {"reports": True},
        }
        assert upstream.calls_to("/auth/check-permission/") == 1
        assert upstream.calls_to("/auth/check-module/") == 1

    def test_check_requires_session(self, client: TestClient):
        response = client.post("/api/v1/permissions/check", json={"permissions": []})

        assert response.status_code == 401


class TestScopeRoutes:
    """Test scope checks and feature flags."""

    def test_own_scope_limits_to_own_records(
        self, client: TestClient, upstream: FakeUpstream
    ):
        upstream.permissions = {"cases.update.own"}
        headers = RouteTestHelper.login(client)

        own = client.post(
            "/api/v1/permissions/scope",
            json={"resource": "cases", "action": "update", "target_user_id": "user-1"},
            headers=headers,
        ).json()
        other = client.post(
            "/api/v1/permissions/scope",
            json={"resource": "cases", "action": "update", "target_user_id": "user-2"},
            headers=headers,
        ).json()

        assert own == {"allowed": True, "highest_scope": "own"}
        assert other == {"allowed": False, "highest_scope": "own"}

    def test_highest_scope_summary(self, client: TestClient, upstream: FakeUpstream):
        upstream.permissions = {"cases.view.team", "cases.view.own"}
        headers = RouteTestHelper.login(client)

        view = client.get("/api/v1/permissions/scope/cases/view", headers=headers)
        delete = client.get("/api/v1/permissions/scope/cases/delete", headers=headers)

        assert view.json() == {
            "resource": "cases",
            "action": "view",
            "highest_scope": "team",
            "can_perform": True,
        }
        assert delete.json()["highest_scope"] is None
        assert delete.json()["can_perform"] is False

    def test_administrator_can_perform_without_scoped_grants(
        self, client: TestClient, upstream: FakeUpstream
    ):
        upstream.role_name = "Administrator"
        headers = RouteTestHelper.login(client)

        summary = client.get(
            "/api/v1/permissions/scope/roles/delete", headers=headers
        ).json()

        assert summary["highest_scope"] is None
        assert summary["can_perform"] is True

    def test_feature_flags(self, client: TestClient, upstream: FakeUpstream):
        upstream.permissions = {"cases.create.team", "reports.view.all"}
        headers = RouteTestHelper.login(client)

        flags = client.get("/api/v1/permissions/features", headers=headers).json()

        assert flags["can_create_cases"] is True
        assert flags["can_view_reports"] is True
        assert flags["can_manage_users"] is False
        assert flags["is_admin"] is False


class TestCatalogRoute:
    """Test the administrator-only catalog endpoint."""

    def test_non_admin_is_redirected(
        self, client: TestClient, auth_headers: Dict[str, str]
    ):
        response = client.get(
            "/api/v1/permissions/catalog", headers=auth_headers, follow_redirects=False
        )

        RouteTestHelper.assert_redirect(response, "/unauthorized")

    def test_anonymous_is_redirected_to_login(self, client: TestClient):
        response = client.get("/api/v1/permissions/catalog", follow_redirects=False)

        RouteTestHelper.assert_redirect(response, "/login")

    def test_admin_gets_catalog_and_issues(
        self, client: TestClient, upstream: FakeUpstream
    ):
        upstream.role_name = "Administrator"
        upstream.catalog = [
            permission_payload("cases.view.all"),
            permission_payload("cases.view.own"),
            permission_payload("cases.update.own"),
            permission_payload("notes.view.all", active=False),
        ]
        headers = RouteTestHelper.login(client)

        response = client.get(
            "/api/v1/permissions/catalog", params={"module": "cases"}, headers=headers
        )

        assert response.status_code == 200
        body = response.json()
        assert [p["name"] for p in body["permissions"]] == [
            "cases.update.own",
            "cases.view.all",
            "cases.view.own",
        ]
        assert body["structure"]["cases"] == {
            "actions": ["update", "view"],
            "scopes": ["all", "own"],
            "total_permissions": 3,
        }
        assert "notes" not in body["structure"]
        missing = {issue["name"] for issue in body["issues"]}
        assert "users.view.all" in missing
        assert "cases.view.all" not in missing

    def test_duplicate_catalog_rows_are_a_gateway_error(
        self, client: TestClient, upstream: FakeUpstream
    ):
        upstream.role_name = "Administrator"
        upstream.catalog = [
            permission_payload("cases.view.all"),
            permission_payload("cases.view.all"),
        ]
        headers = RouteTestHelper.login(client)

        response = client.get("/api/v1/permissions/catalog", headers=headers)

        assert response.status_code == 502


class TestModulePermissionsRoute:
    """Test the per-module catalog listing used by the permission manager."""

    def test_requires_permission_read(
        self, client: TestClient, upstream: FakeUpstream, auth_headers: Dict[str, str]
    ):
        upstream.catalog = [permission_payload("cases.view.all")]

        response = client.get(
            "/api/v1/permissions/catalog/modules/cases", headers=auth_headers
        )

        assert response.status_code == 403
        assert upstream.calls_to("/permissions") == 0

    def test_lists_active_module_permissions(
        self, client: TestClient, upstream: FakeUpstream
    ):
        upstream.permissions = {"permissions.read.all"}
        upstream.catalog = [
            permission_payload("cases.view.own"),
            permission_payload("cases.create.all"),
            permission_payload("cases.delete.all", active=False),
            permission_payload("notes.view.all"),
        ]
        headers = RouteTestHelper.login(client)

        response = client.get("/api/v1/permissions/catalog/modules/cases", headers=headers)

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == [
            "cases.create.all",
            "cases.view.own",
        ]
