"""
Tests for the permission catalog and declaration validation.
"""

import logging

import pytest

from casegate.shared.permissions.catalog import (
    PermissionCatalog,
    check_format,
    report_issues,
)
from casegate.shared.permissions.exceptions import (
    ConfigMismatchError,
    UnknownPermissionError,
)
from casegate.shared.permissions.models import Permission, Scope
from tests.fixtures.permission_fixtures import permission_payload


def make_catalog(*names: str) -> PermissionCatalog:
    return PermissionCatalog(
        Permission.model_validate(permission_payload(name)) for name in names
    )


class TestPermissionCatalog:
    """Test catalog lookups and grouping."""

    def test_lookup_and_membership(self):
        catalog = make_catalog("cases.view.own", "cases.view.all", "users.view.all")

        assert len(catalog) == 3
        assert "cases.view.own" in catalog
        assert catalog.get("users.view.all").module == "users"

    def test_unknown_permission_raises(self):
        catalog = make_catalog("cases.view.own")

        with pytest.raises(UnknownPermissionError) as exc_info:
            catalog.get("cases.view.team")

        assert exc_info.value.name == "cases.view.team"

    def test_inactive_permissions_are_excluded(self):
        catalog = PermissionCatalog(
            [
                Permission.model_validate(permission_payload("cases.view.own")),
                Permission.model_validate(permission_payload("cases.view.all", active=False)),
            ]
        )

        assert catalog.names() == {"cases.view.own"}

    def test_duplicate_active_names_raise(self):
        with pytest.raises(ConfigMismatchError):
            make_catalog("cases.view.own", "cases.view.own")

    def test_search_filters_and_orders(self):
        catalog = make_catalog(
            "notes.view.all", "cases.view.own", "cases.create.all", "cases.view.all"
        )

        assert [p.name for p in catalog.search(module="cases", action="view")] == [
            "cases.view.all",
            "cases.view.own",
        ]
        assert [p.name for p in catalog.search(scope=Scope.ALL)] == [
            "cases.create.all",
            "cases.view.all",
            "notes.view.all",
        ]

    def test_structure_groups_by_module(self):
        catalog = make_catalog("cases.view.own", "cases.create.all", "notes.view.team")

        structure = catalog.structure()

        assert structure["cases"] == {
            "actions": ["create", "view"],
            "scopes": ["all", "own"],
            "total_permissions": 2,
        }
        assert structure["notes"]["total_permissions"] == 1


class TestDeclarationValidation:
    """Test format checks and catalog membership checks of declared names."""

    def test_check_format_flags_legacy_and_unscoped_names(self):
        issues = check_format(
            {
                "navigation:Archivo": ["archive.view"],
                "navigation:Permisos": ["permissions.admin_all"],
                "route:/users": ["users.view.all"],
                "route:/broken": ["not a permission"],
            }
        )

        problems = {issue.name: issue.problem for issue in issues}
        assert problems["archive.view"] == "has no scope"
        assert "permissions.admin.all" in problems["permissions.admin_all"]
        assert problems["not a permission"] == "is not a permission name"
        assert "users.view.all" not in problems

    def test_validate_reports_names_missing_from_catalog(self):
        catalog = make_catalog("users.view.all")

        issues = catalog.validate({"navigation:Usuarios": ["users.view.all", "usuarios.ver.all"]})

        assert [(i.source, i.name, i.problem) for i in issues] == [
            ("navigation:Usuarios", "usuarios.ver.all", "is not an active permission")
        ]

    def test_report_issues_logs_warnings(self, caplog: pytest.LogCaptureFixture):
        issues = check_format({"navigation:Archivo": ["archive.view"]})

        with caplog.at_level(logging.WARNING):
            report_issues(issues)

        assert "archive.view" in caplog.text

    def test_report_issues_strict_raises(self):
        issues = check_format({"navigation:Archivo": ["archive.view"]})

        with pytest.raises(ConfigMismatchError) as exc_info:
            report_issues(issues, strict=True)

        assert exc_info.value.problems == ["navigation:Archivo: 'archive.view' has no scope"]

    def test_report_issues_strict_without_issues_passes(self):
        report_issues([], strict=True)
