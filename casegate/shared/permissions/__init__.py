"""
Permission core for the case-management gateway.

Permissions are strings of the form `module.action.scope`. A per-session
PermissionStore answers permission and module queries from a cache backed
by the upstream API; the ScopeResolver applies own/team/all rules on top.

Usage:
    from casegate.shared.permissions import PermissionStore, ScopeResolver

    if store.has_permission("cases.view.all"):
        ...
    resolver = ScopeResolver(store, user, settings.ADMIN_ROLE_NAME)
    resolver.check_scope_permission("cases", "update", target_user_id=owner_id)
"""

from .catalog import CatalogIssue, PermissionCatalog, check_format, report_issues
from .exceptions import (
    AuthExpiredError,
    ConfigMismatchError,
    PermissionCoreError,
    PermissionNetworkError,
    UnknownPermissionError,
)
from .models import (
    Permission,
    Scope,
    User,
    UserPermissions,
    format_permission,
    parse_permission_name,
)
from .modules import MODULE_PERMISSIONS, ModuleRegistry
from .scope import FEATURE_PERMISSIONS, ScopeResolver
from .store import PermissionStore
from .transport import PermissionTransport

__all__ = [
    "AuthExpiredError",
    "CatalogIssue",
    "ConfigMismatchError",
    "FEATURE_PERMISSIONS",
    "MODULE_PERMISSIONS",
    "ModuleRegistry",
    "Permission",
    "PermissionCatalog",
    "PermissionCoreError",
    "PermissionNetworkError",
    "PermissionStore",
    "PermissionTransport",
    "Scope",
    "ScopeResolver",
    "UnknownPermissionError",
    "User",
    "UserPermissions",
    "check_format",
    "format_permission",
    "parse_permission_name",
    "report_issues",
]
