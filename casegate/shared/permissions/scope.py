from typing import Optional

from .models import SCOPE_PRECEDENCE, Scope, User, format_permission, scoped_permissions
from .store import PermissionStore


# Feature flags used to enable buttons; a flag is on when any name is held
FEATURE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "can_create_cases": scoped_permissions("cases", "create"),
    "can_view_all_cases": ("cases.view.all",),
    "can_edit_cases": scoped_permissions("cases", "update"),
    "can_delete_cases": scoped_permissions("cases", "delete"),
    "can_create_notes": scoped_permissions("notes", "create"),
    "can_view_all_notes": ("notes.view.all",),
    "can_edit_notes": scoped_permissions("notes", "update"),
    "can_create_todos": scoped_permissions("todos", "create"),
    "can_view_all_todos": ("todos.view.all",),
    "can_edit_todos": scoped_permissions("todos", "update"),
    "can_create_dispositions": scoped_permissions("dispositions", "create"),
    "can_view_all_dispositions": ("dispositions.view.all",),
    "can_edit_dispositions": scoped_permissions("dispositions", "update"),
    "can_manage_users": ("users.admin.all", "users.update.all"),
    "can_manage_roles": ("roles.admin.all", "roles.update.all"),
    "can_manage_system": ("system.admin.all", "system.update.all"),
    "can_view_reports": ("reports.view.team", "reports.view.all"),
}


class ScopeResolver:
    """
    Decides whether a user's scoped permissions cover a resource instance.

    Checks run in a fixed order and the first match wins: administrator
    role, then `all`, then `team`, then `own`.
    """

    def __init__(self, store: PermissionStore, user: User, admin_role_name: str):
        self.store = store
        self.user = user
        self.admin_role_name = admin_role_name

    @property
    def is_admin(self) -> bool:
        return self.user.role_name == self.admin_role_name

    def check_scope_permission(
        self, resource: str, action: str, target_user_id: Optional[str] = None
    ) -> bool:
        """
        Check whether the user may perform `action` on a `resource` record.

        Args:
            resource: Module name, e.g. "cases"
            action: Action name, e.g. "update"
            target_user_id: Owner of the record; None means the user's own

        Returns:
            True if a held scope covers the target, False otherwise
        """
        if self.is_admin:
            return True

        if self.store.has_permission(format_permission(resource, action, Scope.ALL)):
            return True

        if self.store.has_permission(format_permission(resource, action, Scope.TEAM)):
            # TODO: narrow to team members once the API exposes team membership
            return True

        if self.store.has_permission(format_permission(resource, action, Scope.OWN)):
            if target_user_id is None:
                return True
            return target_user_id == self.user.id

        return False

    def highest_scope(self, resource: str, action: str) -> Optional[Scope]:
        """Widest scope held for a resource/action pair, or None."""
        for scope in SCOPE_PRECEDENCE:
            if self.store.has_permission(format_permission(resource, action, scope)):
                return scope
        return None

    def can_perform(self, resource: str, action: str) -> bool:
        return self.is_admin or self.highest_scope(resource, action) is not None

    def feature_permissions(self) -> dict[str, bool]:
        flags = {
            feature: self.is_admin
            or any(self.store.has_permission(name) for name in names)
            for feature, names in FEATURE_PERMISSIONS.items()
        }
        flags["is_admin"] = self.is_admin
        return flags
