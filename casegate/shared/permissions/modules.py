"""
Module declarations: which permissions open which navigable feature area.

A module is accessible when the user holds at least one of its declared
permissions. Public modules are checked first and need no permission.
"""

from typing import Iterable, Mapping

from .models import Scope, scoped_permissions

MODULE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "dashboard": scoped_permissions("dashboard", "view", (Scope.ALL, Scope.OWN)),
    "cases": scoped_permissions("cases", "view"),
    "todos": scoped_permissions("todos", "view"),
    "notes": scoped_permissions("notes", "view"),
    "knowledge": scoped_permissions("knowledge", "view"),
    "case-control": scoped_permissions("case_control", "view"),
    "dispositions": scoped_permissions("dispositions", "view"),
    "archive": scoped_permissions("archive", "view"),
    "users": ("users.view.all",),
    "roles": ("roles.view.all",),
    "permissions": ("permissions.read.all",),
    "teams": scoped_permissions("teams", "view"),
    "audit": ("audit.view.all",),
    "admin": ("permissions.admin.all", "roles.manage.all", "users.admin.all"),
    "profile": (),
}


class ModuleRegistry:
    """Static module declarations plus the public allow-list."""

    def __init__(
        self,
        modules: Mapping[str, Iterable[str]] = MODULE_PERMISSIONS,
        public_modules: Iterable[str] = ("profile", "dashboard"),
    ):
        self._modules: dict[str, tuple[str, ...]] = {
            name.lower(): tuple(permissions) for name, permissions in modules.items()
        }
        self.public_modules: frozenset[str] = frozenset(
            module.lower() for module in public_modules
        )

    def is_public(self, module: str) -> bool:
        return module.lower() in self.public_modules

    def is_declared(self, module: str) -> bool:
        return module.lower() in self._modules

    def permissions_for(self, module: str) -> tuple[str, ...]:
        """Acceptable permissions for a module; empty for undeclared modules."""
        return self._modules.get(module.lower(), ())

    def modules(self) -> list[str]:
        return list(self._modules)

    def declarations(self) -> dict[str, tuple[str, ...]]:
        """Declared names keyed by source, for catalog validation."""
        return {
            f"module:{name}": permissions
            for name, permissions in self._modules.items()
            if permissions
        }
