"""
Permission catalog: the set of permission strings known to the system.

Declarations (module registry, navigation items, route rules) reference
permissions by name. A name that is misspelled or missing upstream is
silently denied at check time, so declarations are validated against the
catalog up front and every mismatch is reported.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .exceptions import ConfigMismatchError, UnknownPermissionError
from .models import NameFormat, Permission, Scope, parse_permission_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogIssue:
    """One problem found in a declared permission string."""

    source: str  # Where the name was declared, e.g. "navigation:Usuarios"
    name: str
    problem: str

    def describe(self) -> str:
        return f"{self.source}: '{self.name}' {self.problem}"


class PermissionCatalog:
    """Active permissions indexed by name, module, action and scope."""

    def __init__(self, permissions: Iterable[Permission]):
        self._by_name: dict[str, Permission] = {}
        for permission in permissions:
            if not permission.is_active:
                continue
            if permission.name in self._by_name:
                raise ConfigMismatchError(
                    [f"duplicate active permission '{permission.name}'"]
                )
            self._by_name[permission.name] = permission

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def names(self) -> set[str]:
        return set(self._by_name)

    def get(self, name: str) -> Permission:
        """
        Look up an active permission by name.

        Raises:
            UnknownPermissionError: If the name is not in the catalog
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPermissionError(name)

    def by_module(self, module: str) -> list[Permission]:
        return sorted(
            (p for p in self._by_name.values() if p.module == module),
            key=lambda p: (p.action, p.scope.value),
        )

    def search(
        self,
        module: Optional[str] = None,
        action: Optional[str] = None,
        scope: Optional[Scope] = None,
    ) -> list[Permission]:
        """Filter the catalog, ordered by module, action and scope."""
        results = [
            p
            for p in self._by_name.values()
            if (module is None or p.module == module)
            and (action is None or p.action == action)
            and (scope is None or p.scope == scope)
        ]
        return sorted(results, key=lambda p: (p.module, p.action, p.scope.value))

    def structure(self) -> dict[str, dict[str, object]]:
        """Group the catalog as module -> actions, scopes and permission count."""
        structure: dict[str, dict[str, object]] = {}
        for module in sorted({p.module for p in self._by_name.values()}):
            permissions = self.by_module(module)
            structure[module] = {
                "actions": sorted({p.action for p in permissions}),
                "scopes": sorted({p.scope.value for p in permissions}),
                "total_permissions": len(permissions),
            }
        return structure

    def validate(self, declared: Mapping[str, Iterable[str]]) -> list[CatalogIssue]:
        """Check declared names for format and catalog membership."""
        issues = check_format(declared)
        for source, names in declared.items():
            for name in names:
                if name not in self._by_name:
                    issues.append(
                        CatalogIssue(source, name, "is not an active permission")
                    )
        return issues


def check_format(declared: Mapping[str, Iterable[str]]) -> list[CatalogIssue]:
    """
    Flag declared names that are not in canonical `module.action.scope` form.

    Runs without a catalog, so it can be used at import or start-up time.

    Args:
        declared: Mapping of declaration source to the names it references

    Returns:
        One issue per malformed or non-canonical name
    """
    issues: list[CatalogIssue] = []
    for source, names in declared.items():
        for name in names:
            parsed = parse_permission_name(name)
            if parsed is None:
                issues.append(CatalogIssue(source, name, "is not a permission name"))
            elif parsed.format is NameFormat.UNSCOPED:
                issues.append(CatalogIssue(source, name, "has no scope"))
            elif not parsed.is_canonical:
                issues.append(
                    CatalogIssue(
                        source,
                        name,
                        f"uses a non-canonical separator (canonical: {parsed.canonical})",
                    )
                )
    return issues


def report_issues(issues: list[CatalogIssue], strict: bool = False) -> None:
    """
    Log catalog issues, failing hard in strict mode.

    Raises:
        ConfigMismatchError: If strict and any issue was found
    """
    for issue in issues:
        logger.warning("Permission declaration mismatch: %s", issue.describe())
    if strict and issues:
        raise ConfigMismatchError([issue.describe() for issue in issues])
