from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


class Scope(str, Enum):
    """
    Breadth of a permission.

    Scopes are independent claims: holding OWN does not imply TEAM. The
    resolution order is ALL, then TEAM, then OWN.
    """

    OWN = "own"  # Records owned by the acting user
    TEAM = "team"  # Records owned by members of the user's team
    ALL = "all"  # Every record


SCOPE_PRECEDENCE: tuple[Scope, ...] = (Scope.ALL, Scope.TEAM, Scope.OWN)


class NameFormat(Enum):
    """Spelling of a permission string as found in a declaration."""

    CANONICAL = "canonical"  # cases.view.own
    UNDERSCORE_SCOPE = "underscore_scope"  # cases.view_own
    COLON = "colon"  # cases:view:own
    UNSCOPED = "unscoped"  # archive.view


class PermissionName(NamedTuple):
    module: str
    action: str
    scope: Optional[Scope]
    format: NameFormat

    @property
    def is_canonical(self) -> bool:
        return self.format is NameFormat.CANONICAL

    @property
    def canonical(self) -> Optional[str]:
        """The `module.action.scope` spelling, or None for unscoped names."""
        if self.scope is None:
            return None
        return format_permission(self.module, self.action, self.scope)


def format_permission(module: str, action: str, scope: Scope | str) -> str:
    """Build a canonical `module.action.scope` permission string."""
    return f"{module}.{action}.{Scope(scope).value}"


def scoped_permissions(
    module: str, action: str, scopes: tuple[Scope, ...] = SCOPE_PRECEDENCE
) -> tuple[str, ...]:
    """All canonical names for a module/action pair, widest scope first."""
    return tuple(format_permission(module, action, scope) for scope in scopes)


def _as_scope(value: str) -> Optional[Scope]:
    try:
        return Scope(value)
    except ValueError:
        return None


def parse_permission_name(name: str) -> Optional[PermissionName]:
    """
    Parse a permission string into its module, action and scope.

    Legacy spellings are recognised and reported through `format` so that
    callers can flag them; they are never rewritten here.

    Args:
        name: Permission string as declared

    Returns:
        Parsed name, or None if the string has no recognisable shape
    """
    if not name or name != name.strip():
        return None

    if ":" in name:
        parts = name.split(":")
        if len(parts) == 3 and all(parts):
            scope = _as_scope(parts[2])
            if scope is not None:
                return PermissionName(parts[0], parts[1], scope, NameFormat.COLON)
        return None

    parts = name.split(".")
    if not all(parts):
        return None

    if len(parts) == 3:
        scope = _as_scope(parts[2])
        if scope is None:
            return None
        return PermissionName(parts[0], parts[1], scope, NameFormat.CANONICAL)

    if len(parts) == 2:
        module, rest = parts
        action, _, suffix = rest.rpartition("_")
        scope = _as_scope(suffix)
        if action and scope is not None:
            return PermissionName(module, action, scope, NameFormat.UNDERSCORE_SCOPE)
        return PermissionName(module, rest, None, NameFormat.UNSCOPED)

    return None


class Permission(BaseModel):
    """A permission row as returned by the upstream API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    module: str
    action: str
    scope: Scope
    description: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")


class RoleSummary(BaseModel):
    id: str
    name: str


class User(BaseModel):
    """Authenticated user as described by the upstream API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    full_name: Optional[str] = Field(None, alias="fullName")
    role_name: Optional[str] = Field(None, alias="roleName")
    role_id: Optional[str] = Field(None, alias="roleId")
    is_active: bool = Field(True, alias="isActive")


class UserPermissions(BaseModel):
    """Payload of `GET /auth/permissions` for the current user."""

    permissions: List[Permission] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    role: Optional[RoleSummary] = None

    def granted(self) -> set[str]:
        return {p.name for p in self.permissions if p.is_active}

    def module_names(self) -> set[str]:
        return {module.lower() for module in self.modules}
