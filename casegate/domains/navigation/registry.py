# casegate/domains/navigation/registry.py
"""
Static declarations of the client's navigation and routes.

Labels are the ones shown in the client's sidebar. Every permission named
here is checked against the catalog at start-up.
"""

from typing import Iterable, Mapping

from casegate.shared.permissions.models import Scope, scoped_permissions
from casegate.shared.permissions.modules import ModuleRegistry
from casegate.shared.permissions.scope import FEATURE_PERMISSIONS

from .models import AdminSection, NavigationItem, RouteRule

LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"

# Reachable without a session
PUBLIC_PATHS: frozenset[str] = frozenset({LOGIN_PATH, "/register", UNAUTHORIZED_PATH})

NAVIGATION_ITEMS: list[NavigationItem] = [
    NavigationItem(name="Dashboard", href="/", icon="HomeIcon", module="dashboard"),
    NavigationItem(
        name="Casos", href="/cases", icon="DocumentTextIcon", required_module="cases"
    ),
    NavigationItem(
        name="Nuevo Caso", href="/cases/new", icon="PlusIcon", required_module="cases"
    ),
    NavigationItem(
        name="Control de Casos",
        href="/case-control",
        icon="ClockIcon",
        required_module="case-control",
    ),
    NavigationItem(
        name="Disposiciones",
        href="/dispositions",
        icon="WrenchScrewdriverIcon",
        required_module="dispositions",
    ),
    NavigationItem(
        name="TODOs", href="/todos", icon="ListBulletIcon", required_module="todos"
    ),
    NavigationItem(
        name="Notas",
        href="/notes",
        icon="DocumentDuplicateIcon",
        required_module="notes",
    ),
    NavigationItem(
        name="Archivo", href="/archive", icon="ArchiveBoxIcon", required_module="archive"
    ),
    NavigationItem(
        name="Base de Conocimiento",
        href="/knowledge",
        icon="BookOpenIcon",
        required_module="knowledge",
    ),
    NavigationItem(name="Perfil", href="/profile", icon="UserIcon", module="profile"),
]

ADMIN_SECTIONS: list[AdminSection] = [
    AdminSection(
        id="user-management",
        title="Administración",
        icon="UsersIcon",
        items=[
            NavigationItem(
                name="Usuarios",
                href="/users",
                icon="UsersIcon",
                required_permission="users.view.all",
            ),
            NavigationItem(
                name="Roles",
                href="/roles",
                icon="CogIcon",
                required_permission="roles.view.all",
            ),
            NavigationItem(
                name="Gestión de Permisos",
                href="/permissions",
                icon="ShieldCheckIcon",
                required_permission="permissions.read.all",
            ),
            NavigationItem(
                name="Equipos",
                href="/teams",
                icon="UserGroupIcon",
                required_module="teams",
            ),
            NavigationItem(
                name="Auditoría",
                href="/admin/audit",
                icon="ClipboardDocumentListIcon",
                required_permission="audit.view.all",
            ),
        ],
    ),
    AdminSection(
        id="system-configuration",
        title="Configuración",
        icon="WrenchScrewdriverIcon",
        items=[
            NavigationItem(
                name="Orígenes",
                href="/admin/origins",
                icon="BuildingOffice2Icon",
                required_permission="origins.admin.all",
            ),
            NavigationItem(
                name="Aplicaciones",
                href="/admin/applications",
                icon="CubeIcon",
                required_permission="applications.admin.all",
            ),
            NavigationItem(
                name="Estados de Control",
                href="/admin/case-statuses",
                icon="FlagIcon",
                required_permission="case_statuses.admin.all",
            ),
            NavigationItem(
                name="Estado del Sistema",
                href="/system/status",
                icon="ServerIcon",
                required_permission="system.view.all",
            ),
        ],
    ),
]

ROUTE_RULES: list[RouteRule] = [
    RouteRule(path="/"),
    # The dashboard module is public for the sidebar entry only
    RouteRule(
        path="/dashboard",
        required_any_permissions=list(
            scoped_permissions("dashboard", "view", (Scope.ALL, Scope.OWN))
        ),
    ),
    RouteRule(path="/profile", required_module="profile"),
    RouteRule(path="/cases", required_module="cases"),
    RouteRule(
        path="/cases/new",
        required_any_permissions=list(scoped_permissions("cases", "create")),
    ),
    RouteRule(
        path="/cases/edit/{id}",
        required_any_permissions=list(scoped_permissions("cases", "update")),
    ),
    RouteRule(path="/cases/view/{id}", required_module="cases"),
    RouteRule(path="/case-control", required_module="case-control"),
    RouteRule(path="/notes", required_module="notes"),
    RouteRule(path="/todos", required_module="todos"),
    RouteRule(path="/dispositions", required_module="dispositions"),
    RouteRule(path="/archive", required_module="archive"),
    RouteRule(path="/knowledge", required_module="knowledge"),
    RouteRule(
        path="/knowledge/new",
        required_any_permissions=list(scoped_permissions("knowledge", "create")),
    ),
    RouteRule(path="/knowledge/{id}", required_module="knowledge"),
    RouteRule(
        path="/knowledge/{id}/edit",
        required_any_permissions=list(scoped_permissions("knowledge", "update")),
    ),
    RouteRule(path="/users", required_permission="users.view.all"),
    RouteRule(path="/roles", required_permission="roles.view.all"),
    RouteRule(path="/teams", required_module="teams"),
    RouteRule(path="/permissions", required_permission="permissions.read.all"),
    RouteRule(
        path="/permissions/role-assignment",
        required_permissions=["permissions.read.all", "permissions.assign.all"],
    ),
    RouteRule(path="/permissions/guide"),
    RouteRule(path="/admin/origins", admin_only=True),
    RouteRule(path="/admin/applications", admin_only=True),
    RouteRule(path="/admin/case-statuses", admin_only=True),
    RouteRule(path="/admin/tags", required_permission="tags.manage.all"),
    RouteRule(
        path="/admin/document-types", required_permission="knowledge_types.read.all"
    ),
    RouteRule(path="/admin/todo-priorities", required_permission="todos.create.all"),
    RouteRule(path="/admin/audit", required_permission="audit.view.all"),
    RouteRule(path="/system/status", required_permission="system.view.all"),
    RouteRule(path="/system/info"),
]

# Landing pages tried in order after login; each is checked against its route rule
REDIRECT_PRIORITY: list[str] = [
    "/dashboard",
    "/cases",
    "/todos",
    "/notes",
    "/knowledge",
    "/case-control",
    "/dispositions",
    "/archive",
]


def declared_permissions(
    modules: ModuleRegistry,
    items: Iterable[NavigationItem] = NAVIGATION_ITEMS,
    sections: Iterable[AdminSection] = ADMIN_SECTIONS,
    rules: Iterable[RouteRule] = ROUTE_RULES,
    features: Mapping[str, Iterable[str]] = FEATURE_PERMISSIONS,
) -> dict[str, list[str]]:
    """Every permission name referenced by a declaration, keyed by source."""
    declared: dict[str, list[str]] = {
        source: list(names) for source, names in modules.declarations().items()
    }
    for item in items:
        declared[f"navigation:{item.name}"] = item.permissions()
    for section in sections:
        for item in section.items:
            declared[f"admin:{section.id}:{item.name}"] = item.permissions()
    for rule in rules:
        declared[f"route:{rule.path}"] = rule.permissions()
    for feature, names in features.items():
        declared[f"feature:{feature}"] = list(names)
    return {source: names for source, names in declared.items() if names}
