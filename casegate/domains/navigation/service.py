# casegate/domains/navigation/service.py
import asyncio
import logging
from typing import Iterable, Optional

from casegate.domains.auth.service import Session
from casegate.shared.permissions.store import PermissionStore

from .models import AdminSection, GuardDecision, NavigationItem, RouteRule
from .registry import (
    ADMIN_SECTIONS,
    LOGIN_PATH,
    NAVIGATION_ITEMS,
    PUBLIC_PATHS,
    REDIRECT_PRIORITY,
    ROUTE_RULES,
    UNAUTHORIZED_PATH,
)

logger = logging.getLogger(__name__)


class NavigationGate:
    """
    Decides which navigation entries a session sees and which routes it may open.

    Navigation filtering reads the permission cache only; route evaluation
    has a cached variant for rendering and a fresh variant that asks the
    upstream API for stale entries. Module questions go to the module
    registry of the session's own store.
    """

    def __init__(
        self,
        admin_role_name: str,
        items: Iterable[NavigationItem] = NAVIGATION_ITEMS,
        sections: Iterable[AdminSection] = ADMIN_SECTIONS,
        rules: Iterable[RouteRule] = ROUTE_RULES,
        redirect_priority: Iterable[str] = REDIRECT_PRIORITY,
    ):
        self.admin_role_name = admin_role_name
        self.items = list(items)
        self.sections = list(sections)
        self.rules = list(rules)
        self.redirect_priority = list(redirect_priority)

    # Navigation

    def is_item_visible(self, store: PermissionStore, item: NavigationItem) -> bool:
        if item.required_permission:
            return store.has_permission(item.required_permission)
        if item.required_module:
            return store.can_access_module(item.required_module)
        # Unrestricted entries are only shown for public modules
        return item.module is not None and store.registry.is_public(item.module)

    def filter_navigation(self, store: PermissionStore) -> list[NavigationItem]:
        """Sidebar entries the user may see, in declaration order."""
        return [item for item in self.items if self.is_item_visible(store, item)]

    def filter_admin_sections(self, store: PermissionStore) -> list[AdminSection]:
        """Admin sections with at least one visible item, trimmed to those items."""
        visible_sections = []
        for section in self.sections:
            items = [item for item in section.items if self.is_item_visible(store, item)]
            if items:
                visible_sections.append(section.model_copy(update={"items": items}))
        return visible_sections

    def subscriptions(self) -> tuple[set[str], set[str]]:
        """Permissions and modules the rendered navigation depends on."""
        permissions: set[str] = set()
        modules: set[str] = set()
        for item in self._all_items():
            permissions.update(item.permissions())
            if item.required_module:
                modules.add(item.required_module)
        for rule in self._landing_rules():
            permissions.update(rule.permissions())
            if rule.required_module:
                modules.add(rule.required_module)
        return permissions, modules

    # Routes

    def match_route(self, path: str) -> Optional[RouteRule]:
        """
        Rule for a concrete client path.

        `{name}` segments in rule paths match any single segment; when
        several rules match, the one with fewest placeholders wins.
        """
        segments = _split(path)
        best: Optional[RouteRule] = None
        best_params = 0
        for rule in self.rules:
            pattern = _split(rule.path)
            if len(pattern) != len(segments):
                continue
            params = 0
            for expected, actual in zip(pattern, segments):
                if expected.startswith("{") and expected.endswith("}"):
                    params += 1
                elif expected != actual:
                    break
            else:
                if best is None or params < best_params:
                    best, best_params = rule, params
        return best

    def evaluate_route(
        self, session: Optional[Session], rule: RouteRule
    ) -> GuardDecision:
        """Evaluate a route rule against the session's cached permissions."""
        decision = self._precheck(session, rule)
        if decision is not None:
            return decision
        store = session.store

        if rule.required_permission and not store.has_permission(
            rule.required_permission
        ):
            return _deny(f"Missing permission {rule.required_permission}")
        for name in rule.required_permissions:
            if not store.has_permission(name):
                return _deny(f"Missing permission {name}")
        if rule.required_any_permissions and not any(
            store.has_permission(name) for name in rule.required_any_permissions
        ):
            return _deny("None of the accepted permissions is held")
        if rule.required_module and not store.can_access_module(rule.required_module):
            return _deny(f"No access to module {rule.required_module}")
        return GuardDecision.allow()

    async def evaluate_route_async(
        self, session: Optional[Session], rule: RouteRule
    ) -> GuardDecision:
        """Evaluate a route rule, re-checking stale entries upstream."""
        decision = self._precheck(session, rule)
        if decision is not None:
            return decision
        store = session.store
        await store.permissions_ready()

        required = list(rule.required_permissions)
        if rule.required_permission:
            required.insert(0, rule.required_permission)
        results = await asyncio.gather(
            *(store.has_permission_async(name) for name in required)
        )
        for name, held in zip(required, results):
            if not held:
                return _deny(f"Missing permission {name}")

        if rule.required_any_permissions:
            results = await asyncio.gather(
                *(store.has_permission_async(n) for n in rule.required_any_permissions)
            )
            if not any(results):
                return _deny("None of the accepted permissions is held")

        if rule.required_module and not await store.can_access_module_async(
            rule.required_module
        ):
            return _deny(f"No access to module {rule.required_module}")
        return GuardDecision.allow()

    async def resolve_path(
        self, session: Optional[Session], path: str
    ) -> GuardDecision:
        """Decision for a concrete client path, including undeclared paths."""
        if path in PUBLIC_PATHS:
            return GuardDecision.allow()
        if session is None or not session.is_authenticated:
            return GuardDecision.redirect(LOGIN_PATH, "Not authenticated")
        rule = self.match_route(path)
        if rule is None:
            logger.info("No route rule for %s, denying", path)
            return _deny(f"No route declared for {path}")
        return await self.evaluate_route_async(session, rule)

    async def smart_redirect(self, session: Optional[Session]) -> str:
        """
        Landing page after login.

        Waits for the first permission load, then returns the first page in
        priority order whose route rule allows the session.
        """
        if session is None or not session.is_authenticated:
            return LOGIN_PATH
        await session.store.permissions_ready()
        for rule in self._landing_rules():
            if self.evaluate_route(session, rule).allowed:
                return rule.path
        logger.info("User %s has no accessible landing page", session.user.id)
        return UNAUTHORIZED_PATH

    def _precheck(
        self, session: Optional[Session], rule: RouteRule
    ) -> Optional[GuardDecision]:
        if session is None or not session.is_authenticated:
            return GuardDecision.redirect(LOGIN_PATH, "Not authenticated")
        if rule.admin_only and session.user.role_name != self.admin_role_name:
            return _deny("Administrator role required")
        return None

    def _landing_rules(self) -> list[RouteRule]:
        rules = [self.match_route(path) for path in self.redirect_priority]
        return [rule for rule in rules if rule is not None]

    def _all_items(self) -> list[NavigationItem]:
        items = list(self.items)
        for section in self.sections:
            items.extend(section.items)
        return items


def _split(path: str) -> list[str]:
    return [segment for segment in path.split("?", 1)[0].split("/") if segment]


def _deny(reason: str) -> GuardDecision:
    return GuardDecision.redirect(UNAUTHORIZED_PATH, reason)
