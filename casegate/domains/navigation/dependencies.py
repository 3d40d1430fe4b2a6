# casegate/domains/navigation/dependencies.py
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request

from casegate.domains.auth.dependencies import get_optional_session
from casegate.domains.auth.service import Session
from casegate.shared.exceptions import GatewayConfigurationError, RouteRedirect

from .models import RouteRule
from .service import NavigationGate


def get_navigation_gate(request: Request) -> NavigationGate:
    gate = getattr(request.app.state, "navigation_gate", None)
    if gate is None:
        raise GatewayConfigurationError("Navigation gate is not initialised")
    return gate


def require_route(rule: RouteRule) -> Callable[..., Awaitable[Session]]:
    """
    Dependency factory guarding an endpoint with a route rule.

    Args:
        rule: Requirements the current session must satisfy

    Returns:
        Async dependency that returns the session or raises RouteRedirect
    """

    async def check_route(
        session: Optional[Session] = Depends(get_optional_session),
        gate: NavigationGate = Depends(get_navigation_gate),
    ) -> Session:
        decision = await gate.evaluate_route_async(session, rule)
        if not decision.allowed:
            raise RouteRedirect(decision.redirect_to, decision.reason)
        return session

    return check_route
