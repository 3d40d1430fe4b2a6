from typing import Awaitable, Callable

from fastapi import Depends

from casegate.core.settings import settings
from casegate.domains.auth.dependencies import get_current_session
from casegate.domains.auth.service import Session
from casegate.shared.exceptions import NotAuthorizedError

from .scope import ScopeResolver


def require_permission(permission: str) -> Callable[..., Awaitable[Session]]:
    """
    Dependency factory for permission-gated endpoints.

    Creates a dependency that validates the current session holds the
    specified permission, asking the upstream API when the cached answer
    is stale.

    Args:
        permission: Canonical permission name, e.g. "permissions.read.all"

    Returns:
        Async dependency function that validates permission and returns the session
    """

    async def check_permission(
        session: Session = Depends(get_current_session),
    ) -> Session:
        """
        Validate the session holds the required permission.

        Raises:
            NotAuthorizedError: If the permission is not held
        """
        if not await session.store.has_permission_async(permission):
            raise NotAuthorizedError(f"Insufficient permissions: {permission} required")
        return session

    return check_permission


def get_scope_resolver(
    session: Session = Depends(get_current_session),
) -> ScopeResolver:
    return ScopeResolver(session.store, session.user, settings.ADMIN_ROLE_NAME)
