"""
Tests for shared permissions dependencies (require_permission function).
"""

from unittest.mock import AsyncMock, Mock

import pytest

from casegate.domains.auth.service import Session
from casegate.shared.exceptions import NotAuthorizedError
from casegate.shared.permissions.dependencies import (
    get_scope_resolver,
    require_permission,
)


class TestRequirePermission:
    """Test the require_permission dependency factory."""

    @pytest.fixture
    def mock_session(self) -> Mock:
        """Mock Session whose store answers through has_permission_async."""
        session = Mock(spec=Session)
        session.id = "session-123"
        session.store = Mock()
        session.store.has_permission_async = AsyncMock(return_value=True)
        return session

    @pytest.mark.asyncio
    async def test_require_permission_granted(self, mock_session: Mock):
        """Test that a held permission returns the session."""
        permission_dependency = require_permission("permissions.read.all")

        result = await permission_dependency(session=mock_session)

        assert result is mock_session
        mock_session.store.has_permission_async.assert_awaited_once_with(
            "permissions.read.all"
        )

    @pytest.mark.asyncio
    async def test_require_permission_denied(self, mock_session: Mock):
        """Test that a missing permission raises 403."""
        mock_session.store.has_permission_async.return_value = False
        permission_dependency = require_permission("users.admin.all")

        with pytest.raises(NotAuthorizedError) as exc_info:
            await permission_dependency(session=mock_session)

        assert exc_info.value.status_code == 403
        assert "users.admin.all" in exc_info.value.detail

    def test_get_scope_resolver_uses_session_user(self, mock_session: Mock, agent_user):
        mock_session.user = agent_user

        resolver = get_scope_resolver(session=mock_session)

        assert resolver.user is agent_user
        assert resolver.store is mock_session.store
        assert resolver.admin_role_name == "Administrator"
