"""
HTTP transport for the upstream permission endpoints.

Every failure is mapped onto the permission exception taxonomy so the store
can fail closed without knowing anything about HTTP.
"""

from typing import Any, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .exceptions import AuthExpiredError, PermissionNetworkError
from .models import Permission, UserPermissions


class PermissionTransport:
    """Calls the upstream API on behalf of one authenticated user."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    async def check_permission(self, name: str) -> bool:
        """Ask the server whether the current user holds `name`."""
        payload = await self._get(f"/auth/check-permission/{quote(name, safe='')}")
        return self._flag(payload, "hasPermission")

    async def check_module_access(self, module: str) -> bool:
        """Ask the server whether the current user can open `module`."""
        payload = await self._get(
            f"/auth/check-module/{quote(module.lower(), safe='')}"
        )
        return self._flag(payload, "hasAccess")

    async def fetch_user_permissions(self) -> UserPermissions:
        """
        Fetch every active permission and module granted to the current user.

        Raises:
            AuthExpiredError: If the upstream token was rejected
            PermissionNetworkError: On transport errors or malformed payloads
        """
        payload = await self._get("/auth/permissions")
        if not payload.get("success"):
            raise PermissionNetworkError(
                f"Permission load rejected: {payload.get('message', 'no message')}"
            )
        try:
            return UserPermissions.model_validate(payload.get("data") or {})
        except ValidationError as e:
            raise PermissionNetworkError(f"Malformed permission payload: {e}")

    async def list_permissions(self) -> List[Permission]:
        """Fetch the full permission catalog."""
        payload = await self._get("/permissions")
        data = payload.get("data")
        if not payload.get("success") or not isinstance(data, list):
            raise PermissionNetworkError("Malformed permission catalog payload")
        try:
            return [Permission.model_validate(item) for item in data]
        except ValidationError as e:
            raise PermissionNetworkError(f"Malformed permission catalog entry: {e}")

    async def _get(self, path: str) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(path, headers=headers)
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 401:
                    raise AuthExpiredError(f"Token rejected on {path}")
                raise PermissionNetworkError(
                    f"{path} failed with HTTP {e.response.status_code}"
                )
            except httpx.RequestError as e:
                raise PermissionNetworkError(f"{path} request failed: {e}")
            except ValueError as e:
                raise PermissionNetworkError(f"{path} returned invalid JSON: {e}")

        if not isinstance(payload, dict):
            raise PermissionNetworkError(f"{path} returned an unexpected payload")
        return payload

    @staticmethod
    def _flag(payload: dict[str, Any], field: str) -> bool:
        # Anything but an explicit successful True is a denial
        return payload.get("success") is True and payload.get(field) is True
