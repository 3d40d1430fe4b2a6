# casegate/domains/auth/service.py
import asyncio
import contextlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

import httpx
import jwt
from pydantic import ValidationError

from casegate.core.settings import settings
from casegate.shared.exceptions import (
    GatewayConfigurationError,
    InvalidTokenError,
    UpstreamAuthenticationError,
    UpstreamConnectionError,
)
from casegate.shared.permissions.catalog import PermissionCatalog, report_issues
from casegate.shared.permissions.exceptions import PermissionCoreError
from casegate.shared.permissions.models import User
from casegate.shared.permissions.modules import ModuleRegistry
from casegate.shared.permissions.store import PermissionStore
from casegate.shared.permissions.transport import PermissionTransport

from .models import SessionState, UpstreamTokens
from .types import GatewayTokenPayload

logger = logging.getLogger(__name__)

LogoutListener = Callable[["Session"], Awaitable[None]]


class Session:
    """One authenticated login: identity, upstream tokens and permission store."""

    def __init__(
        self,
        session_id: str,
        user: User,
        tokens: UpstreamTokens,
        store: PermissionStore,
        expires_at: datetime,
    ) -> None:
        self.id = session_id
        self.user = user
        self.token = tokens.token
        self.refresh_token = tokens.refresh_token
        self.store = store
        self.expires_at = expires_at
        self.is_authenticated = True
        self._listeners: list[LogoutListener] = []
        self._token_refresher: Optional[asyncio.Task[None]] = None

    def on_logout(self, listener: LogoutListener) -> None:
        """Register a coroutine called once the session has logged out."""
        self._listeners.append(listener)

    def attach_token_refresher(self, task: asyncio.Task[None]) -> None:
        self._token_refresher = task

    def update_tokens(self, tokens: UpstreamTokens) -> None:
        self.token = tokens.token
        if tokens.refresh_token:
            self.refresh_token = tokens.refresh_token
        # The store's transport must sign its next check with the new token
        self.store.transport.token = tokens.token

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    async def logout(self) -> None:
        """
        End the session.

        Cancels the token refresher, disposes the permission store (which
        drops any in-flight permission responses) and notifies listeners.
        Calling it again is a no-op.
        """
        if not self.is_authenticated:
            return
        self.is_authenticated = False

        refresher = self._token_refresher
        self._token_refresher = None
        if refresher is not None and refresher is not asyncio.current_task():
            refresher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await refresher

        await self.store.dispose()
        for listener in self._listeners:
            await listener(self)
        logger.info("Session %s for user %s logged out", self.id, self.user.id)

    async def expire(self) -> None:
        """Logout triggered by the upstream rejecting this session's token."""
        logger.warning("Upstream token for session %s expired", self.id)
        await self.logout()

    def state(self) -> SessionState:
        return SessionState(
            user=self.user,
            is_authenticated=self.is_authenticated,
            permissions_ready=self.store.is_ready,
            expires_at=self.expires_at,
        )


class SessionRegistry:
    """Live sessions of this gateway process, keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def discard(self, session: Session) -> None:
        self._sessions.pop(session.id, None)

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await session.logout()


class SessionService:
    """Service for login, logout and token lifecycle against the upstream API"""

    def __init__(
        self,
        registry: SessionRegistry,
        module_registry: ModuleRegistry,
        subscribed_permissions: Iterable[str] = (),
        subscribed_modules: Iterable[str] = (),
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        declarations: Optional[Mapping[str, Iterable[str]]] = None,
        validate_catalog: bool = False,
    ):
        self.registry = registry
        self.module_registry = module_registry
        self.subscribed_permissions = tuple(subscribed_permissions)
        self.subscribed_modules = tuple(subscribed_modules)
        self.base_url = base_url or settings.UPSTREAM_API_URL
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT
        self.transport = transport
        self.declarations = declarations or {}
        self.validate_catalog = validate_catalog
        self._catalog_checked = False

    async def login(self, email: str, password: str) -> Session:
        """
        Authenticate against the upstream API and open a gateway session.

        The session's permission store is populated before this returns, so
        callers can rely on `permissions_ready` being resolved.

        Args:
            email: User email
            password: User password

        Returns:
            The new, registered Session

        Raises:
            UpstreamAuthenticationError: If the credentials are rejected
            UpstreamConnectionError: If the upstream API is unreachable
        """
        tokens = await self._post(
            "/auth/login", {"email": email, "password": password}
        )
        if tokens.user is None:
            raise UpstreamAuthenticationError("Login response did not include a user")

        session_id = uuid.uuid4().hex
        transport = PermissionTransport(
            self.base_url, tokens.token, timeout=self.timeout, transport=self.transport
        )
        store = PermissionStore(
            transport,
            self.module_registry,
            refresh_interval=settings.PERMISSION_REFRESH_SECONDS,
            on_auth_expired=lambda: self._expire(session_id),
        )
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.SESSION_TTL_MINUTES
        )
        session = Session(session_id, tokens.user, tokens, store, expires_at)
        session.on_logout(self.registry.discard)
        self.registry.add(session)

        store.subscribe(self.subscribed_permissions, self.subscribed_modules)
        await store.load()
        if not session.is_authenticated:
            raise UpstreamAuthenticationError("Session expired while loading permissions")

        store.start()
        session.attach_token_refresher(
            asyncio.create_task(self._token_refresh_loop(session))
        )
        logger.info("Session %s opened for user %s", session.id, session.user.id)
        if self.validate_catalog and not self._catalog_checked:
            await self._check_catalog(session)
        return session

    async def logout(self, session: Session) -> None:
        await session.logout()

    async def refresh_tokens(self, session: Session) -> bool:
        """
        Exchange the session's refresh token for a new upstream token.

        A rejected or failed refresh logs the session out.

        Returns:
            True if the session is still authenticated afterwards
        """
        if not session.refresh_token:
            logger.debug("Session %s has no refresh token, skipping", session.id)
            return session.is_authenticated

        try:
            tokens = await self._post(
                "/auth/refresh", {"refreshToken": session.refresh_token}
            )
        except (UpstreamAuthenticationError, UpstreamConnectionError) as e:
            logger.warning("Token refresh failed for session %s: %s", session.id, e.detail)
            await session.logout()
            return False

        session.update_tokens(tokens)
        return True

    def issue_token(self, session: Session) -> str:
        """Sign a gateway token that identifies `session`."""
        payload = {
            "sub": session.user.id,
            "sid": session.id,
            "iat": int(datetime.now(timezone.utc).timestamp()),
            "exp": int(session.expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret(), algorithm="HS256")

    def decode_token(self, token: str) -> GatewayTokenPayload:
        """
        Verify a gateway token.

        Raises:
            InvalidTokenError: If the signature, expiry or claims are invalid
        """
        try:
            payload = jwt.decode(token, self._secret(), algorithms=["HS256"])
            return GatewayTokenPayload(**dict(payload))
        except (jwt.PyJWTError, ValidationError):
            raise InvalidTokenError()

    def resolve(self, token: str) -> Optional[Session]:
        """Live session for a gateway token, or None if it has ended."""
        payload = self.decode_token(token)
        session = self.registry.get(payload.sid)
        if session is None or not session.is_authenticated:
            return None
        if session.user.id != payload.sub:
            return None
        return session

    async def _check_catalog(self, session: Session) -> None:
        """Compare declared permission names with the upstream catalog, once."""
        try:
            catalog = PermissionCatalog(await session.store.transport.list_permissions())
        except PermissionCoreError as e:
            logger.warning("Could not validate the permission catalog: %s", e)
            return
        self._catalog_checked = True
        report_issues(catalog.validate(self.declarations))

    async def _expire(self, session_id: str) -> None:
        session = self.registry.get(session_id)
        if session is not None:
            await session.expire()

    async def _token_refresh_loop(self, session: Session) -> None:
        while session.is_authenticated:
            await asyncio.sleep(settings.TOKEN_REFRESH_SECONDS)
            if session.is_expired():
                logger.info("Session %s reached its lifetime", session.id)
                await session.logout()
                return
            if not await self.refresh_tokens(session):
                return

    async def _post(self, path: str, body: dict[str, Any]) -> UpstreamTokens:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                response = await client.post(
                    path, json=body, headers={"Content-Type": "application/json"}
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code in (400, 401, 403):
                    raise UpstreamAuthenticationError(
                        f"{path} rejected with HTTP {e.response.status_code}"
                    )
                raise UpstreamConnectionError(
                    f"{path} failed with HTTP {e.response.status_code}"
                )
            except httpx.RequestError as e:
                raise UpstreamConnectionError(f"{path} request failed: {e}")
            except ValueError:
                raise UpstreamConnectionError(f"{path} returned invalid JSON")

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise UpstreamAuthenticationError(message or f"{path} was not successful")
        try:
            return UpstreamTokens.model_validate(payload.get("data") or {})
        except ValidationError:
            raise UpstreamConnectionError(f"{path} returned a malformed payload")

    @staticmethod
    def _secret() -> str:
        if not settings.JWT_SECRET:
            raise GatewayConfigurationError("JWT_SECRET is not configured")
        return settings.JWT_SECRET
