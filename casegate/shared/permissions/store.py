"""
Permission store: the single source of truth for "can the current user do X".

One store exists per authenticated session. It answers synchronously from a
cache, refreshes entries from the upstream API when they go stale, and keeps
the keys that visible UI depends on fresh with a background poll.

Every write into the cache carries a ticket taken from a monotonic counter.
A response is discarded when a newer write already landed on the same key,
when the cache was invalidated after the request started, or when the store
was disposed. Denial is the answer whenever the store does not know.
"""

import asyncio
import contextlib
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from .exceptions import AuthExpiredError, PermissionCoreError
from .models import UserPermissions
from .modules import ModuleRegistry
from .transport import PermissionTransport

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 30.0


def permission_key(name: str) -> str:
    return f"permission:{name}"


def module_key(module: str) -> str:
    return f"module:{module.lower()}"


@dataclass(frozen=True)
class CacheEntry:
    value: bool
    fetched_at: float
    version: int


class PermissionStore:
    """Cached, self-refreshing permission oracle for one user."""

    def __init__(
        self,
        transport: PermissionTransport,
        registry: ModuleRegistry,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        on_auth_expired: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.transport = transport
        self.registry = registry
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._on_auth_expired = on_auth_expired

        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, tuple[int, asyncio.Task[bool]]] = {}
        self._reload_task: Optional[asyncio.Task[None]] = None
        self._reload_sent = False  # The current reload has issued its request
        self._refresher: Optional[asyncio.Task[None]] = None

        self._version = 0
        self._floor = 0  # Tickets at or below this predate the last invalidation
        self._ready = asyncio.Event()
        self._disposed = False
        self._expired = False

        self._subscribed_permissions: Counter[str] = Counter()
        self._subscribed_modules: Counter[str] = Counter()

    # Synchronous reads

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def has_permission(self, name: str) -> bool:
        """Cached answer for `name`; False when unknown. Never raises."""
        return self._read(permission_key(name))

    def can_access_module(self, module: str) -> bool:
        """
        Cached module access.

        Public modules pass first. Declared modules pass when any of their
        permissions is held, or always when they declare none. Undeclared
        modules use the server's module check as last cached.
        """
        if self._disposed:
            return False
        if self.registry.is_public(module):
            return True
        if self.registry.is_declared(module):
            names = self.registry.permissions_for(module)
            return not names or any(self.has_permission(name) for name in names)
        return self._read(module_key(module))

    def snapshot(self) -> dict[str, bool]:
        return {key: entry.value for key, entry in self._entries.items()}

    # Asynchronous checks

    async def has_permission_async(self, name: str) -> bool:
        """
        Fresh answer for `name`.

        Uses the cache when the entry is younger than the refresh interval;
        otherwise asks the server. Concurrent calls for one name share a
        single request.
        """
        if self._disposed:
            return False
        key = permission_key(name)
        entry = self._entries.get(key)
        if entry is not None and not self._is_stale(entry):
            return entry.value
        return await self._fetch(key, lambda: self.transport.check_permission(name))

    async def can_access_module_async(self, module: str) -> bool:
        if self._disposed:
            return False
        if self.registry.is_public(module):
            return True
        if self.registry.is_declared(module):
            names = self.registry.permissions_for(module)
            if not names:
                return True
            results = await asyncio.gather(
                *(self.has_permission_async(name) for name in names)
            )
            return any(results)

        key = module_key(module)
        entry = self._entries.get(key)
        if entry is not None and not self._is_stale(entry):
            return entry.value
        return await self._fetch(
            key, lambda: self.transport.check_module_access(module)
        )

    # Population and refresh

    async def permissions_ready(self) -> None:
        """Wait until the first full population has completed (or failed)."""
        await self._ready.wait()

    async def load(self) -> None:
        """Populate the cache from the full grant list; resolves readiness."""
        if self._disposed:
            return
        await self._reload()

    async def refresh_permissions(self) -> None:
        """
        Invalidate every entry and reload the user's grants.

        Used after a role change so elevated or revoked access is corrected
        within one round trip. A reload whose request is already on the wire
        may carry the old grants, so the call waits for it and then shares
        a single follow-up reload with any other caller; a reload that has
        not sent its request yet is joined as is.
        """
        if self._disposed:
            return
        self._invalidate()
        await self._reload(fresh=True)

    async def refresh_subscribed(self) -> None:
        """Re-check every subscribed permission and module against the server."""
        if self._disposed:
            return
        names = set(self._subscribed_permissions)
        undeclared: set[str] = set()
        for module in self._subscribed_modules:
            if self.registry.is_public(module):
                continue
            if self.registry.is_declared(module):
                names.update(self.registry.permissions_for(module))
            else:
                undeclared.add(module)

        checks = [
            self._fetch(
                permission_key(name),
                lambda name=name: self.transport.check_permission(name),
            )
            for name in sorted(names)
        ]
        checks.extend(
            self._fetch(
                module_key(module),
                lambda module=module: self.transport.check_module_access(module),
            )
            for module in sorted(undeclared)
        )
        if checks:
            await asyncio.gather(*checks)

    def subscribe(
        self, permissions: Iterable[str] = (), modules: Iterable[str] = ()
    ) -> None:
        """Register keys that visible UI depends on for the background poll."""
        self._subscribed_permissions.update(permissions)
        self._subscribed_modules.update(module.lower() for module in modules)

    def unsubscribe(
        self, permissions: Iterable[str] = (), modules: Iterable[str] = ()
    ) -> None:
        self._subscribed_permissions.subtract(permissions)
        self._subscribed_modules.subtract(module.lower() for module in modules)
        # Counter.subtract keeps zero and negative counts around
        self._subscribed_permissions = +self._subscribed_permissions
        self._subscribed_modules = +self._subscribed_modules

    def subscriptions(self) -> tuple[set[str], set[str]]:
        return set(self._subscribed_permissions), set(self._subscribed_modules)

    # Lifecycle

    def start(self) -> None:
        """Start the background poll. Must be called from a running loop."""
        if self._disposed or self._refresher is not None:
            return
        self._refresher = asyncio.create_task(self._refresh_loop())

    async def dispose(self) -> None:
        """
        Tear the store down on logout.

        Cancels the poll and clears the cache. Requests already on the wire
        are left to finish, but their responses are dropped.
        """
        if self._disposed:
            return
        self._disposed = True
        self._floor = self._next_ticket()

        if self._refresher is not None:
            self._refresher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._refresher
            self._refresher = None

        self._entries.clear()
        self._inflight.clear()
        self._subscribed_permissions.clear()
        self._subscribed_modules.clear()
        # Anything still waiting for readiness gets the empty, denying cache
        self._ready.set()
        logger.info("Permission store disposed")

    # Internals

    def _read(self, key: str) -> bool:
        if self._disposed:
            return False
        entry = self._entries.get(key)
        return entry.value if entry is not None else False

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at >= self.refresh_interval

    def _next_ticket(self) -> int:
        self._version += 1
        return self._version

    def _invalidate(self) -> None:
        self._floor = self._next_ticket()
        self._entries.clear()

    def _write(self, key: str, value: bool, ticket: int) -> bool:
        if self._disposed or ticket <= self._floor:
            logger.debug("Dropping superseded result for %s", key)
            return False
        current = self._entries.get(key)
        if current is not None and current.version > ticket:
            logger.debug("Dropping out-of-order result for %s", key)
            return False
        self._entries[key] = CacheEntry(value, self._clock(), ticket)
        return True

    async def _fetch(self, key: str, loader: Callable[[], Awaitable[bool]]) -> bool:
        inflight = self._inflight.get(key)
        if inflight is not None and inflight[0] > self._floor:
            task = inflight[1]
        else:
            ticket = self._next_ticket()
            task = asyncio.ensure_future(self._run_check(key, loader, ticket))
            self._inflight[key] = (ticket, task)
            task.add_done_callback(lambda done, key=key: self._forget(key, done))

        # Shielded: a cancelled caller must not cancel the shared request
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[bool]) -> None:
        inflight = self._inflight.get(key)
        if inflight is not None and inflight[1] is task:
            del self._inflight[key]

    async def _run_check(
        self, key: str, loader: Callable[[], Awaitable[bool]], ticket: int
    ) -> bool:
        try:
            value = await loader()
        except AuthExpiredError as e:
            logger.warning("Permission check %s denied, session expired: %s", key, e)
            self._write(key, False, ticket)
            await self._notify_auth_expired()
            return False
        except PermissionCoreError as e:
            logger.warning("Permission check %s failed, denying: %s", key, e)
            value = False

        self._write(key, value, ticket)
        return self._read(key)

    async def _reload(self, fresh: bool = False) -> None:
        task = self._reload_task
        if task is None or task.done():
            task = self._start_reload()
        elif fresh and self._reload_sent:
            task = self._start_reload(after=task)
        await asyncio.shield(task)

    def _start_reload(
        self, after: Optional[asyncio.Task[None]] = None
    ) -> asyncio.Task[None]:
        self._reload_sent = False
        task = asyncio.ensure_future(self._run_reload(after))
        self._reload_task = task
        return task

    async def _run_reload(self, after: Optional[asyncio.Task[None]]) -> None:
        if after is not None:
            await asyncio.wait({after})
        # Ticket is taken when the request goes out, after any invalidation
        # that this reload was started or joined for
        self._reload_sent = True
        ticket = self._next_ticket()
        try:
            if self._disposed:
                return
            grants = await self.transport.fetch_user_permissions()
        except AuthExpiredError as e:
            logger.warning("Permission load denied, session expired: %s", e)
            self._deny_known(ticket)
            await self._notify_auth_expired()
        except PermissionCoreError as e:
            logger.warning("Permission load failed, denying all: %s", e)
            self._deny_known(ticket)
        else:
            self._apply_grants(grants, ticket)
            logger.info(
                "Loaded %d permissions across %d modules",
                len(grants.granted()),
                len(grants.module_names()),
            )
        finally:
            self._ready.set()

    def _apply_grants(self, grants: UserPermissions, ticket: int) -> None:
        granted = grants.granted()
        modules = grants.module_names()

        permission_keys = {permission_key(name) for name in granted}
        permission_keys.update(permission_key(n) for n in self._subscribed_permissions)
        module_keys = {module_key(module) for module in modules}
        module_keys.update(module_key(m) for m in self._subscribed_modules)

        for key in permission_keys | {
            k for k in self._entries if k.startswith("permission:")
        }:
            self._write(key, key.split(":", 1)[1] in granted, ticket)
        for key in module_keys | {k for k in self._entries if k.startswith("module:")}:
            self._write(key, key.split(":", 1)[1] in modules, ticket)

    def _deny_known(self, ticket: int) -> None:
        keys = set(self._entries)
        keys.update(permission_key(n) for n in self._subscribed_permissions)
        keys.update(module_key(m) for m in self._subscribed_modules)
        for key in keys:
            self._write(key, False, ticket)

    async def _notify_auth_expired(self) -> None:
        if self._expired or self._on_auth_expired is None:
            return
        self._expired = True
        await self._on_auth_expired()

    async def _refresh_loop(self) -> None:
        while not self._disposed:
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.refresh_subscribed()
            except Exception:
                logger.exception("Background permission refresh failed")
