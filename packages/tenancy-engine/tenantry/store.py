"""
Tenant stores — where strategies look tenant ids up.

InMemoryTenantStore is shared process-wide state: every request scope reads
it, and admin routes write it, so the mapping is lock-guarded.
CachingTenantStore wraps any store with a TTL cache of lookups.

Inactive tenants are invisible to get() and exists().
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Iterable, Protocol

from tenantry.models import TenantLike

logger = logging.getLogger(__name__)


class TenantStore(Protocol):
    """Lookup capability strategies delegate to."""

    async def get(self, tenant_id: str) -> TenantLike | None: ...

    async def exists(self, tenant_id: str) -> bool: ...

    async def all(self) -> list[TenantLike]: ...


def _require_id(tenant_id: str | None) -> str:
    if tenant_id is None or not tenant_id.strip():
        raise ValueError("Tenant id must be a non-empty string")
    return tenant_id


class InMemoryTenantStore:
    def __init__(
        self,
        tenants: Iterable[TenantLike] = (),
        *,
        case_insensitive: bool = True,
    ) -> None:
        self._case_insensitive = case_insensitive
        self._tenants: dict[str, TenantLike] = {}
        self._lock = threading.Lock()

        for tenant in tenants:
            if not getattr(tenant, "id", None) or not tenant.id.strip():
                logger.warning("Skipping seed tenant without an id: %r", tenant)
                continue
            self.add(tenant)

    @property
    def case_insensitive(self) -> bool:
        return self._case_insensitive

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._tenants)

    def key(self, tenant_id: str) -> str:
        """Normalize an id according to the store's comparison mode."""
        return tenant_id.casefold() if self._case_insensitive else tenant_id

    # ─── Lookup ──────────────────────────────────────────

    async def get(self, tenant_id: str) -> TenantLike | None:
        key = self.key(_require_id(tenant_id))
        with self._lock:
            tenant = self._tenants.get(key)
        if tenant is None or not tenant.is_active:
            return None
        return tenant

    async def exists(self, tenant_id: str) -> bool:
        return await self.get(tenant_id) is not None

    async def all(self) -> list[TenantLike]:
        with self._lock:
            return list(self._tenants.values())

    # ─── Mutation ────────────────────────────────────────

    def add(self, tenant: TenantLike) -> bool:
        """Add a tenant. Returns False (and keeps the existing one) on duplicate id."""
        key = self.key(_require_id(getattr(tenant, "id", None)))
        with self._lock:
            if key in self._tenants:
                return False
            self._tenants[key] = tenant
        return True

    def update(self, tenant: TenantLike) -> bool:
        """Replace a stored tenant. Returns False for an unknown id."""
        key = self.key(_require_id(getattr(tenant, "id", None)))
        with self._lock:
            if key not in self._tenants:
                return False
            self._tenants[key] = tenant
        return True

    def remove(self, tenant_id: str) -> bool:
        key = self.key(_require_id(tenant_id))
        with self._lock:
            return self._tenants.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._tenants.clear()


# ─── Caching decorator ───────────────────────────────────


Clock = Callable[[], float]


class CachingTenantStore:
    """
    TTL cache in front of another store. Misses are cached too.

    Entries are keyed the way the wrapped store compares ids; a store that
    does not expose ``case_insensitive`` is keyed by the raw id.
    """

    def __init__(
        self,
        inner: TenantStore,
        ttl: timedelta = timedelta(minutes=30),
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._inner = inner
        self._ttl = ttl.total_seconds()
        self._case_insensitive = bool(getattr(inner, "case_insensitive", False))
        self._clock = clock
        self._entries: dict[str, tuple[TenantLike | None, float]] = {}
        self._lock = threading.Lock()

    @property
    def inner(self) -> TenantStore:
        return self._inner

    def _key(self, tenant_id: str) -> str:
        return tenant_id.casefold() if self._case_insensitive else tenant_id

    async def get(self, tenant_id: str) -> TenantLike | None:
        key = self._key(_require_id(tenant_id))
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                tenant, expires_at = entry
                if now < expires_at:
                    return tenant
                del self._entries[key]

        tenant = await self._inner.get(tenant_id)

        with self._lock:
            self._entries[key] = (tenant, now + self._ttl)
        logger.debug("Cached lookup for tenant '%s' (hit=%s)", tenant_id, tenant is not None)
        return tenant

    async def exists(self, tenant_id: str) -> bool:
        return await self.get(tenant_id) is not None

    async def all(self) -> list[TenantLike]:
        return await self._inner.all()

    def invalidate(self, tenant_id: str) -> None:
        with self._lock:
            self._entries.pop(self._key(_require_id(tenant_id)), None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()
