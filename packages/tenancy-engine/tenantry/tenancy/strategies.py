"""
Resolution strategies — each one pulls a tenant id out of a request signal
and looks it up in the tenant store.

Strategies return data only: they never touch the signal or the context.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Protocol

from tenantry.models import ResolutionSignal, TenantLike
from tenantry.store import TenantStore

logger = logging.getLogger(__name__)


class TenantStrategy(Protocol):
    """Interface for resolution strategies (and composites of them)."""

    @property
    def name(self) -> str: ...

    async def applies(self, signal: ResolutionSignal) -> bool: ...

    async def resolve(self, signal: ResolutionSignal) -> TenantLike | None: ...


class StoreStrategy(ABC):
    """Base for strategies that extract an id and delegate to the store.

    Subclasses set ``name`` and implement ``extract``.
    """

    name = "store"
    source = "request"

    def __init__(self, store: TenantStore) -> None:
        self._store = store

    @abstractmethod
    def extract(self, signal: ResolutionSignal) -> str | None: ...

    def _tenant_id(self, signal: ResolutionSignal) -> str | None:
        value = self.extract(signal)
        if value is None:
            return None
        value = value.strip()
        return value or None

    async def applies(self, signal: ResolutionSignal) -> bool:
        return self._tenant_id(signal) is not None

    async def resolve(self, signal: ResolutionSignal) -> TenantLike | None:
        tenant_id = self._tenant_id(signal)
        if tenant_id is None:
            logger.debug("No tenant id in %s for strategy '%s'", self.source, self.name)
            return None

        logger.debug(
            "Resolving tenant '%s' from %s via strategy '%s'", tenant_id, self.source, self.name
        )
        tenant = await self._store.get(tenant_id)
        if tenant is None:
            logger.warning("Tenant '%s' not found (strategy '%s')", tenant_id, self.name)
        return tenant


# ─── Built-in Strategies ─────────────────────────────────


_IP_RE = re.compile(r"^\d+\.\d+\.\d+\.\d+$")


class HeaderStrategy(StoreStrategy):
    """Resolves tenant from a request header (e.g., X-Tenant-ID)."""

    name = "header"

    def __init__(self, store: TenantStore, header_name: str = "X-Tenant-ID") -> None:
        super().__init__(store)
        self._header_name = header_name.lower()
        self.source = f"header '{header_name}'"

    def extract(self, signal: ResolutionSignal) -> str | None:
        return signal.header(self._header_name)


class QueryStrategy(StoreStrategy):
    """Resolves tenant from a query parameter (e.g., ?tenant=acme)."""

    name = "query"

    def __init__(self, store: TenantStore, parameter: str = "tenant") -> None:
        super().__init__(store)
        self._parameter = parameter
        self.source = f"query parameter '{parameter}'"

    def extract(self, signal: ResolutionSignal) -> str | None:
        return signal.query.get(self._parameter)


class SubdomainStrategy(StoreStrategy):
    """
    Resolves tenant from the host name.

    With a root domain, only single-level subdomains of it count
    (acme.example.com → 'acme'). Without one, the label at ``position`` is used.
    """

    name = "subdomain"
    source = "host"

    def __init__(
        self,
        store: TenantStore,
        root_domain: str | None = None,
        position: int = 0,
    ) -> None:
        if position < 0:
            raise ValueError(f"Subdomain position must be >= 0, got {position}")
        super().__init__(store)
        self._root_domain = root_domain.lower().strip(".") if root_domain else None
        self._position = position

    def extract(self, signal: ResolutionSignal) -> str | None:
        hostname = (signal.hostname or "").lower().split(":", 1)[0]
        if not hostname or _IP_RE.match(hostname) or hostname == "localhost":
            return None

        if self._root_domain is None:
            labels = hostname.split(".")
            # A bare domain (example.com) has no subdomain label
            if len(labels) < 3 or self._position >= len(labels) - 2:
                return None
            label = labels[self._position]
            return None if label == "www" else label

        # Skip root domain itself
        if hostname in (self._root_domain, f"www.{self._root_domain}"):
            return None

        suffix = f".{self._root_domain}"
        if not hostname.endswith(suffix):
            return None

        subdomain = hostname[: -len(suffix)]
        if not subdomain or "." in subdomain:
            return None  # Skip multi-level subdomains
        return subdomain


class ClaimStrategy(StoreStrategy):
    """Resolves tenant from identity claims (e.g., tenant_id or org_id claim)."""

    name = "claim"

    def __init__(self, store: TenantStore, claim_name: str = "tenant_id") -> None:
        super().__init__(store)
        self._claim_name = claim_name
        self.source = f"claim '{claim_name}'"

    def extract(self, signal: ResolutionSignal) -> str | None:
        value = signal.claims.get(self._claim_name)
        if isinstance(value, str):
            return value
        return None


class PathStrategy(StoreStrategy):
    """Resolves tenant from the first path segment after ``prefix`` (/t/acme/... → 'acme')."""

    name = "path"
    source = "path"

    def __init__(self, store: TenantStore, prefix: str = "") -> None:
        super().__init__(store)
        self._segments = [s for s in prefix.split("/") if s]

    def extract(self, signal: ResolutionSignal) -> str | None:
        segments = [s for s in (signal.path or "").split("/") if s]
        n = len(self._segments)
        if segments[:n] != self._segments or len(segments) <= n:
            return None
        return segments[n]
