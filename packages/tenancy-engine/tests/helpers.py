"""Shared test helpers."""

from __future__ import annotations

from dataclasses import dataclass, field

from tenantry.models import ResolutionSignal, Tenant, TenantLike
from tenantry.store import InMemoryTenantStore


def make_tenant(**overrides) -> Tenant:
    """Create a test tenant with sensible defaults."""
    defaults = dict(
        id="t1",
        name="Acme",
        is_active=True,
        properties={"plan": "pro"},
    )
    defaults.update(overrides)
    return Tenant(**defaults)


def make_store(*tenants: Tenant, case_insensitive: bool = True) -> InMemoryTenantStore:
    return InMemoryTenantStore(tenants, case_insensitive=case_insensitive)


def header_signal(tenant_id: str, header: str = "X-Tenant-ID") -> ResolutionSignal:
    return ResolutionSignal(headers={header: tenant_id})


@dataclass
class FakeStrategy:
    """Scriptable strategy that records every call it receives."""

    name: str
    tenant: TenantLike | None = None
    applies_result: bool = True
    fail_on_applies: bool = False
    fail_on_resolve: bool = False
    calls: list[str] = field(default_factory=list)

    async def applies(self, signal: ResolutionSignal) -> bool:
        self.calls.append(f"{self.name}:applies")
        if self.fail_on_applies:
            raise RuntimeError(f"{self.name} applies failed")
        return self.applies_result

    async def resolve(self, signal: ResolutionSignal) -> TenantLike | None:
        self.calls.append(f"{self.name}:resolve")
        if self.fail_on_resolve:
            raise RuntimeError(f"{self.name} resolve failed")
        return self.tenant
