"""
TenantContext — holds the resolved tenant for one request scope.

Key behaviors:
- One instance per request; never shared across concurrent scopes
- Reads before set() report no tenant
- Write-once: the tenant stays until clear(), setting a different one raises
- No locking, since an instance never crosses scopes
"""

from __future__ import annotations

from tenantry.models import TenantLike


class TenantContext:
    def __init__(self) -> None:
        self._tenant: TenantLike | None = None

    @property
    def current(self) -> TenantLike | None:
        return self._tenant

    @property
    def has_tenant(self) -> bool:
        return self._tenant is not None

    @property
    def tenant_id(self) -> str | None:
        return self._tenant.id if self._tenant is not None else None

    def set(self, tenant: TenantLike) -> None:
        """Publish the resolved tenant. No-op if the same tenant is already set."""
        if tenant is None:
            raise ValueError("tenant must not be None")

        if self._tenant is not None:
            if self._tenant.id == tenant.id:
                return
            raise RuntimeError(
                f"Tenant context already holds '{self._tenant.id}'; clear() it first"
            )

        self._tenant = tenant

    def clear(self) -> None:
        self._tenant = None

    def __repr__(self) -> str:
        return f"TenantContext(tenant_id={self.tenant_id!r})"
