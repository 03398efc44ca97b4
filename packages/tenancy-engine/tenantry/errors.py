"""
Tenancy errors.

Strategy-level failures never reach callers; these are raised by the
orchestrator (and by configuration) only.
"""

from __future__ import annotations


class TenancyError(Exception):
    """Base class for all tenant resolution errors."""


class TenantNotFoundError(TenancyError):
    """No tenant could be resolved and the configuration demands one."""

    def __init__(
        self,
        message: str = "Tenant not found",
        tenant_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.tenant_id = tenant_id


class TenantResolutionError(TenancyError):
    """Unexpected failure while resolving a tenant. The cause is chained."""

    def __init__(self, message: str = "Tenant resolution failed") -> None:
        super().__init__(message)


class InvalidConfigurationError(TenancyError, ValueError):
    """Unknown not-found action, strategy identifier, or similar misconfiguration."""
