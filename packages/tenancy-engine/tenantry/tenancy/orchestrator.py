"""
TenantResolutionOrchestrator — runs the resolver for one request scope,
publishes the result into the scope's TenantContext and applies the
not-found policy.

Terminal states:
- Done(tenant)    → context holds the tenant
- Done(no tenant) → context is empty, result.error may hold a swallowed failure
- Failed          → TenantNotFoundError / TenantResolutionError raised

The context is only written once the chain has finished, so a cancelled
run leaves it empty.
"""

from __future__ import annotations

import asyncio
import logging

from tenantry.config import MultiTenantOptions, NotFoundAction
from tenantry.errors import (
    InvalidConfigurationError,
    TenantNotFoundError,
    TenantResolutionError,
)
from tenantry.models import Resolved, ResolutionResult, ResolutionSignal, TenantLike
from tenantry.store import TenantStore
from tenantry.tenancy.context import TenantContext
from tenantry.tenancy.resolver import CompositeTenantResolver

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "default"


class TenantResolutionOrchestrator:
    def __init__(
        self,
        resolver: CompositeTenantResolver,
        store: TenantStore,
        options: MultiTenantOptions | None = None,
    ) -> None:
        self._resolver = resolver
        self._store = store
        self._options = options or MultiTenantOptions()

    @property
    def options(self) -> MultiTenantOptions:
        return self._options

    @property
    def resolver(self) -> CompositeTenantResolver:
        return self._resolver

    @property
    def store(self) -> TenantStore:
        return self._store

    async def run(self, signal: ResolutionSignal, context: TenantContext) -> ResolutionResult:
        """Resolve the tenant for ``signal`` and publish it into ``context``."""
        # CancelledError is a BaseException and passes straight through
        try:
            async with asyncio.timeout(self._options.resolution_timeout):
                result = await self._resolve(signal)
        except (TenantNotFoundError, InvalidConfigurationError):
            raise
        except Exception as e:
            logger.error("Error occurred during tenant resolution", exc_info=True)
            error = TenantResolutionError("Failed to resolve tenant for the current request")
            error.__cause__ = e
            if self._options.require_tenant:
                raise error
            return ResolutionResult(error=error)

        if result.tenant is not None:
            context.set(result.tenant)
            logger.debug("Tenant '%s' set from %s", result.tenant.id, result.source)
        return result

    async def _resolve(self, signal: ResolutionSignal) -> ResolutionResult:
        tenant, outcomes = await self._resolver.trace(signal)
        if tenant is not None:
            last = outcomes[-1] if outcomes else None
            source = last.strategy if isinstance(last, Resolved) else self._resolver.name
            return ResolutionResult(tenant=tenant, source=source, outcomes=outcomes)

        logger.debug("No tenant could be resolved for the current request")
        default = await self._handle_not_found()
        if default is not None:
            return ResolutionResult(tenant=default, source=DEFAULT_SOURCE, outcomes=outcomes)
        return ResolutionResult(outcomes=outcomes)

    async def _handle_not_found(self) -> TenantLike | None:
        options = self._options
        action = options.not_found_action

        if action == NotFoundAction.THROW_EXCEPTION:
            if options.require_tenant:
                raise TenantNotFoundError("No tenant could be resolved for the current request")
            return None

        if action == NotFoundAction.USE_DEFAULT:
            default_id = options.default_tenant_id
            if default_id and default_id.strip():
                tenant = await self._store.get(default_id)
                if tenant is not None:
                    logger.debug("Using default tenant '%s'", default_id)
                    return tenant
                logger.warning("Default tenant '%s' not found", default_id)
            else:
                logger.warning("Default tenant requested but no default_tenant_id configured")

            if options.require_tenant:
                raise TenantNotFoundError(
                    f"Default tenant '{default_id}' not found", tenant_id=default_id
                )
            return None

        if action == NotFoundAction.CONTINUE:
            logger.debug("Continuing without tenant as configured")
            return None

        raise InvalidConfigurationError(f"Unknown tenant not found action: {action!r}")
