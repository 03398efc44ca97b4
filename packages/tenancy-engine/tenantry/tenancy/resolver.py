"""
CompositeTenantResolver — resolves tenant identity from a request signal.

Chain of responsibility: tries each strategy in order, first match wins.
A strategy that raises is logged and skipped, never fatal to the chain.
The composite is itself a strategy, so chains nest.
"""

from __future__ import annotations

import logging
from typing import Sequence

from tenantry.models import (
    Failed,
    NotApplicable,
    Resolved,
    ResolutionOutcome,
    ResolutionSignal,
    TenantLike,
)
from tenantry.tenancy.strategies import TenantStrategy

logger = logging.getLogger(__name__)


class CompositeTenantResolver:
    def __init__(self, strategies: Sequence[TenantStrategy], name: str = "composite") -> None:
        self._strategies = tuple(strategies)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def applies(self, signal: ResolutionSignal) -> bool:
        """True if any strategy applies. A raising check counts as False."""
        for strategy in self._strategies:
            if await self._applies(strategy, signal):
                return True
        return False

    async def resolve(self, signal: ResolutionSignal) -> TenantLike | None:
        """Try each strategy in order. First tenant found wins."""
        tenant, _ = await self.trace(signal)
        return tenant

    async def trace(
        self, signal: ResolutionSignal
    ) -> tuple[TenantLike | None, list[ResolutionOutcome]]:
        """Resolve, also returning one outcome per strategy consulted."""
        outcomes: list[ResolutionOutcome] = []
        logger.debug(
            "Starting tenant resolution with %d strategies: %s",
            len(self._strategies),
            self.strategy_names,
        )

        for strategy in self._strategies:
            if not await self._applies(strategy, signal):
                logger.debug("Strategy '%s' does not apply to this request", strategy.name)
                outcomes.append(NotApplicable(strategy.name))
                continue

            try:
                tenant = await strategy.resolve(signal)
            except Exception as e:
                logger.exception("Strategy '%s' failed while resolving tenant", strategy.name)
                outcomes.append(Failed(strategy.name, e))
                continue

            if tenant is None:
                logger.debug("Strategy '%s' could not resolve a tenant", strategy.name)
                outcomes.append(NotApplicable(strategy.name))
                continue

            logger.debug("Resolved tenant '%s' via strategy '%s'", tenant.id, strategy.name)
            outcomes.append(Resolved(strategy.name, tenant))
            return tenant, outcomes

        logger.warning("No strategy could resolve a tenant for the current request")
        return None, outcomes

    @staticmethod
    async def _applies(strategy: TenantStrategy, signal: ResolutionSignal) -> bool:
        try:
            return bool(await strategy.applies(signal))
        except Exception:
            logger.exception("Strategy '%s' failed its applies check", strategy.name)
            return False
