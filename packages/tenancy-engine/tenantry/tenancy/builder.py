"""
Builds the resolution engine from MultiTenantOptions.

strategy_order names built-in strategies; callers may register their own
factories under new names before building.
"""

from __future__ import annotations

from typing import Callable, Iterable

from tenantry.config import MultiTenantOptions
from tenantry.errors import InvalidConfigurationError
from tenantry.models import TenantLike
from tenantry.store import CachingTenantStore, InMemoryTenantStore, TenantStore
from tenantry.tenancy.orchestrator import TenantResolutionOrchestrator
from tenantry.tenancy.resolver import CompositeTenantResolver
from tenantry.tenancy.strategies import (
    ClaimStrategy,
    HeaderStrategy,
    PathStrategy,
    QueryStrategy,
    SubdomainStrategy,
    TenantStrategy,
)

StrategyFactory = Callable[[TenantStore, MultiTenantOptions], TenantStrategy]

BUILTIN_STRATEGIES: dict[str, StrategyFactory] = {
    "header": lambda store, o: HeaderStrategy(store, o.tenant_header_name),
    "query": lambda store, o: QueryStrategy(store, o.tenant_query_parameter),
    "subdomain": lambda store, o: SubdomainStrategy(
        store, o.root_domain, o.subdomain_position
    ),
    "claim": lambda store, o: ClaimStrategy(store, o.tenant_claim_name),
    "path": lambda store, o: PathStrategy(store, o.path_prefix),
}


def build_store(
    options: MultiTenantOptions, tenants: Iterable[TenantLike] = ()
) -> InMemoryTenantStore:
    return InMemoryTenantStore(tenants, case_insensitive=options.case_insensitive_lookup)


def lookup_store(store: TenantStore, options: MultiTenantOptions) -> TenantStore:
    """The store strategies should read through: cached if caching is enabled."""
    if not options.enable_caching:
        return store
    return CachingTenantStore(store, options.cache_ttl)


def build_resolver(
    store: TenantStore,
    options: MultiTenantOptions,
    factories: dict[str, StrategyFactory] | None = None,
) -> CompositeTenantResolver:
    registry = {**BUILTIN_STRATEGIES, **(factories or {})}

    strategies: list[TenantStrategy] = []
    for name in options.strategy_order:
        factory = registry.get(name)
        if factory is None:
            raise InvalidConfigurationError(
                f"Unknown tenant strategy '{name}' (known: {sorted(registry)})"
            )
        strategies.append(factory(store, options))

    return CompositeTenantResolver(strategies)


def build_orchestrator(
    store: TenantStore,
    options: MultiTenantOptions,
    factories: dict[str, StrategyFactory] | None = None,
) -> TenantResolutionOrchestrator:
    """Wire strategies and the not-found policy over ``store``."""
    reader = lookup_store(store, options)
    return TenantResolutionOrchestrator(
        build_resolver(reader, options, factories), reader, options
    )
