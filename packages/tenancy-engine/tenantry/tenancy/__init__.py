from .builder import build_orchestrator, build_resolver, build_store
from .context import TenantContext
from .orchestrator import TenantResolutionOrchestrator
from .resolver import CompositeTenantResolver
from .strategies import (
    ClaimStrategy,
    HeaderStrategy,
    PathStrategy,
    QueryStrategy,
    StoreStrategy,
    SubdomainStrategy,
    TenantStrategy,
)

__all__ = [
    "TenantContext",
    "TenantResolutionOrchestrator",
    "CompositeTenantResolver",
    "TenantStrategy",
    "StoreStrategy",
    "HeaderStrategy",
    "QueryStrategy",
    "SubdomainStrategy",
    "ClaimStrategy",
    "PathStrategy",
    "build_orchestrator",
    "build_resolver",
    "build_store",
]
