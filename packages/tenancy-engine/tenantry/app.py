"""
Tenantry — demo FastAPI application.

Tenant resolution middleware + tenant admin routes over an in-memory store.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from tenantry.config import MultiTenantOptions, NotFoundAction
from tenantry.middleware import TenantResolutionMiddleware, get_tenant_context
from tenantry.models import Tenant
from tenantry.store import CachingTenantStore, InMemoryTenantStore, TenantStore
from tenantry.tenancy.builder import build_orchestrator, build_store
from tenantry.tenancy.context import TenantContext

logger = logging.getLogger(__name__)

DEMO_DEFAULTS: dict[str, Any] = {
    "require_tenant": False,
    "not_found_action": NotFoundAction.CONTINUE,
}

# Reachable without a tenant whatever the policy
UNSCOPED_PATHS = ("/health", "/tenants", "/docs", "/openapi.json")

SAMPLE_TENANTS = [
    Tenant(id="tenant1", name="Acme Corporation"),
    Tenant(id="tenant2", name="Global Industries"),
    Tenant(id="tenant3", name="Tech Solutions"),
]


# ─── Request/Response models ─────────────────────────────


class CreateTenantRequest(BaseModel):
    id: str
    name: str | None = None
    is_active: bool = True
    properties: dict[str, Any] = Field(default_factory=dict)


class UpdateTenantRequest(BaseModel):
    name: str | None = None
    is_active: bool | None = None
    properties: dict[str, Any] | None = None


class TenantResponse(BaseModel):
    id: str
    name: str | None
    is_active: bool
    properties: dict[str, Any] = Field(default_factory=dict)


class CurrentTenantResponse(BaseModel):
    has_tenant: bool
    tenant_id: str | None = None
    tenant_name: str | None = None
    source: str | None = None


class HealthResponse(BaseModel):
    status: str
    tenant_count: int
    strategies: list[str]


def _to_response(tenant: Tenant) -> TenantResponse:
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        is_active=tenant.is_active,
        properties=tenant.properties,
    )


# ─── App setup ────────────────────────────────────────────


def create_app(
    options: MultiTenantOptions | None = None,
    tenants: Iterable[Tenant] | None = None,
) -> FastAPI:
    """Create the FastAPI app with tenant resolution wired in."""
    if options is None:
        options = MultiTenantOptions(**DEMO_DEFAULTS)

    store = build_store(
        options, SAMPLE_TENANTS if tenants is None else tenants
    )
    orchestrator = build_orchestrator(store, options)

    app = FastAPI(
        title="Tenantry",
        description="Tenant resolution for multi-tenant applications",
        version="0.1.0",
    )
    app.state.tenant_store = store
    app.state.orchestrator = orchestrator
    app.add_middleware(
        TenantResolutionMiddleware,
        orchestrator=orchestrator,
        exclude_paths=UNSCOPED_PATHS,
    )

    def get_store(request: Request) -> InMemoryTenantStore:
        return request.app.state.tenant_store

    def forget(tenant_id: str) -> None:
        # Admin writes must not be hidden behind cached lookups
        reader: TenantStore = orchestrator.store
        if isinstance(reader, CachingTenantStore):
            reader.invalidate(tenant_id)

    # ─── Routes ───────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health(store: InMemoryTenantStore = Depends(get_store)):
        return HealthResponse(
            status="ok",
            tenant_count=store.count,
            strategies=orchestrator.resolver.strategy_names,
        )

    @app.get("/tenant", response_model=CurrentTenantResponse)
    async def current_tenant(
        request: Request, context: TenantContext = Depends(get_tenant_context)
    ):
        tenant = context.current
        if tenant is None:
            return CurrentTenantResponse(has_tenant=False)

        result = getattr(request.state, "tenant_resolution", None)
        return CurrentTenantResponse(
            has_tenant=True,
            tenant_id=tenant.id,
            tenant_name=getattr(tenant, "name", None),
            source=result.source if result is not None else None,
        )

    # ─── Tenant admin ─────────────────────────────────

    @app.get("/tenants", response_model=list[TenantResponse])
    async def list_tenants(store: InMemoryTenantStore = Depends(get_store)):
        return [_to_response(t) for t in await store.all()]

    @app.post("/tenants", response_model=TenantResponse, status_code=201)
    async def create_tenant(
        req: CreateTenantRequest, store: InMemoryTenantStore = Depends(get_store)
    ):
        if not req.id.strip():
            raise HTTPException(422, "Tenant id must not be blank")

        tenant = Tenant(
            id=req.id,
            name=req.name,
            is_active=req.is_active,
            properties=req.properties,
        )
        if not store.add(tenant):
            raise HTTPException(409, f"Tenant '{req.id}' already exists")

        forget(tenant.id)
        logger.info("Created tenant '%s'", tenant.id)
        return _to_response(tenant)

    @app.patch("/tenants/{tenant_id}", response_model=TenantResponse)
    async def update_tenant(
        tenant_id: str,
        req: UpdateTenantRequest,
        store: InMemoryTenantStore = Depends(get_store),
    ):
        existing = next(
            (t for t in await store.all() if store.key(t.id) == store.key(tenant_id)),
            None,
        )
        if existing is None:
            raise HTTPException(404, "Tenant not found")

        changes = req.model_dump(exclude_none=True)
        updated = existing.model_copy(update=changes)
        store.update(updated)

        forget(tenant_id)
        return _to_response(updated)

    @app.delete("/tenants/{tenant_id}", status_code=204)
    async def delete_tenant(
        tenant_id: str, store: InMemoryTenantStore = Depends(get_store)
    ):
        if not store.remove(tenant_id):
            raise HTTPException(404, "Tenant not found")
        forget(tenant_id)

    return app


# ─── Entry point ──────────────────────────────────────────


def main():
    import os
    import uvicorn

    logging.basicConfig(level=os.getenv("TENANTRY_LOG_LEVEL", "INFO").upper())

    app = create_app(MultiTenantOptions.from_env(defaults=DEMO_DEFAULTS))
    uvicorn.run(
        app,
        host=os.getenv("TENANTRY_HOST", "0.0.0.0"),
        port=int(os.getenv("TENANTRY_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
