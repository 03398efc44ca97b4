"""Tests for the FastAPI host adapter and demo app — resolution per request + tenant admin."""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from tenantry.app import create_app
from tenantry.config import MultiTenantOptions, NotFoundAction
from tenantry.middleware import (
    TenantResolutionMiddleware,
    require_tenant,
    signal_from_request,
)
from tenantry.models import ResolutionSignal
from tenantry.tenancy.builder import build_orchestrator, build_store
from tests.helpers import make_tenant


# ─── Fixtures ─────────────────────────────────────────────


@pytest.fixture
def tenants():
    return [
        make_tenant(id="t1", name="Acme"),
        make_tenant(id="t2", name="Globex"),
        make_tenant(id="dormant", name="Sleepy", is_active=False),
    ]


@pytest.fixture
def app(tenants):
    return create_app(tenants=tenants)


@pytest.fixture
def client(app):
    return TestClient(app)


def strict_client(tenants, **options) -> TestClient:
    options.setdefault("require_tenant", True)
    return TestClient(create_app(MultiTenantOptions(**options), tenants))


# ─── Health ───────────────────────────────────────────────


class TestHealth:
    def test_returns_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["tenant_count"] == 3
        assert data["strategies"] == ["header", "query"]

    def test_reachable_without_tenant_under_strict_policy(self, tenants):
        client = strict_client(tenants)
        assert client.get("/health").status_code == 200


# ─── Current tenant ───────────────────────────────────────


class TestCurrentTenant:
    def test_resolves_from_header(self, client):
        resp = client.get("/tenant", headers={"X-Tenant-ID": "t1"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["has_tenant"] is True
        assert data["tenant_name"] == "Acme"
        assert data["source"] == "header"
        assert resp.headers["X-Resolved-Tenant"] == "t1"

    def test_resolves_from_query(self, client):
        resp = client.get("/tenant", params={"tenant": "T2"})

        assert resp.json()["tenant_id"] == "t2"
        assert resp.json()["source"] == "query"

    def test_header_wins_over_query(self, client):
        resp = client.get("/tenant", params={"tenant": "t2"}, headers={"X-Tenant-ID": "t1"})
        assert resp.json()["tenant_id"] == "t1"

    def test_no_tenant_continues_by_default(self, client):
        resp = client.get("/tenant")

        assert resp.status_code == 200
        assert resp.json() == {
            "has_tenant": False,
            "tenant_id": None,
            "tenant_name": None,
            "source": None,
        }
        assert "X-Resolved-Tenant" not in resp.headers

    def test_inactive_tenant_is_not_resolved(self, client):
        resp = client.get("/tenant", headers={"X-Tenant-ID": "dormant"})
        assert resp.json()["has_tenant"] is False

    def test_strict_policy_returns_404(self, tenants):
        client = strict_client(tenants, not_found_action=NotFoundAction.THROW_EXCEPTION)

        resp = client.get("/tenant", headers={"X-Tenant-ID": "ghost"})

        assert resp.status_code == 404
        assert "No tenant" in resp.json()["detail"]

    def test_default_tenant_policy(self, tenants):
        client = strict_client(
            tenants,
            not_found_action=NotFoundAction.USE_DEFAULT,
            default_tenant_id="t2",
        )

        resp = client.get("/tenant")

        assert resp.json()["tenant_id"] == "t2"
        assert resp.json()["source"] == "default"
        assert resp.headers["X-Resolved-Tenant"] == "t2"

    def test_response_header_can_be_disabled(self, tenants):
        client = TestClient(
            create_app(
                MultiTenantOptions(require_tenant=False, response_header=None), tenants
            )
        )

        resp = client.get("/tenant", headers={"X-Tenant-ID": "t1"})

        assert resp.json()["has_tenant"] is True
        assert "X-Resolved-Tenant" not in resp.headers

    def test_contexts_are_not_shared_between_requests(self, client):
        first = client.get("/tenant", headers={"X-Tenant-ID": "t1"})
        second = client.get("/tenant")

        assert first.json()["has_tenant"] is True
        assert second.json()["has_tenant"] is False


# ─── Host adapter ─────────────────────────────────────────


class ExplodingStore:
    async def get(self, tenant_id):
        raise ConnectionError("store unreachable")

    async def exists(self, tenant_id):
        raise ConnectionError("store unreachable")

    async def all(self):
        return []


def adapter_app(store, options: MultiTenantOptions) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        TenantResolutionMiddleware, orchestrator=build_orchestrator(store, options)
    )

    @app.get("/whoami")
    async def whoami(tenant=Depends(require_tenant)):
        return {"id": tenant.id}

    @app.get("/signal")
    async def signal(request: Request):
        request.state.claims = {"tenant_id": "t1"}
        s = signal_from_request(request)
        return s.model_dump(include={"hostname", "path", "method", "query", "claims"})

    return app


class TestHostAdapter:
    def test_strategy_store_failure_falls_back_to_not_found(self):
        options = MultiTenantOptions(
            require_tenant=True, enable_caching=False, strategy_order=["header"]
        )
        client = TestClient(adapter_app(ExplodingStore(), options))

        resp = client.get("/whoami", headers={"X-Tenant-ID": "t1"})

        # Strategy failure is isolated; the not-found policy then applies
        assert resp.status_code == 404

    def test_default_lookup_failure_returns_500_when_required(self):
        options = MultiTenantOptions(
            require_tenant=True,
            enable_caching=False,
            not_found_action=NotFoundAction.USE_DEFAULT,
            default_tenant_id="t1",
        )
        client = TestClient(adapter_app(ExplodingStore(), options))

        resp = client.get("/whoami")

        assert resp.status_code == 500
        assert "Failed to resolve tenant" in resp.json()["detail"]

    def test_default_lookup_failure_is_swallowed_when_optional(self):
        options = MultiTenantOptions(
            require_tenant=False,
            enable_caching=False,
            not_found_action=NotFoundAction.USE_DEFAULT,
            default_tenant_id="t1",
        )
        client = TestClient(adapter_app(ExplodingStore(), options))

        resp = client.get("/whoami")

        # require_tenant dependency still guards the route
        assert resp.status_code == 404

    def test_signal_from_request_collects_request_view(self):
        store = build_store(MultiTenantOptions(), [make_tenant(id="t1")])
        client = TestClient(adapter_app(store, MultiTenantOptions(require_tenant=False)))

        data = client.get("/signal", params={"a": "b"}).json()

        assert data["path"] == "/signal"
        assert data["method"] == "GET"
        assert data["hostname"] == "testserver"
        assert data["query"] == {"a": "b"}
        assert data["claims"] == {"tenant_id": "t1"}

    def test_signal_lowercases_header_names(self):
        signal = ResolutionSignal(headers={"X-Tenant-ID": "t1"})
        assert signal.headers == {"x-tenant-id": "t1"}
        assert signal.header("X-TENANT-ID") == "t1"


# ─── Tenant admin ─────────────────────────────────────────


class TestTenantAdmin:
    def test_lists_tenants(self, client):
        resp = client.get("/tenants")

        assert resp.status_code == 200
        assert {t["id"] for t in resp.json()} == {"t1", "t2", "dormant"}

    def test_creates_tenant_and_resolves_it(self, client):
        resp = client.post("/tenants", json={"id": "t9", "name": "Initech"})
        assert resp.status_code == 201

        resolved = client.get("/tenant", headers={"X-Tenant-ID": "t9"})
        assert resolved.json()["tenant_name"] == "Initech"

    def test_rejects_duplicate(self, client):
        resp = client.post("/tenants", json={"id": "T1", "name": "Clobber"})

        assert resp.status_code == 409
        assert "already exists" in resp.json()["detail"]

    def test_rejects_blank_id(self, client):
        resp = client.post("/tenants", json={"id": "  "})
        assert resp.status_code == 422

    def test_update_is_visible_despite_cached_lookup(self, client):
        assert client.get("/tenant", headers={"X-Tenant-ID": "t1"}).json()["has_tenant"]

        resp = client.patch("/tenants/t1", json={"is_active": False})
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False

        assert client.get("/tenant", headers={"X-Tenant-ID": "t1"}).json()["has_tenant"] is False

    def test_reactivates_inactive_tenant(self, client):
        resp = client.patch("/tenants/dormant", json={"is_active": True, "name": "Awake"})

        assert resp.json()["name"] == "Awake"
        assert client.get("/tenant", headers={"X-Tenant-ID": "dormant"}).json()["has_tenant"]

    def test_update_unknown_returns_404(self, client):
        resp = client.patch("/tenants/ghost", json={"name": "x"})
        assert resp.status_code == 404

    def test_delete(self, client):
        assert client.delete("/tenants/t2").status_code == 204
        assert client.delete("/tenants/t2").status_code == 404
        assert client.get("/tenant", headers={"X-Tenant-ID": "t2"}).json()["has_tenant"] is False
