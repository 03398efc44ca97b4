"""
FastAPI / Starlette host adapter.

TenantResolutionMiddleware gives every request its own TenantContext on
``request.state.tenant_context``, runs the orchestrator against a
ResolutionSignal built from the request, and annotates the response with the
resolved tenant id. Route handlers read the context through the
``get_tenant_context`` / ``require_tenant`` dependencies.
"""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from tenantry.errors import (
    InvalidConfigurationError,
    TenantNotFoundError,
    TenantResolutionError,
)
from tenantry.models import ResolutionSignal, TenantLike
from tenantry.tenancy.context import TenantContext
from tenantry.tenancy.orchestrator import TenantResolutionOrchestrator

logger = logging.getLogger(__name__)


def signal_from_request(request: Request) -> ResolutionSignal:
    """Build the read-only resolution view of a request.

    Claims are taken from ``request.state.claims`` when an upstream
    authentication layer has put them there.
    """
    claims = getattr(request.state, "claims", None)
    return ResolutionSignal(
        headers=dict(request.headers),
        query=dict(request.query_params),
        hostname=request.url.hostname,
        path=request.url.path,
        method=request.method,
        claims=dict(claims) if isinstance(claims, dict) else {},
    )


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        orchestrator: TenantResolutionOrchestrator,
        exclude_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._orchestrator = orchestrator
        self._exclude_paths = tuple(p.rstrip("/") for p in exclude_paths)

    def _excluded(self, path: str) -> bool:
        return any(path == p or path.startswith(f"{p}/") for p in self._exclude_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = TenantContext()
        request.state.tenant_context = context

        if self._excluded(request.url.path):
            return await call_next(request)

        logger.debug("Starting tenant resolution for request: %s %s", request.method, request.url.path)
        try:
            result = await self._orchestrator.run(signal_from_request(request), context)
        except TenantNotFoundError as e:
            return JSONResponse({"detail": str(e)}, status_code=404)
        except (TenantResolutionError, InvalidConfigurationError) as e:
            logger.error("Tenant resolution failed: %s", e)
            return JSONResponse({"detail": str(e)}, status_code=500)

        request.state.tenant_resolution = result
        response = await call_next(request)

        header = self._orchestrator.options.response_header
        if header and context.tenant_id is not None:
            response.headers[header] = context.tenant_id
        return response


# ─── Dependencies ─────────────────────────────────────────


def get_tenant_context(request: Request) -> TenantContext:
    context = getattr(request.state, "tenant_context", None)
    if context is None:
        raise RuntimeError("TenantResolutionMiddleware is not installed")
    return context


def require_tenant(request: Request) -> TenantLike:
    """Dependency for routes that cannot run without a tenant."""
    context = get_tenant_context(request)
    if context.current is None:
        raise HTTPException(404, "Tenant not found")
    return context.current
