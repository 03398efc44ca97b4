"""
Multi-tenant options.

One ``MultiTenantOptions`` instance configures the whole engine: which
strategies run and in what order, how lookups compare ids, and what happens
when no tenant is found.
"""

from __future__ import annotations

import os
from datetime import timedelta
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from tenantry.errors import InvalidConfigurationError

ENV_PREFIX = "TENANTRY_"


class NotFoundAction(str, Enum):
    THROW_EXCEPTION = "throw_exception"
    USE_DEFAULT = "use_default"
    CONTINUE = "continue"


class MultiTenantOptions(BaseModel):
    require_tenant: bool = True
    not_found_action: NotFoundAction = NotFoundAction.THROW_EXCEPTION
    default_tenant_id: str | None = None
    case_insensitive_lookup: bool = True
    strategy_order: list[str] = Field(default_factory=lambda: ["header", "query"])

    # Extractor settings
    tenant_header_name: str = "X-Tenant-ID"
    tenant_query_parameter: str = "tenant"
    tenant_claim_name: str = "tenant_id"
    root_domain: str | None = None
    subdomain_position: int = Field(default=0, ge=0)
    path_prefix: str = ""

    # Store caching
    enable_caching: bool = True
    cache_ttl_seconds: float = 1800.0

    resolution_timeout: float | None = None
    response_header: str | None = "X-Resolved-Tenant"
    extended_properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("strategy_order")
    @classmethod
    def _normalize_strategy_order(cls, value: list[str]) -> list[str]:
        return [name.strip().lower() for name in value if name.strip()]

    @field_validator("default_tenant_id")
    @classmethod
    def _blank_default_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        defaults: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> MultiTenantOptions:
        """
        Build options from ``TENANTRY_*`` variables.

        Precedence: overrides > environment > defaults > field defaults.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = dict(defaults or {})

        for field_name in cls.model_fields:
            if field_name == "extended_properties":
                continue
            raw = env.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is None:
                continue
            if field_name == "strategy_order":
                values[field_name] = raw.split(",")
            elif raw == "" and field_name in _NULLABLE_FIELDS:
                values[field_name] = None
            else:
                values[field_name] = raw

        values.update(overrides)
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise InvalidConfigurationError(str(e)) from e


_NULLABLE_FIELDS = frozenset(
    {"default_tenant_id", "root_domain", "resolution_timeout", "response_header"}
)
