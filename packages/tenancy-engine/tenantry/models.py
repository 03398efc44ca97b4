"""
Core models for tenant resolution.

A tenant is anything with an ``id`` and an ``is_active`` flag; ``Tenant`` is
the stock record. ``ResolutionSignal`` is the read-only view of one request
that strategies inspect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ─── Tenant ──────────────────────────────────────────────


@runtime_checkable
class TenantLike(Protocol):
    """Minimal tenant capability the engine depends on."""

    @property
    def id(self) -> str: ...

    @property
    def is_active(self) -> bool: ...


class Tenant(BaseModel):
    id: str
    name: str | None = None
    is_active: bool = True
    connection_string: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ─── Resolution Signal ───────────────────────────────────


class ResolutionSignal(BaseModel):
    """What a strategy may see of an inbound request."""

    model_config = ConfigDict(frozen=True)

    headers: dict[str, str | None] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    hostname: str | None = None
    path: str | None = None
    method: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)

    @field_validator("headers")
    @classmethod
    def _lowercase_header_names(cls, value: dict[str, str | None]) -> dict[str, str | None]:
        return {k.lower(): v for k, v in value.items()}

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


# ─── Resolution Outcomes ─────────────────────────────────


@dataclass(frozen=True)
class Resolved:
    strategy: str
    tenant: TenantLike


@dataclass(frozen=True)
class NotApplicable:
    strategy: str


@dataclass(frozen=True)
class Failed:
    strategy: str
    cause: BaseException


ResolutionOutcome = Union[Resolved, NotApplicable, Failed]


@dataclass
class ResolutionResult:
    """Terminal record of one orchestration pass."""

    tenant: TenantLike | None = None
    source: str | None = None
    outcomes: list[ResolutionOutcome] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def resolved(self) -> bool:
        return self.tenant is not None
