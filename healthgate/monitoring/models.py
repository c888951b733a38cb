"""Health and service status models.

JSON output uses camelCase aliases (``responseTimeMs``, ``lastCheck``,
``uptimeSeconds``, ``requestId``); Python code uses the snake_case names.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from healthgate.resilience.circuit_breaker import CircuitBreakerStatus, utcnow


class HealthStatus(str, Enum):
    """Status of a single dependency."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"  # Synthesised by a fallback, not observed


class OverallStatus(str, Enum):
    """Aggregate status of the whole system."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthModel(BaseModel):
    """Base model shared by every health payload."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Metadata variants ─────────────────────────────────────────────────────


class DatabaseMetadata(HealthModel):
    kind: Literal["database"] = "database"
    connection_pool: str = "active"
    query_result: str | None = None


class HttpProbeMetadata(HealthModel):
    kind: Literal["http"] = "http"
    http_status: int | None = None
    configured: bool = False
    detail: str | None = None


class ConfigurationMetadata(HealthModel):
    """For dependencies with no endpoint to probe."""

    kind: Literal["configuration"] = "configuration"
    configured: bool
    note: str | None = None


class FallbackMetadata(HealthModel):
    kind: Literal["fallback"] = "fallback"
    fallback: bool = True
    cached_status: HealthStatus | None = None
    cached_last_check: datetime | None = None
    circuit_breaker_state: CircuitBreakerStatus | None = None


TypedMetadata = Annotated[
    Union[DatabaseMetadata, HttpProbeMetadata, ConfigurationMetadata, FallbackMetadata],
    Field(discriminator="kind"),
]

# Opaque mapping only for diagnostics that fit none of the variants.
ServiceMetadata = Annotated[
    Union[TypedMetadata, dict[str, Any]],
    Field(union_mode="left_to_right"),
]


# ── Health records ────────────────────────────────────────────────────────


class ServiceHealth(HealthModel):
    """Result of one health check for one dependency."""

    name: str
    status: HealthStatus
    response_time_ms: int | None = Field(None, ge=0)
    last_check: datetime = Field(default_factory=utcnow)
    error: str | None = None
    metadata: ServiceMetadata | None = None

    @classmethod
    def unknown(
        cls,
        name: str,
        error: str | None = None,
        metadata: ServiceMetadata | None = None,
    ) -> ServiceHealth:
        return cls(name=name, status=HealthStatus.UNKNOWN, error=error, metadata=metadata)

    @property
    def is_fallback(self) -> bool:
        return isinstance(self.metadata, FallbackMetadata)


class SystemHealth(HealthModel):
    """Aggregate snapshot produced by one system health check."""

    overall: OverallStatus
    services: list[ServiceHealth]
    timestamp: datetime = Field(default_factory=utcnow)
    uptime_seconds: int = Field(0, ge=0)
    version: str
    request_id: str | None = None

    def get_service(self, name: str) -> ServiceHealth | None:
        for service in self.services:
            if service.name == name:
                return service
        return None


@dataclass(frozen=True)
class HealthCheckRegistration:
    """A named probe and whether its failure takes the whole system down."""

    name: str
    check: Callable[[], Awaitable[ServiceHealth]]
    critical: bool = False
