"""Per-service health monitoring and system-wide aggregation."""

from __future__ import annotations

from .models import (
    ConfigurationMetadata,
    DatabaseMetadata,
    FallbackMetadata,
    HealthCheckRegistration,
    HealthStatus,
    HttpProbeMetadata,
    OverallStatus,
    ServiceHealth,
    SystemHealth,
)
from .service_monitor import ServiceHealthMonitor
from .system import (
    SystemHealthChecker,
    create_system_health_checker,
    reduce_overall_status,
)

__all__ = [
    "ConfigurationMetadata",
    "DatabaseMetadata",
    "FallbackMetadata",
    "HealthCheckRegistration",
    "HealthStatus",
    "HttpProbeMetadata",
    "OverallStatus",
    "ServiceHealth",
    "ServiceHealthMonitor",
    "SystemHealth",
    "SystemHealthChecker",
    "create_system_health_checker",
    "reduce_overall_status",
]
