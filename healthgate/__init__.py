"""healthgate: circuit breakers and dependency health aggregation.

Provides:
- CircuitBreaker: per-dependency fault isolation (closed / open / half-open)
- ServiceHealthMonitor: never-raising health checks behind a breaker
- SystemHealthChecker: concurrent fan-out and overall status reduction
"""

from __future__ import annotations

__version__ = "1.5.0"

from .config import HealthSettings, get_settings
from .exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    HealthGateError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceNotRegisteredError,
)
from .monitoring import (
    HealthCheckRegistration,
    HealthStatus,
    OverallStatus,
    ServiceHealth,
    ServiceHealthMonitor,
    SystemHealth,
    SystemHealthChecker,
    create_system_health_checker,
)
from .resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerStatus,
    CircuitState,
)

__all__ = [
    "__version__",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitBreakerStatus",
    "CircuitOpenError",
    "CircuitState",
    "HealthCheckRegistration",
    "HealthGateError",
    "HealthSettings",
    "HealthStatus",
    "OperationFailedError",
    "OperationTimeoutError",
    "OverallStatus",
    "ServiceHealth",
    "ServiceHealthMonitor",
    "ServiceNotRegisteredError",
    "SystemHealth",
    "SystemHealthChecker",
    "create_system_health_checker",
    "get_settings",
]
