"""Exception hierarchy for the resilience and health-monitoring layer.

All exceptions inherit from ``HealthGateError`` so entry points can catch
the whole family with one ``except`` clause.

Propagation contract:

- ``OperationFailedError`` / ``OperationTimeoutError``: raised by
  ``CircuitBreaker.execute`` only when no fallback was supplied.
- ``CircuitOpenError``: the breaker refused the call and had no fallback.
- ``ServiceNotRegisteredError``: configuration error, always surfaced.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class HealthGateError(Exception):
    """Base exception for all healthgate failures."""

    error_code = "healthgate_error"

    def to_dict(self) -> dict[str, Any]:
        return {"error_code": self.error_code, "message": str(self)}


class CircuitBreakerError(HealthGateError):
    """Base exception for failures surfaced by a circuit breaker."""

    error_code = "circuit_breaker_error"

    def __init__(self, service_name: str, message: str) -> None:
        super().__init__(message)
        self.service_name = service_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["service_name"] = self.service_name
        return data


class OperationFailedError(CircuitBreakerError):
    """Raised when the protected operation itself raised."""

    error_code = "operation_failed"

    def __init__(self, service_name: str, original_error: BaseException) -> None:
        super().__init__(
            service_name,
            f"operation for {service_name!r} failed: {original_error}",
        )
        self.original_error = original_error


class OperationTimeoutError(CircuitBreakerError):
    """Raised when the protected operation missed its deadline."""

    error_code = "operation_timeout"

    def __init__(self, service_name: str, timeout_ms: int) -> None:
        super().__init__(
            service_name,
            f"Timeout after {timeout_ms}ms for {service_name}",
        )
        self.timeout_ms = timeout_ms


class CircuitOpenError(CircuitBreakerError):
    """Raised when the circuit is open and no fallback was supplied."""

    error_code = "circuit_open"

    def __init__(
        self,
        service_name: str,
        next_attempt_time: datetime | None = None,
    ) -> None:
        super().__init__(service_name, f"Circuit breaker is OPEN for {service_name}")
        self.next_attempt_time = next_attempt_time


class ServiceNotRegisteredError(HealthGateError):
    """Raised when a service name was never registered for monitoring."""

    error_code = "service_not_registered"

    def __init__(
        self,
        service_name: str,
        registered: list[str] | None = None,
    ) -> None:
        message = f"Service {service_name!r} not registered for monitoring"
        if registered:
            message += f". Registered: {', '.join(registered)}"
        super().__init__(message)
        self.service_name = service_name
        self.registered = list(registered or [])
