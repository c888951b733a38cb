"""System-wide health aggregation.

Fans out every registered health check concurrently through a
``ServiceHealthMonitor`` and reduces the results to one ``SystemHealth``:

- ``unhealthy`` if any critical service is unhealthy
- ``degraded`` if any service at all is unhealthy or degraded
- ``healthy`` otherwise

One checker is built at process start (``create_system_health_checker``)
and passed to whatever serves the health endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from healthgate.config import HealthSettings
from healthgate.exceptions import ServiceNotRegisteredError
from healthgate.monitoring.models import (
    HealthCheckRegistration,
    HealthStatus,
    OverallStatus,
    ServiceHealth,
    SystemHealth,
)
from healthgate.monitoring.probes import default_health_checks
from healthgate.monitoring.service_monitor import ServiceHealthMonitor

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Sequence

    import httpx

    from healthgate.resilience.circuit_breaker import CircuitBreakerStatus

logger = logging.getLogger(__name__)

_PROCESS_STARTED = time.monotonic()

_DEGRADING = frozenset({HealthStatus.UNHEALTHY, HealthStatus.DEGRADED})


def reduce_overall_status(
    services: Iterable[ServiceHealth],
    critical: Collection[str],
) -> OverallStatus:
    """Combine per-service statuses into one overall status."""
    services = list(services)
    if any(s.name in critical and s.status == HealthStatus.UNHEALTHY for s in services):
        return OverallStatus.UNHEALTHY
    if any(s.status in _DEGRADING for s in services):
        return OverallStatus.DEGRADED
    return OverallStatus.HEALTHY


class SystemHealthChecker:
    """Runs every registered dependency check and aggregates the results."""

    def __init__(
        self,
        checks: Sequence[HealthCheckRegistration] | None = None,
        *,
        settings: HealthSettings | None = None,
        monitor: ServiceHealthMonitor | None = None,
        started_at: float | None = None,
    ) -> None:
        self.settings = settings or HealthSettings()
        self._monitor = monitor or ServiceHealthMonitor()
        self._registrations: dict[str, HealthCheckRegistration] = {}
        self._started_at = _PROCESS_STARTED if started_at is None else started_at

        if checks is None:
            checks = default_health_checks(self.settings)
        for registration in checks:
            self.register_check(registration)

    @property
    def monitor(self) -> ServiceHealthMonitor:
        return self._monitor

    @property
    def registered_services(self) -> list[str]:
        return list(self._registrations)

    @property
    def critical_services(self) -> frozenset[str]:
        return frozenset(r.name for r in self._registrations.values() if r.critical)

    def register_check(self, registration: HealthCheckRegistration) -> None:
        """Register (or replace) one check. Administrative, not on the request path."""
        self._monitor.register_service(
            registration.name,
            registration.check,
            self.settings.breaker_config(registration.critical),
        )
        self._registrations[registration.name] = registration

    async def check_system_health(self, request_id: str | None = None) -> SystemHealth:
        """Check every registered service concurrently and aggregate."""
        registrations = list(self._registrations.values())
        results = await asyncio.gather(
            *(
                self._monitor.check_service_health(r.name, r.check)
                for r in registrations
            ),
            return_exceptions=True,
        )

        services: list[ServiceHealth] = []
        for registration, result in zip(registrations, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Health check for %s raised unexpectedly: %r",
                    registration.name,
                    result,
                )
                services.append(
                    ServiceHealth.unknown(
                        registration.name,
                        error=str(result) or "Health check failed",
                    )
                )
            else:
                services.append(result)

        overall = reduce_overall_status(services, self.critical_services)
        health = SystemHealth(
            overall=overall,
            services=services,
            timestamp=self._monitor.clock(),
            uptime_seconds=int(time.monotonic() - self._started_at),
            version=self.settings.app_version,
            request_id=request_id,
        )
        logger.info(
            "System health check completed: overall=%s services=%d request_id=%s",
            overall.value,
            len(services),
            request_id,
        )
        return health

    async def check_specific_service(self, name: str) -> ServiceHealth:
        registration = self._registrations.get(name)
        if registration is None:
            raise ServiceNotRegisteredError(name, self.registered_services)
        return await self._monitor.check_service_health(name, registration.check)

    def get_circuit_breaker_states(self) -> list[CircuitBreakerStatus]:
        return self._monitor.get_circuit_breaker_states()

    def reset_circuit_breakers(self) -> None:
        """Reset every breaker (administrative)."""
        self._monitor.reset_all_circuit_breakers()
        logger.info("All circuit breakers reset")


def create_system_health_checker(
    settings: HealthSettings | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> SystemHealthChecker:
    """Build the process-wide checker with the default probes."""
    settings = settings or HealthSettings()
    return SystemHealthChecker(
        default_health_checks(settings, client=client),
        settings=settings,
    )
