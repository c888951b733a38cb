"""Per-service health monitoring with circuit breaker protection.

Gives every dependency a uniform "never raises" health-check contract:
each registered service owns one ``CircuitBreaker`` and one cached
last-known ``ServiceHealth``. When the probe fails, times out, or the
breaker is open, a synthesised ``unknown`` record built from the cache is
returned instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from healthgate.exceptions import ServiceNotRegisteredError
from healthgate.monitoring.models import FallbackMetadata, HealthStatus, ServiceHealth
from healthgate.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerStatus,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    HealthCheck = Callable[[], Awaitable[ServiceHealth]]

logger = logging.getLogger(__name__)

FALLBACK_ERROR = "Service monitoring unavailable - fallback in use"


class ServiceHealthMonitor:
    """Registry of name → (circuit breaker, last-known health)."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._checks: dict[str, HealthCheck] = {}
        self._cache: dict[str, ServiceHealth] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    @property
    def registered_services(self) -> list[str]:
        return list(self._breakers)

    def register_service(
        self,
        name: str,
        health_check: HealthCheck,
        config: CircuitBreakerConfig | None = None,
    ) -> None:
        """Register a service, replacing any previous registration."""
        if name in self._breakers:
            logger.info("Re-registering service %s; previous breaker discarded", name)

        self._breakers[name] = CircuitBreaker(name, config, clock=self._clock)
        self._checks[name] = health_check
        self._cache[name] = ServiceHealth(
            name=name, status=HealthStatus.UNKNOWN, last_check=self._clock()
        )
        self._locks.setdefault(name, asyncio.Lock())

    async def check_service_health(
        self,
        name: str,
        health_check: HealthCheck | None = None,
    ) -> ServiceHealth:
        """Run one health check through the service's breaker.

        Never raises for a registered service. Raises
        ``ServiceNotRegisteredError`` for an unknown name.
        """
        breaker = self._get_breaker(name)
        check = health_check or self._checks[name]

        async def operation() -> ServiceHealth:
            return self._coerce(name, await check())

        async def fallback() -> ServiceHealth:
            return self._fallback_health(name)

        async with self._locks[name]:
            try:
                health = await breaker.execute(operation, fallback)
            except Exception as exc:
                logger.warning("Health check for %s failed outside breaker: %s", name, exc)
                health = self._fallback_health(name)

            if health.is_fallback:
                logger.warning(
                    "Using fallback health for %s (circuit %s)",
                    name,
                    breaker.state.value,
                )
            self._cache[name] = health
        return health

    def get_last_known_health(self, name: str) -> ServiceHealth:
        self._get_breaker(name)
        return self._cache[name]

    def get_circuit_breaker_states(self) -> list[CircuitBreakerStatus]:
        return [breaker.get_status() for breaker in self._breakers.values()]

    def reset_circuit_breaker(self, name: str) -> bool:
        """Reset one breaker. Returns False if the service is unknown."""
        breaker = self._breakers.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all_circuit_breakers(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    def _get_breaker(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            raise ServiceNotRegisteredError(name, self.registered_services)
        return breaker

    def _fallback_health(self, name: str) -> ServiceHealth:
        cached = self._cache.get(name)
        breaker = self._breakers.get(name)
        return ServiceHealth(
            name=name,
            status=HealthStatus.UNKNOWN,
            last_check=self._clock(),
            error=FALLBACK_ERROR,
            metadata=FallbackMetadata(
                cached_status=cached.status if cached else None,
                cached_last_check=cached.last_check if cached else None,
                circuit_breaker_state=breaker.get_status() if breaker else None,
            ),
        )

    @staticmethod
    def _coerce(name: str, result: object) -> ServiceHealth:
        """Accept a ServiceHealth or a plain mapping from a probe."""
        if isinstance(result, ServiceHealth):
            return result
        if isinstance(result, Mapping):
            return ServiceHealth.model_validate({"name": name, **result})
        raise TypeError(
            f"health check for {name!r} returned {type(result).__name__}, "
            "expected ServiceHealth"
        )
