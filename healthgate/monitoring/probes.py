"""Health probes for the landing page's external dependencies.

Checks: database (critical), Sentry, Vercel Analytics, Google Analytics,
SendGrid. Probes follow the health-check contract: a slow or failing
dependency is reported as ``degraded``/``unhealthy``; the probe only raises
when it cannot run at all.
"""

from __future__ import annotations

import functools
import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx
import psycopg

from healthgate.monitoring.models import (
    ConfigurationMetadata,
    DatabaseMetadata,
    HealthCheckRegistration,
    HealthStatus,
    HttpProbeMetadata,
    ServiceHealth,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from healthgate.config import HealthSettings

logger = logging.getLogger(__name__)

USER_AGENT = "Landing-Page-Health-Check"


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


def _first_line(exc: BaseException) -> str:
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else type(exc).__name__


@asynccontextmanager
async def _http_client(
    client: httpx.AsyncClient | None,
    settings: HealthSettings,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one bounded by the probe timeout."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(
        timeout=settings.probe_timeout_seconds,
        headers={"User-Agent": USER_AGENT},
    ) as owned:
        yield owned


async def check_database_health(
    settings: HealthSettings,
    *,
    connect: Callable[..., Awaitable[Any]] | None = None,
) -> ServiceHealth:
    """Check PostgreSQL with a lightweight ``SELECT 1``."""
    start = time.perf_counter()
    if not settings.database_url:
        return ServiceHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            response_time_ms=0,
            error="Database URL not configured",
        )

    connect = connect or psycopg.AsyncConnection.connect
    try:
        conn = await connect(
            settings.database_url,
            connect_timeout=max(1, int(settings.probe_timeout_seconds)),
        )
        async with conn:
            cursor = await conn.execute("SELECT 1")
            row = await cursor.fetchone()
    except Exception as exc:
        # Never echo the DSN: it carries credentials
        logger.warning("Database health check failed: %s", type(exc).__name__)
        return ServiceHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            response_time_ms=_elapsed_ms(start),
            error=_first_line(exc).replace(settings.database_url, "<redacted>"),
        )

    response_time = _elapsed_ms(start)
    if response_time > settings.database_unhealthy_ms:
        status = HealthStatus.UNHEALTHY
    elif response_time > settings.database_degraded_ms:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    return ServiceHealth(
        name="database",
        status=status,
        response_time_ms=response_time,
        metadata=DatabaseMetadata(query_result="success" if row else "empty"),
    )


async def check_sentry_health(
    settings: HealthSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> ServiceHealth:
    """Check that the Sentry API is reachable."""
    start = time.perf_counter()
    try:
        async with _http_client(client, settings) as http:
            resp = await http.get(settings.sentry_api_url)
    except httpx.HTTPError as exc:
        return ServiceHealth(
            name="sentry",
            status=HealthStatus.UNHEALTHY,
            response_time_ms=_elapsed_ms(start),
            error=str(exc) or "Sentry health check failed",
        )

    return ServiceHealth(
        name="sentry",
        status=HealthStatus.HEALTHY if resp.is_success else HealthStatus.DEGRADED,
        response_time_ms=_elapsed_ms(start),
        metadata=HttpProbeMetadata(
            http_status=resp.status_code,
            configured=bool(settings.sentry_dsn),
        ),
    )


async def check_vercel_analytics_health(settings: HealthSettings) -> ServiceHealth:
    """Vercel Analytics has no public health endpoint; report configuration only."""
    return ServiceHealth(
        name="vercel-analytics",
        status=HealthStatus.HEALTHY,
        metadata=ConfigurationMetadata(
            configured=True,
            note="No external health endpoint available",
        ),
    )


async def check_google_analytics_health(
    settings: HealthSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> ServiceHealth:
    """Check that the GA4 measurement endpoint is reachable."""
    start = time.perf_counter()
    configured = bool(settings.ga_measurement_id)
    try:
        async with _http_client(client, settings) as http:
            resp = await http.options(settings.ga_collect_url)
    except httpx.HTTPError as exc:
        # Analytics outages never break the page
        return ServiceHealth(
            name="google-analytics",
            status=HealthStatus.DEGRADED,
            response_time_ms=_elapsed_ms(start),
            error=str(exc) or "GA4 health check failed",
            metadata=HttpProbeMetadata(configured=configured),
        )

    return ServiceHealth(
        name="google-analytics",
        status=HealthStatus.HEALTHY,
        response_time_ms=_elapsed_ms(start),
        metadata=HttpProbeMetadata(
            http_status=resp.status_code,
            configured=configured,
            detail="endpoint accessible",
        ),
    )


async def check_email_service_health(
    settings: HealthSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> ServiceHealth:
    """Check SendGrid through its public status page."""
    start = time.perf_counter()
    configured = bool(settings.sendgrid_api_key)
    try:
        async with _http_client(client, settings) as http:
            resp = await http.get(settings.sendgrid_status_url)
            resp.raise_for_status()
            payload = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        return ServiceHealth(
            name="email-service",
            status=HealthStatus.DEGRADED,
            response_time_ms=_elapsed_ms(start),
            error=str(exc) or "Email service health check failed",
            metadata=HttpProbeMetadata(configured=configured),
        )

    status_block = payload.get("status") if isinstance(payload, dict) else None
    if not isinstance(status_block, dict):
        status_block = {}
    indicator = status_block.get("indicator", "unknown")
    description = status_block.get("description", "unknown")
    healthy = indicator == "none"

    return ServiceHealth(
        name="email-service",
        status=HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED,
        response_time_ms=_elapsed_ms(start),
        error=None if healthy else f"SendGrid status: {indicator}",
        metadata=HttpProbeMetadata(
            http_status=resp.status_code,
            configured=configured,
            detail=str(description),
        ),
    )


def default_health_checks(
    settings: HealthSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> list[HealthCheckRegistration]:
    """The landing page's dependencies, in reporting order."""
    return [
        HealthCheckRegistration(
            "database", functools.partial(check_database_health, settings), critical=True
        ),
        HealthCheckRegistration(
            "sentry", functools.partial(check_sentry_health, settings, client=client)
        ),
        HealthCheckRegistration(
            "vercel-analytics", functools.partial(check_vercel_analytics_health, settings)
        ),
        HealthCheckRegistration(
            "google-analytics",
            functools.partial(check_google_analytics_health, settings, client=client),
        ),
        HealthCheckRegistration(
            "email-service",
            functools.partial(check_email_service_health, settings, client=client),
        ),
    ]
