"""healthgate service: FastAPI application exposing the health routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from healthgate import __version__
from healthgate.api import router
from healthgate.config import HealthSettings, get_settings
from healthgate.monitoring.probes import USER_AGENT
from healthgate.monitoring.system import SystemHealthChecker, create_system_health_checker

logger = logging.getLogger(__name__)


def create_app(
    checker: SystemHealthChecker | None = None,
    settings: HealthSettings | None = None,
) -> FastAPI:
    """Build the app around one shared checker.

    When no checker is given, one is created at startup with the default
    probes and a pooled HTTP client that is closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client: httpx.AsyncClient | None = None
        if checker is None:
            client = httpx.AsyncClient(
                timeout=settings.probe_timeout_seconds,
                headers={"User-Agent": USER_AGENT},
            )
            app.state.health_checker = create_system_health_checker(settings, client=client)
        else:
            app.state.health_checker = checker
        logger.info(
            "healthgate starting, monitoring %s",
            ", ".join(app.state.health_checker.registered_services),
        )
        yield
        if client is not None:
            await client.aclose()
        logger.info("healthgate stopped")

    app = FastAPI(
        title="healthgate",
        description="Dependency health and circuit breaker status",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    logging.basicConfig(level=getattr(logging, _settings.log_level.upper(), logging.INFO))
    uvicorn.run(create_app(settings=_settings), host="0.0.0.0", port=8070)
