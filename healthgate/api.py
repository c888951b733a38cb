"""Health API routes backed by an injected SystemHealthChecker."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from healthgate.exceptions import ServiceNotRegisteredError
from healthgate.monitoring.models import OverallStatus
from healthgate.monitoring.system import SystemHealthChecker

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/health", tags=["health"])

_NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def get_checker(request: Request) -> SystemHealthChecker:
    """Resolve the checker installed on the app at startup."""
    checker = getattr(request.app.state, "health_checker", None)
    if checker is None:
        raise HTTPException(status_code=503, detail="Health checker not initialised")
    return checker


def http_status_for(overall: OverallStatus) -> int:
    """Degraded still serves traffic; only unhealthy is a 503."""
    return 503 if overall == OverallStatus.UNHEALTHY else 200


@router.get("/system")
async def system_health(
    checker: SystemHealthChecker = Depends(get_checker),
    x_request_id: str | None = Header(default=None),
):
    """Aggregate health of every registered dependency."""
    request_id = x_request_id or str(uuid.uuid4())
    health = await checker.check_system_health(request_id)

    body = health.to_dict()
    body["circuitBreakers"] = [
        s.model_dump(mode="json", by_alias=True) for s in checker.get_circuit_breaker_states()
    ]
    return JSONResponse(
        body,
        status_code=http_status_for(health.overall),
        headers={**_NO_CACHE, "X-Health-Status": health.overall.value, "X-Request-ID": request_id},
    )


@router.get("/services/{name}")
async def service_health(name: str, checker: SystemHealthChecker = Depends(get_checker)):
    """Targeted check of one dependency."""
    try:
        health = await checker.check_specific_service(name)
    except ServiceNotRegisteredError as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc
    return JSONResponse(health.to_dict(), headers=_NO_CACHE)


@router.get("/circuit-breakers")
async def circuit_breakers(checker: SystemHealthChecker = Depends(get_checker)):
    """Get all circuit breaker states."""
    return [
        s.model_dump(mode="json", by_alias=True) for s in checker.get_circuit_breaker_states()
    ]


@router.post("/circuit-breakers/reset")
async def reset_circuit_breakers(checker: SystemHealthChecker = Depends(get_checker)):
    """Reset every circuit breaker to CLOSED."""
    checker.reset_circuit_breakers()
    logger.warning("Circuit breakers reset via API")
    return {"reset": checker.registered_services}
