"""Tests for health models and the exception hierarchy."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from healthgate.exceptions import (
    CircuitOpenError,
    HealthGateError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceNotRegisteredError,
)
from healthgate.monitoring.models import (
    DatabaseMetadata,
    FallbackMetadata,
    HealthStatus,
    HttpProbeMetadata,
    OverallStatus,
    ServiceHealth,
    SystemHealth,
)
from healthgate.resilience.circuit_breaker import CircuitBreakerStatus, CircuitState

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestServiceHealth:
    def test_camel_case_output(self):
        health = ServiceHealth(
            name="database",
            status=HealthStatus.HEALTHY,
            response_time_ms=12,
            last_check=NOW,
        )
        data = health.to_dict()
        assert data == {
            "name": "database",
            "status": "healthy",
            "responseTimeMs": 12,
            "lastCheck": "2026-01-01T00:00:00Z",
        }

    def test_accepts_aliases_and_field_names(self):
        by_alias = ServiceHealth.model_validate(
            {"name": "sentry", "status": "degraded", "responseTimeMs": 40}
        )
        by_name = ServiceHealth(name="sentry", status="degraded", response_time_ms=40)
        assert by_alias.response_time_ms == by_name.response_time_ms == 40

    def test_rejects_negative_response_time(self):
        with pytest.raises(ValidationError):
            ServiceHealth(name="sentry", status=HealthStatus.HEALTHY, response_time_ms=-1)

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            ServiceHealth(name="sentry", status="on-fire")

    def test_last_check_defaults_to_aware_now(self):
        health = ServiceHealth(name="sentry", status=HealthStatus.HEALTHY)
        assert health.last_check.tzinfo is not None

    def test_unknown_constructor(self):
        health = ServiceHealth.unknown("sentry", error="Health check failed")
        assert health.status == HealthStatus.UNKNOWN
        assert health.error == "Health check failed"
        assert not health.is_fallback


class TestMetadata:
    def test_discriminated_parse(self):
        health = ServiceHealth.model_validate(
            {
                "name": "database",
                "status": "healthy",
                "metadata": {"kind": "database", "queryResult": "success"},
            }
        )
        assert isinstance(health.metadata, DatabaseMetadata)
        assert health.metadata.query_result == "success"

    def test_http_metadata_round_trip_shape(self):
        health = ServiceHealth(
            name="sentry",
            status=HealthStatus.HEALTHY,
            metadata=HttpProbeMetadata(http_status=200, configured=True),
        )
        assert health.to_dict()["metadata"] == {
            "kind": "http",
            "httpStatus": 200,
            "configured": True,
        }

    def test_untagged_mapping_kept_as_dict(self):
        health = ServiceHealth.model_validate(
            {"name": "queue", "status": "healthy", "metadata": {"depth": 3}}
        )
        assert health.metadata == {"depth": 3}
        assert not health.is_fallback

    def test_fallback_metadata_embeds_breaker_status(self):
        status = CircuitBreakerStatus(
            service_name="sentry", state=CircuitState.OPEN, failure_count=5
        )
        health = ServiceHealth(
            name="sentry",
            status=HealthStatus.UNKNOWN,
            metadata=FallbackMetadata(
                cached_status=HealthStatus.HEALTHY, circuit_breaker_state=status
            ),
        )
        assert health.is_fallback
        meta = health.to_dict()["metadata"]
        assert meta["fallback"] is True
        assert meta["cachedStatus"] == "healthy"
        assert meta["circuitBreakerState"]["state"] == "open"
        assert meta["circuitBreakerState"]["failureCount"] == 5


class TestSystemHealth:
    def _system(self):
        return SystemHealth(
            overall=OverallStatus.DEGRADED,
            services=[
                ServiceHealth(name="database", status=HealthStatus.HEALTHY),
                ServiceHealth(name="sentry", status=HealthStatus.DEGRADED),
                ServiceHealth(name="email-service", status=HealthStatus.UNKNOWN),
            ],
            version="1.5.0",
            uptime_seconds=7,
        )

    def test_get_service(self):
        system = self._system()
        assert system.get_service("sentry").status == HealthStatus.DEGRADED
        assert system.get_service("redis") is None

    def test_to_dict(self):
        data = self._system().to_dict()
        assert data["overall"] == "degraded"
        assert data["uptimeSeconds"] == 7
        assert "requestId" not in data
        assert [s["name"] for s in data["services"]] == ["database", "sentry", "email-service"]

    def test_rejects_negative_uptime(self):
        with pytest.raises(ValidationError):
            SystemHealth(overall=OverallStatus.HEALTHY, services=[], version="1", uptime_seconds=-1)


class TestExceptions:
    def test_hierarchy(self):
        for exc in (
            OperationFailedError("sentry", ValueError("boom")),
            OperationTimeoutError("sentry", 5000),
            CircuitOpenError("sentry"),
            ServiceNotRegisteredError("sentry"),
        ):
            assert isinstance(exc, HealthGateError)

    def test_timeout_message(self):
        exc = OperationTimeoutError("database", 5000)
        assert str(exc) == "Timeout after 5000ms for database"
        assert exc.to_dict() == {
            "error_code": "operation_timeout",
            "message": "Timeout after 5000ms for database",
            "service_name": "database",
        }

    def test_circuit_open_message(self):
        exc = CircuitOpenError("sentry", NOW)
        assert str(exc) == "Circuit breaker is OPEN for sentry"
        assert exc.next_attempt_time == NOW

    def test_not_registered_lists_known_services(self):
        exc = ServiceNotRegisteredError("redis", ["database", "sentry"])
        assert "'redis'" in str(exc)
        assert "database, sentry" in str(exc)
        assert exc.to_dict()["error_code"] == "service_not_registered"
