"""Environment-driven settings for health monitoring."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from healthgate import __version__
from healthgate.resilience.circuit_breaker import CircuitBreakerConfig


class HealthSettings(BaseSettings):
    """Breaker tuning, probe endpoints and credentials, read from HEALTHGATE_* vars."""

    app_version: str = __version__
    log_level: str = "INFO"

    # Critical dependencies trip faster and recover sooner
    critical_failure_threshold: int = 3
    critical_open_timeout_ms: int = 30_000
    default_failure_threshold: int = 5
    default_open_timeout_ms: int = 60_000
    operation_timeout_ms: int = 5_000
    max_retries: int = 3

    probe_timeout_seconds: float = 5.0
    database_degraded_ms: int = 500
    database_unhealthy_ms: int = 1_000

    database_url: str = ""
    sentry_dsn: str = ""
    sentry_api_url: str = "https://sentry.io/api/0/"
    ga_measurement_id: str = ""
    ga_collect_url: str = "https://www.google-analytics.com/mp/collect"
    sendgrid_api_key: str = ""
    sendgrid_status_url: str = "https://status.sendgrid.com/api/v2/status.json"

    model_config = {"env_prefix": "HEALTHGATE_", "env_file": ".env", "extra": "ignore"}

    def breaker_config(self, critical: bool) -> CircuitBreakerConfig:
        """Breaker config for a critical or non-critical service."""
        if critical:
            threshold, open_timeout = (
                self.critical_failure_threshold,
                self.critical_open_timeout_ms,
            )
        else:
            threshold, open_timeout = (
                self.default_failure_threshold,
                self.default_open_timeout_ms,
            )
        return CircuitBreakerConfig(
            failure_threshold=threshold,
            open_timeout_ms=open_timeout,
            operation_timeout_ms=self.operation_timeout_ms,
            max_retries=self.max_retries,
        )


def get_settings() -> HealthSettings:
    return HealthSettings()
