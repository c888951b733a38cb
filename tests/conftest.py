"""Shared test fixtures for healthgate."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from healthgate.config import HealthSettings
from healthgate.monitoring.models import HealthStatus, ServiceHealth


class FakeClock:
    """Manually advanced UTC clock for breaker timing."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


def make_probe(name: str, status: HealthStatus = HealthStatus.HEALTHY, *, delay: float = 0.0):
    """Build a probe that returns ``status`` after ``delay`` seconds."""

    async def probe() -> ServiceHealth:
        if delay:
            await asyncio.sleep(delay)
        return ServiceHealth(name=name, status=status, response_time_ms=int(delay * 1000))

    return probe


def failing_probe(message: str = "probe exploded"):
    async def probe() -> ServiceHealth:
        raise RuntimeError(message)

    return probe


def hanging_probe():
    async def probe() -> ServiceHealth:
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    return probe


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch):
    """Keep real credentials out of tests."""
    monkeypatch.setenv("HEALTHGATE_DATABASE_URL", "")
    monkeypatch.setenv("HEALTHGATE_SENTRY_DSN", "")
    monkeypatch.setenv("HEALTHGATE_SENDGRID_API_KEY", "")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> HealthSettings:
    """Settings with short deadlines so timeout paths run fast."""
    return HealthSettings(
        _env_file=None,
        app_version="9.9.9",
        operation_timeout_ms=100,
        probe_timeout_seconds=1.0,
    )
