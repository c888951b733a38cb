"""Circuit breaker for external service protection.

States:
- CLOSED: Healthy, calls pass through
- OPEN: Failing, calls short-circuited to the fallback (fail fast)
- HALF_OPEN: Testing recovery, exactly one trial call in flight

Defaults: 5 failures → OPEN, 60s cooldown → HALF_OPEN, 1 success → CLOSED.
Every call runs under a single cancellable deadline (``operation_timeout_ms``);
a call that misses it is cancelled and counted as a failure.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from healthgate.exceptions import (
    CircuitOpenError,
    OperationFailedError,
    OperationTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RaisedTimeout(Exception):
    """A TimeoutError raised by the operation itself, not by our deadline."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(error)
        self.error = error


async def _call(operation: Callable[[], Awaitable[T]]) -> T:
    # socket.timeout and asyncio.TimeoutError are both TimeoutError on 3.11+
    try:
        return await operation()
    except (asyncio.TimeoutError, TimeoutError) as exc:
        raise _RaisedTimeout(exc) from exc


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreakerConfig(BaseModel):
    """Immutable tuning for one breaker instance."""

    model_config = ConfigDict(frozen=True)

    failure_threshold: int = Field(5, gt=0)
    open_timeout_ms: int = Field(60_000, gt=0)
    operation_timeout_ms: int = Field(5_000, gt=0)
    # Not used by the breaker itself: one attempt per execute().
    max_retries: int = Field(3, ge=0)


class CircuitBreakerStatus(BaseModel):
    """Read-only snapshot of a breaker's state, for diagnostics."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    service_name: str
    state: CircuitState
    failure_count: int = Field(ge=0)
    last_failure_time: datetime | None = None
    last_success_time: datetime | None = None
    next_attempt_time: datetime | None = None


class CircuitBreaker:
    """Async circuit breaker guarding a single dependency.

    State is owned exclusively by the breaker; all reads and writes go
    through ``execute``, ``get_status`` and ``reset``.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: datetime | None = None
        self._last_success_time: datetime | None = None
        self._next_attempt_time: datetime | None = None
        self._trial_in_flight = False
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]] | None = None,
    ) -> T:
        """Run ``operation`` with circuit breaker protection.

        Returns the operation's result, or the fallback's result when the
        circuit is open or the operation fails. Without a fallback, raises
        ``CircuitOpenError``, ``OperationTimeoutError`` or
        ``OperationFailedError``.
        """
        admitted, ticket = self._admit()
        if not admitted:
            if fallback is not None:
                logger.debug("Circuit %s is OPEN, using fallback", self.name)
                return await fallback()
            with self._lock:
                next_attempt = self._next_attempt_time
            raise CircuitOpenError(self.name, next_attempt)

        timeout_ms = self.config.operation_timeout_ms
        try:
            result = await asyncio.wait_for(_call(operation), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            error = OperationTimeoutError(self.name, timeout_ms)
            self._record_failure(error, ticket)
            if fallback is not None:
                return await fallback()
            raise error from None
        except asyncio.CancelledError:
            # Caller cancelled us; not the dependency's fault.
            self._release_trial(ticket)
            raise
        except Exception as exc:
            if isinstance(exc, _RaisedTimeout):
                exc = exc.error
            self._record_failure(exc, ticket)
            if fallback is not None:
                return await fallback()
            raise OperationFailedError(self.name, exc) from exc

        self._record_success(ticket)
        return result

    def _admit(self) -> tuple[bool, int | None]:
        """Decide whether a call may run.

        Returns (admitted, ticket). The ticket is the reset generation the
        half-open trial was admitted under, or None for an ordinary call.
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True, None

            if self._trial_in_flight:
                return False, None

            if self._state == CircuitState.OPEN:
                due = self._next_attempt_time
                if due is None or self._clock() < due:
                    return False, None
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit %s → HALF_OPEN", self.name)

            self._trial_in_flight = True
            return True, self._generation

    def _holds_trial(self, ticket: int | None) -> bool:
        # A trial admitted before the last reset() no longer owns the slot
        return ticket is not None and ticket == self._generation

    def _record_success(self, ticket: int | None) -> None:
        with self._lock:
            self._last_success_time = self._clock()
            if self._holds_trial(ticket):
                self._trial_in_flight = False
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                self._next_attempt_time = None
                logger.info("Circuit %s → CLOSED (recovered)", self.name)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def _record_failure(self, error: BaseException, ticket: int | None) -> None:
        with self._lock:
            now = self._clock()
            self._failure_count += 1
            self._last_failure_time = now
            if self._holds_trial(ticket):
                self._trial_in_flight = False
                self._open(now)
                logger.warning(
                    "Circuit %s → OPEN (half-open trial failed: %s)", self.name, error
                )
            elif self._failure_count >= self.config.failure_threshold:
                was_open = self._state == CircuitState.OPEN
                self._open(now)
                if not was_open:
                    logger.warning(
                        "Circuit %s → OPEN (%d failures, last: %s)",
                        self.name,
                        self._failure_count,
                        error,
                    )
            else:
                logger.debug(
                    "Circuit %s failure %d/%d: %s",
                    self.name,
                    self._failure_count,
                    self.config.failure_threshold,
                    error,
                )

    def _open(self, now: datetime) -> None:
        self._state = CircuitState.OPEN
        self._next_attempt_time = now + timedelta(milliseconds=self.config.open_timeout_ms)

    def _release_trial(self, ticket: int | None) -> None:
        with self._lock:
            if self._holds_trial(ticket):
                self._trial_in_flight = False

    def get_status(self) -> CircuitBreakerStatus:
        """Snapshot the current state."""
        with self._lock:
            return CircuitBreakerStatus(
                service_name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_time,
                last_success_time=self._last_success_time,
                next_attempt_time=self._next_attempt_time,
            )

    def reset(self) -> None:
        """Manually reset the circuit to CLOSED."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._last_success_time = self._clock()
            self._next_attempt_time = None
            self._trial_in_flight = False
            self._generation += 1
        logger.info("Circuit %s reset → CLOSED", self.name)

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self.state.value!r})"
