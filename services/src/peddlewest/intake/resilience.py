"""Timeout and circuit-breaker guards for the remote delivery path."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitOpenError(RuntimeError):
    """Raised when a circuit breaker refuses new work."""


@dataclass(frozen=True)
class ResiliencePolicy:
    """Timeout and circuit breaker configuration for one collaborator.

    ``timeout_seconds`` bounds a whole guarded call; ``None`` leaves the
    bounding to the operation itself. Failed calls are never retried.
    """

    name: str
    timeout_seconds: float | None = None
    circuit_failure_threshold: int = 3
    circuit_reset_seconds: float = 300.0


class CircuitBreaker:
    """Process-local closed/open/half-open state machine."""

    def __init__(
        self,
        *,
        failure_threshold: int,
        reset_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold <= 0:
            raise ValueError("failure_threshold must be greater than zero.")
        if reset_seconds < 0:
            raise ValueError("reset_seconds may not be negative.")
        self._failure_threshold = failure_threshold
        self._reset_seconds = reset_seconds
        self._clock = clock
        self._failure_count = 0
        self._state = "closed"
        self._opened_at = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def allow(self) -> bool:
        with self._lock:
            if self._state == "open":
                if self._reset_seconds == 0 or (self._clock() - self._opened_at >= self._reset_seconds):
                    self._state = "half-open"
                    return True
                return False
            return True

    def record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._state = "closed"

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == "half-open" or self._failure_count >= self._failure_threshold:
                self._failure_count = self._failure_threshold
                self._state = "open"
                self._opened_at = self._clock()


class ServiceResilienceExecutor(Generic[T]):
    """Run awaitable operations under a policy's timeout and circuit breaker."""

    def __init__(self, policy: ResiliencePolicy, *, clock: Callable[[], float] = time.monotonic) -> None:
        if policy.timeout_seconds is not None and policy.timeout_seconds < 0:
            raise ValueError("policy.timeout_seconds may not be negative")
        self._policy = policy
        self._breaker = CircuitBreaker(
            failure_threshold=policy.circuit_failure_threshold,
            reset_seconds=policy.circuit_reset_seconds,
            clock=clock,
        )

    @property
    def policy(self) -> ResiliencePolicy:
        return self._policy

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str | None = None) -> T:
        """Await ``operation`` once, recording the outcome on the breaker."""

        name = label or self._policy.name
        if not self._breaker.allow():
            LOGGER.warning("service.circuit_open", extra={"extra_payload": {"service": name}})
            raise CircuitOpenError(f"Service '{name}' circuit is open")

        timeout = self._policy.timeout_seconds
        try:
            async with asyncio.timeout(timeout if timeout else None):
                result = await operation()
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            self._breaker.record_failure()
            LOGGER.warning(
                "service.timeout",
                extra={"extra_payload": {"service": name, "timeout_seconds": timeout}},
            )
            raise
        except Exception as exc:
            self._breaker.record_failure()
            LOGGER.warning(
                "service.failure",
                extra={"extra_payload": {"service": name, "error": str(exc)}},
            )
            raise
        self._breaker.record_success()
        return result


__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "ResiliencePolicy",
    "ServiceResilienceExecutor",
]
