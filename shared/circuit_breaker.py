"""
Circuit breaker for calls to a downstream service.

After ``failure_threshold`` consecutive failures the breaker opens and calls
are refused outright. Once ``recovery_timeout`` seconds have passed the next
call is let through as a probe (half-open): success closes the breaker,
failure opens it again.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Tuple, Type

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised instead of calling through an open breaker."""


class CircuitBreaker:
    """Per-dependency breaker; one instance per downstream service."""

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 name: str = "default",
                 failure_exceptions: Tuple[Type[BaseException], ...] = (Exception,)):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self.failure_exceptions = failure_exceptions
        self.logger = get_logger(f"circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0

    @property
    def state(self) -> CircuitBreakerState:
        if (self._state == CircuitBreakerState.OPEN
                and time.time() - self._last_failure_time >= self.recovery_timeout):
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker half-open, allowing a probe call")
        return self._state

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await ``func`` unless the breaker is open."""
        if self.state == CircuitBreakerState.OPEN:
            raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")

        try:
            result = await func(*args, **kwargs)
        except self.failure_exceptions:
            self.record_failure()
            raise

        self.record_success()
        return result

    def record_success(self):
        if self._state != CircuitBreakerState.CLOSED:
            self.logger.info("Circuit breaker closed after successful call")
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0

    def record_failure(self):
        self._failure_count += 1
        self._last_failure_time = time.time()

        # A failed probe reopens immediately
        if self._state == CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            if self._state != CircuitBreakerState.OPEN:
                self.logger.warning(
                    "Circuit breaker opened",
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold
                )
            self._state = CircuitBreakerState.OPEN

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "last_failure_time": self._last_failure_time,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }

    def is_open(self) -> bool:
        return self.state == CircuitBreakerState.OPEN
