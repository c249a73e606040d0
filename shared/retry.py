"""
Retries with exponential backoff for idempotent downstream calls.

Only wrap calls that are safe to repeat; the accounts backend client applies
this to GETs and never to mutations.
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger


class RetryConfig:
    """How many attempts to make and how long to wait between them."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 0.5,
                 max_delay: float = 5.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter


class RetryError(Exception):
    """Every attempt failed; ``last_exception`` is the final failure."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait after failed ``attempt`` (1-based), capped, with up to 10% jitter."""
    delay = min(config.base_delay * config.exponential_base ** (attempt - 1), config.max_delay)
    if config.jitter:
        delay += random.uniform(-0.1, 0.1) * delay
    return max(0.0, delay)


def retry_on_exception(exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                       config: Optional[RetryConfig] = None) -> Callable:
    """Retry the decorated coroutine while it raises one of ``exceptions``.

    Exhausting ``config.max_attempts`` raises :class:`RetryError` chained to
    the last failure. Other exceptions propagate on the first attempt.
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"retry.{func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            attempt = 1
            while True:
                try:
                    result = await func(*args, **kwargs)
                except exceptions as exc:
                    if attempt >= config.max_attempts:
                        logger.error("Giving up after retries", attempts=attempt, error=str(exc))
                        raise RetryError(
                            f"{func.__name__} failed after {attempt} attempts",
                            last_exception=exc,
                            attempts=attempt
                        ) from exc

                    delay = calculate_delay(attempt, config)
                    logger.warning("Attempt failed, retrying", attempt=attempt, delay=round(delay, 3), error=str(exc))
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue

                if attempt > 1:
                    logger.info("Retry succeeded", attempt=attempt)
                return result

        return wrapper

    return decorator
