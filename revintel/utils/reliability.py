"""
Reliability patterns for revintel.

Provides bounded retry and timeout helpers for async provider calls.
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from revintel.core.exceptions import ResearchTimeoutError

logger = structlog.get_logger(__name__)

# Standard logger for tenacity compatibility
_std_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 2,
    retry_if: Callable[[BaseException], bool] = lambda exc: isinstance(exc, Exception),
    backoff_min: float = 0.5,
    backoff_max: float = 8.0,
    operation: str = "operation",
) -> T:
    """
    Await ``func()`` with exponential backoff between attempts.

    Only exceptions accepted by ``retry_if`` are retried; the last one is re-raised once
    ``max_attempts`` is reached. Cancellation is never retried.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=backoff_min, max=backoff_max),
        retry=retry_if_exception(retry_if),
        before_sleep=before_sleep_log(_std_logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            attempt_number = attempt.retry_state.attempt_number
            if attempt_number > 1:
                logger.warning("retrying_operation", operation=operation, attempt=attempt_number)
            return await func()
    raise RuntimeError("unreachable")  # pragma: no cover


async def with_timeout(awaitable: Awaitable[T], timeout_seconds: float, operation: str = "operation") -> T:
    """Await ``awaitable`` or raise ``ResearchTimeoutError`` after ``timeout_seconds``."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise ResearchTimeoutError(
            f"{operation} timed out after {timeout_seconds} seconds",
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        ) from exc


def track_performance(operation_name: str):
    """
    Decorator to log duration and outcome of an async operation.

    Args:
        operation_name: Name of the operation for logging
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                result = await func(*args, **kwargs)
            except asyncio.CancelledError:
                logger.info(
                    "operation_cancelled",
                    operation=operation_name,
                    duration_seconds=round(time.monotonic() - start_time, 3),
                )
                raise
            except Exception as e:
                logger.error(
                    "operation_failed",
                    operation=operation_name,
                    duration_seconds=round(time.monotonic() - start_time, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            logger.info(
                "operation_completed",
                operation=operation_name,
                duration_seconds=round(time.monotonic() - start_time, 3),
            )
            return result

        return wrapper

    return decorator


def elapsed_ms(started: float, now: Optional[float] = None) -> int:
    """Milliseconds since a ``time.monotonic()`` reading."""
    return int(((now if now is not None else time.monotonic()) - started) * 1000)
