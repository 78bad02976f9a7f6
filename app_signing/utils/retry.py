"""Bounded retry for idempotent service reads.

Only transport-level failures of read-only calls are retried here, and only a
fixed number of times. Service-reported failures are never retried by this
decorator; the single corrective retry for a missing app id lives in the slot
resolver.

Example:
    >>> @bounded_retry(max_attempts=2, exceptions=(ServiceError,), retry_if=is_transport_error)
    ... async def fetch(identity):
    ...     ...
"""

import asyncio
import functools
from collections.abc import Callable
from typing import Any

import structlog

log = structlog.get_logger(__name__)


def bounded_retry(
    max_attempts: int = 2,
    backoff_factor: float = 1.0,
    exceptions: tuple[type[Exception], ...] = (ConnectionError,),
    retry_if: Callable[[Exception], bool] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator retrying an async function at most ``max_attempts`` times.

    Args:
        max_attempts: Total number of calls, including the first one.
        backoff_factor: Delay before attempt N+1 is ``backoff_factor * N`` seconds.
        exceptions: Exception types that trigger a retry. Anything else
            propagates immediately.
        retry_if: Optional predicate narrowing ``exceptions``; a caught
            exception it rejects propagates immediately.

    Raises:
        The last caught exception once all attempts are used.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt == max_attempts:
                        log.error(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=attempt,
                            error=str(e),
                        )
                        raise

                    delay = backoff_factor * attempt
                    log.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Retry logic error")

        return wrapper

    return decorator
