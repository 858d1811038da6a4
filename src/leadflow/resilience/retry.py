"""Resilient API call decorator with tenacity retry for transient failures.

Retries up to ``attempts`` times with exponential backoff and jitter, but only
for errors that can succeed on a second try (connection problems, timeouts,
HTTP 429 and 5xx).  Client errors fail immediately.  The original exception
is re-raised after exhaustion and logged at ERROR level, which the Sentry
processor forwards when configured.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def is_transient_error(exc: BaseException) -> bool:
    """Return True if *exc* is worth retrying.

    Args:
        exc: The exception raised by the wrapped call.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


def _before_sleep_log(api_name: str) -> Callable[[RetryCallState], None]:
    def log_retry(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "api_call_retrying",
            api_name=api_name,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
            error=str(exception),
        )

    return log_retry


def resilient_api_call(
    api_name: str,
    *,
    attempts: int = 3,
    wait: wait_base | None = None,
) -> Callable[[F], F]:
    """Create a retry decorator for an API call.

    Args:
        api_name: Human-readable name for the API (used in logs).
        attempts: Maximum number of attempts, including the first.
        wait: Tenacity wait strategy; defaults to exponential backoff with
            jitter (1s initial, 30s max, 5s jitter).

    Returns:
        A decorator that wraps the function with retry logic.
    """
    wait_strategy = wait or wait_exponential_jitter(initial=1, max=30, jitter=5)

    def decorator(func: F) -> F:
        retrying = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_strategy,
            retry=retry_if_exception(is_transient_error),
            before_sleep=_before_sleep_log(api_name),
            reraise=True,
        )(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return retrying(*args, **kwargs)
            except Exception as exc:
                logger.error("api_call_failed", api_name=api_name, error=str(exc))
                raise

        return wrapper  # type: ignore[return-value]

    return decorator
