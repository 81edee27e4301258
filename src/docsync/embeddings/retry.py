"""Retry policy for embedding calls — exponential backoff via tenacity.

Only transient failures are retried: rate limits, 5xx responses,
timeouts and connection errors. Permanent failures (bad request, bad
credentials) fail fast.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})
PERMANENT_HTTP_CODES: frozenset[int] = frozenset({400, 401, 403, 404, 422})

_TRANSIENT_NAME_PATTERNS = ("timeout", "connection", "ratelimit", "unavailable", "network")
_TRANSIENT_MESSAGE_PATTERNS = (
    "rate limit",
    "too many requests",
    "temporarily unavailable",
    "connection reset",
    "connection refused",
    "timed out",
)


def get_http_status_code(exc: BaseException) -> int | None:
    """Pull an HTTP status from openai or httpx exceptions."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_transient_error(exc: BaseException) -> bool:
    status = get_http_status_code(exc)
    if status is not None:
        if status in PERMANENT_HTTP_CODES:
            return False
        if status in TRANSIENT_HTTP_CODES or status >= 500:
            return True

    name = type(exc).__name__.lower()
    if any(p in name for p in _TRANSIENT_NAME_PATTERNS):
        return True

    message = str(exc).lower()
    return any(p in message for p in _TRANSIENT_MESSAGE_PATTERNS)


def _log_retry(retry_state: RetryCallState) -> None:
    fn_name = getattr(retry_state.fn, "__name__", "unknown")
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "%s attempt %d failed (%s); retrying in %.1fs",
        fn_name, retry_state.attempt_number, exc, wait,
    )


def embedding_retry(max_attempts: int = 3, base_delay: float = 1.0) -> Callable:
    """Build a retry decorator: ``base_delay * 2**(attempt-1)`` seconds between tries."""
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=base_delay),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
