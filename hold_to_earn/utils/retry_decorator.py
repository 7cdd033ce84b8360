#!/usr/bin/env python3
"""
HTTP Retry Decorator with Tenacity

Retries calls to the chain indexer on transient failures:
- httpx.TransportError (connection refused/reset, timeouts)
- HTTP 429 and 5xx responses

Client errors (4xx other than 429) fail fast.

Usage:
    from hold_to_earn.utils.retry_decorator import retry_http

    @retry_http(max_attempts=3)
    async def fetch_events():
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
"""

import logging

import httpx
from tenacity import (
    after_log,
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_retryable_http_error(exc: BaseException) -> bool:
    """True for transport failures and retryable status codes."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


def retry_http(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 10.0,
):
    """
    Retry decorator for httpx calls

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        min_wait: Minimum wait time in seconds (default: 0.5)
        max_wait: Maximum wait time in seconds (default: 10.0)

    Returns:
        Decorator; the last exception is re-raised once attempts run out
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_retryable_http_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )
