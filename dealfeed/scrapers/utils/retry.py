"""Retry utilities with exponential backoff for HTTP requests."""

import logging

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


logger = structlog.get_logger(__name__)


# Only transport-level failures are retried; an HTTP error status is an
# answer from the server and fails the fetch cycle immediately.
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def feed_retrying(attempts: int = 3) -> AsyncRetrying:
    """Retry controller for content API page requests.

    Usage:
        async for attempt in feed_retrying(3):
            with attempt:
                response = await client.get(url)

    Args:
        attempts: Total attempts including the first one (minimum 1)

    Returns:
        Configured AsyncRetrying instance; the last exception is re-raised
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
