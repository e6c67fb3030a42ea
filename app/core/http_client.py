"""
HTTP Client Module

One pooled ``httpx.AsyncClient`` shared by the outbound collaborators
(Gemini REST, MSG91 SMS), with retry and exponential backoff for
transient failures.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx


logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 20
KEEPALIVE_EXPIRY = 30  # seconds
DEFAULT_TIMEOUT = 30.0  # seconds

MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 0.5  # seconds

# Failures worth another attempt; anything else propagates at once
TRANSIENT_ERRORS = (httpx.ConnectError, httpx.ReadTimeout, httpx.WriteTimeout)

_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=MAX_CONNECTIONS,
                max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
                keepalive_expiry=KEEPALIVE_EXPIRY,
            ),
            timeout=httpx.Timeout(DEFAULT_TIMEOUT),
            http2=True,
        )
    return _http_client


async def close_http_client() -> None:
    """Called from the application lifespan on shutdown."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def _backoff(attempt: int) -> float:
    return RETRY_BACKOFF_BASE * (2 ** attempt)


async def request_with_retry(
    method: str,
    url: str,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying 5xx responses and transient transport errors.

    Makes at most ``max_retries + 1`` attempts. When every attempt gets a
    5xx the last response is returned for the caller to inspect; when the
    last attempt fails in transport its exception is raised.

    Args:
        method: HTTP method.
        url: Request URL.
        max_retries: Retries after the first attempt.
        **kwargs: Passed through to ``httpx.AsyncClient.request``.
    """
    client = get_http_client()

    for attempt in range(max_retries + 1):
        last_attempt = attempt == max_retries
        try:
            response = await client.request(method, url, **kwargs)
        except TRANSIENT_ERRORS as e:
            if last_attempt:
                raise
            logger.warning("Transport error calling %s, retrying in %.2fs: %s", url, _backoff(attempt), e)
        else:
            if response.status_code < 500 or last_attempt:
                return response
            logger.warning(
                "HTTP %s from %s, retrying in %.2fs", response.status_code, url, _backoff(attempt)
            )
        await asyncio.sleep(_backoff(attempt))

    raise httpx.HTTPError(f"Request to {url} made no attempts")


async def post_with_retry(url: str, **kwargs: Any) -> httpx.Response:
    return await request_with_retry("POST", url, **kwargs)
