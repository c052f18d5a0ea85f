"""Shared utilities for retrieving raw payloads from statistical providers."""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "tufe-latest/0.1"
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "application/json,text/csv,text/html,*/*",
}
_DEFAULT_WAIT = wait_exponential(multiplier=0.2, max=2)
_DEFAULT_STOP = stop_after_attempt(3)


Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None


def is_transient_error(exc: BaseException) -> bool:
    """Transport failures and 429/5xx answers may succeed on a second attempt."""

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


@retry(
    retry=retry_if_exception(is_transient_error),
    wait=_DEFAULT_WAIT,
    stop=_DEFAULT_STOP,
    reraise=True,
)
async def fetch_text(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: Headers = None,
    params: Params = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Execute a GET request and return the decoded response body.

    Retries with exponential backoff on transient failures only; a 4xx answer
    or a malformed body cannot improve by asking again. Pass ``client`` to
    reuse a connection pool (or a mock transport in tests).
    """

    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            response = await own_client.get(url, headers=request_headers, params=params)
    else:
        response = await client.get(url, headers=request_headers, params=params)

    response.raise_for_status()
    return response.text


__all__ = ["fetch_text", "is_transient_error", "DEFAULT_TIMEOUT_SECONDS", "DEFAULT_HEADERS"]
