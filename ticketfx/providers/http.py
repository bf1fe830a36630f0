"""
JSON-over-HTTP helper for rate providers.

Never raises for transport, status or decoding problems: the outcome is a
``FetchResult`` whose ``error`` holds a typed provider error value.
"""

from dataclasses import dataclass
from typing import Any

import httpx

from ticketfx.config import settings
from ticketfx.errors import (
    ProviderError,
    ProviderFetchError,
    ProviderSchemaError,
    ProviderTimeoutError,
)


@dataclass
class FetchResult:
    """Decoded JSON body or the reason there is none."""

    data: Any = None
    error: ProviderError | None = None
    status: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_json(
    url: str,
    *,
    provider: str,
    timeout: float,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
) -> FetchResult:
    """
    GET ``url`` and decode the JSON body.

    Args:
        url: Absolute URL to fetch
        provider: Provider name used in error messages
        timeout: Whole-request timeout in seconds
        client: Shared client; a short-lived one is created when omitted
        headers: Extra request headers

    Returns:
        FetchResult with ``data`` on success, ``error`` otherwise
    """
    request_headers = {
        "User-Agent": settings.http_user_agent,
        "Accept": "application/json",
        **(headers or {}),
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(url, headers=request_headers)
        else:
            response = await client.get(url, headers=request_headers, timeout=timeout)
    except httpx.TimeoutException:
        return FetchResult(
            error=ProviderTimeoutError(provider, f"Request timeout after {timeout:g}s")
        )
    except httpx.HTTPError as e:
        return FetchResult(error=ProviderFetchError(provider, f"HTTP error: {e}"))

    status = response.status_code
    if not response.is_success:
        return FetchResult(
            status=status,
            error=ProviderFetchError(
                provider, f"HTTP {status}: {response.reason_phrase}", status=status
            ),
        )

    try:
        data = response.json()
    except ValueError as e:
        return FetchResult(
            status=status,
            error=ProviderSchemaError(provider, f"JSON parse error: {e}"),
        )

    return FetchResult(data=data, status=status)
