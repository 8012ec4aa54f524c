"""
Upstream client construction.

Every outbound HTTP client (OpenAI streaming, Exa search) is built here so
timeouts are set in one place. The read timeout is the one that varies: model
streams can sit quiet before the first token, search calls should not.
"""

from __future__ import annotations

import httpx

from openai import AsyncOpenAI

#: Per-phase defaults in seconds; ``read`` is overridable per client
TIMEOUTS = {"connect": 10.0, "read": 120.0, "write": 30.0, "pool": 30.0}


def create_http_client(
    read_timeout: float | None = None,
    base_url: str = "",
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """httpx client with explicit connect/read/write/pool timeouts.

    ``transport`` is for tests (``httpx.MockTransport``).
    """
    phases = {**TIMEOUTS, **({"read": read_timeout} if read_timeout is not None else {})}
    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=httpx.Timeout(**phases),
        transport=transport,
    )


def create_openai_client(
    api_key: str,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """AsyncOpenAI for the chat model; ``base_url`` targets compatible servers."""
    if base_url:
        return AsyncOpenAI(api_key=api_key, base_url=base_url, http_client=http_client)
    return AsyncOpenAI(api_key=api_key, http_client=http_client)
