"""Tests for upstream client construction."""

from __future__ import annotations

import httpx
import pytest

from openai import AsyncOpenAI

from utils.client_factory import TIMEOUTS, create_http_client, create_openai_client


class TestCreateHttpClient:
    def test_default_timeouts(self) -> None:
        client = create_http_client()
        assert isinstance(client, httpx.AsyncClient)
        assert client.timeout.connect == TIMEOUTS["connect"]
        assert client.timeout.read == TIMEOUTS["read"]
        assert client.timeout.pool == TIMEOUTS["pool"]

    def test_read_timeout_override(self) -> None:
        client = create_http_client(read_timeout=15.0)
        assert client.timeout.read == 15.0
        assert client.timeout.connect == TIMEOUTS["connect"]

    def test_base_url_and_headers(self) -> None:
        client = create_http_client(base_url="https://api.exa.ai", headers={"x-api-key": "k"})
        assert str(client.base_url).startswith("https://api.exa.ai")
        assert client.headers["x-api-key"] == "k"

    @pytest.mark.asyncio
    async def test_custom_transport(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        async with create_http_client(base_url="https://example.test", transport=transport) as client:
            response = await client.get("/ping")
        assert response.json() == {"ok": True}


class TestCreateOpenAIClient:
    def test_default_base_url(self) -> None:
        client = create_openai_client("sk-test")
        assert isinstance(client, AsyncOpenAI)
        assert client.api_key == "sk-test"
        assert "api.openai.com" in str(client.base_url)

    def test_custom_base_url(self) -> None:
        client = create_openai_client("sk-test", base_url="http://localhost:11434/v1")
        assert str(client.base_url).startswith("http://localhost:11434/v1")

    def test_shares_http_client(self) -> None:
        http_client = create_http_client(read_timeout=60.0)
        client = create_openai_client("sk-test", http_client=http_client)
        assert client._client is http_client
