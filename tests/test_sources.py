import asyncio

import httpx
import pytest

from errors import RetrievalError
from sources.http import HTTPSource
from sources.manager import SourceChain

from conftest import StaticSource

CSV = "date,WRESBAL\n2024-01-01,100\n2024-01-02,105\n"


def test_http_source_busts_caches():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["cache_control"] = request.headers.get("cache-control")
        return httpx.Response(200, text=CSV)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HTTPSource("https://feed.invalid/data.csv", client=client).fetch_text()

    assert asyncio.run(run()) == CSV
    assert "t" in seen["params"]
    assert seen["cache_control"] == "no-store"


def test_chain_falls_back_in_order():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        if request.url.host == "down.invalid":
            return httpx.Response(503, text="unavailable")
        if request.url.host == "short.invalid":
            return httpx.Response(200, text="x")
        return httpx.Response(200, text=CSV)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            chain = SourceChain([
                HTTPSource("https://down.invalid/a", fmt="csv", client=client),
                HTTPSource("https://short.invalid/b", fmt="csv", client=client),
                HTTPSource("https://ok.invalid/c", fmt="csv", client=client),
                HTTPSource("https://never.invalid/d", fmt="csv", client=client),
            ])
            return chain, await chain.fetch()

    chain, payload = asyncio.run(run())
    assert calls == ["down.invalid", "short.invalid", "ok.invalid"]
    assert payload.source == "https://ok.invalid/c"
    assert payload.format == "csv"
    assert payload.resolver.name == "explicit"

    status = chain.available_sources()
    assert "HTTP 503" in status["https://down.invalid/a"]
    assert "too short" in status["https://short.invalid/b"]
    assert status["https://ok.invalid/c"] == "ok"
    assert status["https://never.invalid/d"] is None


def test_chain_exhausted_raises_with_last_error():
    chain = SourceChain([
        StaticSource(httpx.ConnectError("refused"), name="primary"),
        StaticSource("date\n2024-01-01\n2024-01-02\n", fmt="csv", name="mirror"),
    ])
    with pytest.raises(RetrievalError) as info:
        asyncio.run(chain.fetch())

    assert info.value.message.startswith("Could not reach the data server")
    assert info.value.last_error.startswith("mirror:")


def test_chain_without_sources():
    with pytest.raises(RetrievalError):
        asyncio.run(SourceChain([]).fetch())


def test_json_payload_gets_explicit_resolver(feed_json):
    payload = asyncio.run(SourceChain([StaticSource(feed_json)]).fetch())
    assert payload.format == "json"
    assert payload.resolver.name == "explicit"


def test_chain_falls_back_on_any_adapter_error():
    chain = SourceChain([
        StaticSource(ValueError("decode"), name="broken"),
        StaticSource(CSV, fmt="csv", name="mirror"),
    ])
    payload = asyncio.run(chain.fetch())

    assert payload.source == "mirror"
    status = chain.available_sources()
    assert "ValueError" in status["broken"]
    assert status["mirror"] == "ok"
