"""
HTTP Feed Source - The published liquidity sheet (JSON or CSV over HTTPS).
"""

import time
from typing import Optional

import httpx

from .base import DataSource
from config import config
from registry.series_registry import MetadataResolver


# Module-level connection pool for HTTP connection reuse
_async_client: Optional[httpx.AsyncClient] = None


def get_async_client() -> httpx.AsyncClient:
    """Get or create the shared async HTTP client with connection pooling."""
    global _async_client
    if _async_client is None or _async_client.is_closed:
        _async_client = httpx.AsyncClient(
            timeout=config.http_timeout,
            follow_redirects=True,
            limits=httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )
        )
    return _async_client


async def close_async_client() -> None:
    global _async_client
    if _async_client is not None and not _async_client.is_closed:
        await _async_client.aclose()
    _async_client = None


class HTTPSource(DataSource):
    """Fetches the feed from a URL (origin, mirror or proxy)."""

    def __init__(self, url: str, fmt: str = 'auto', resolver: Optional[MetadataResolver] = None,
                 client: Optional[httpx.AsyncClient] = None, cache_bust: bool = True):
        super().__init__(fmt, resolver)
        self.url = url
        self._client = client
        self._cache_bust = cache_bust

    @property
    def name(self) -> str:
        return self.url

    async def fetch_text(self) -> str:
        client = self._client or get_async_client()

        # ?t= forces intermediaries to serve a fresh copy
        params = {'t': int(time.time() * 1000)} if self._cache_bust else None
        resp = await client.get(self.url, params=params, headers={'Cache-Control': 'no-store'})

        # Raises httpx.HTTPStatusError on 4xx/5xx
        resp.raise_for_status()
        return resp.text
