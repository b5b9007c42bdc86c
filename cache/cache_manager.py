"""
Fetch Cache - Raw payload + parsed catalog with a fixed TTL.

Two forms are kept:
  - Raw payload (5 min TTL): reused across loads without touching the network
  - Parsed catalog: built at most once per cache generation; later loads
    only recompute the range-filtered view

invalidate() drops both, so the next load re-fetches and re-parses no
matter how much TTL is left. A failed refresh never falls back to stale data.

Callers serialize load()/invalidate(); there is no internal locking.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from config import Config, config as default_config
from errors import FormatError
from processing.builder import Point, SeriesCatalog, build_catalog
from processing.tabular import parse_payload
from processing.temporal import RangeWindow, filter_by_range
from sources.base import Payload
from sources.manager import SourceChain

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Catalog plus each series' points trimmed to the requested window."""

    catalog: SeriesCatalog
    data: Dict[str, List[Point]]
    range: RangeWindow
    fetched_at: Optional[float] = None


@dataclass
class CacheEntry:
    """Cached raw payload and when it was fetched."""
    payload: Payload
    fetched_at: float
    created_at: float = field(default_factory=time.time)


class FetchCache:
    """Retrieval + parse cache for one session."""

    def __init__(self, chain: SourceChain, ttl: Optional[int] = None,
                 clock: Callable[[], float] = time.time, cfg: Optional[Config] = None):
        cfg = cfg or default_config
        self._chain = chain
        self._ttl = cfg.data_cache_ttl if ttl is None else ttl
        self._clock = clock
        self._raw: Optional[CacheEntry] = None
        self._catalog: Optional[SeriesCatalog] = None
        self.fetch_count = 0
        self.parse_count = 0

    @property
    def catalog(self) -> Optional[SeriesCatalog]:
        return self._catalog

    @property
    def fetched_at(self) -> Optional[float]:
        return self._raw.fetched_at if self._raw else None

    def _raw_is_fresh(self) -> bool:
        return self._raw is not None and self._clock() - self._raw.fetched_at < self._ttl

    async def fetch_raw(self) -> Payload:
        """Raw payload, from cache while within TTL, else from the source chain."""
        if self._raw_is_fresh():
            return self._raw.payload

        payload = await self._chain.fetch()
        self.fetch_count += 1
        now = self._clock()
        self._raw = CacheEntry(payload=payload, fetched_at=now, created_at=now)
        return payload

    async def load(self, window=RangeWindow.ALL, now: Optional[datetime] = None) -> LoadResult:
        """
        Catalog plus range-filtered data.

        Raises:
            RetrievalError: no source produced a usable payload
            FormatError: the payload could not be parsed into series
        """
        window = RangeWindow.parse(window)

        if self._catalog is None:
            payload = await self.fetch_raw()
            try:
                table = parse_payload(payload.text, payload.format)
                self._catalog = build_catalog(table, payload.resolver)
            except FormatError:
                # An unparseable payload is not worth keeping for the TTL
                self._raw = None
                raise
            self.parse_count += 1
            logger.info(f"[Cache] Catalog built from {payload.source}: {len(self._catalog)} series")

        data = {s.id: filter_by_range(s.points, window, now) for s in self._catalog.series_list}
        return LoadResult(catalog=self._catalog, data=data, range=window, fetched_at=self.fetched_at)

    def invalidate(self) -> None:
        """Forget raw payload, fetch time and catalog unconditionally."""
        self._raw = None
        self._catalog = None
        logger.info("[Cache] Invalidated")

    def sources(self) -> dict:
        """Last outcome per configured source."""
        return self._chain.available_sources()

    def stats(self) -> dict:
        """Get cache statistics."""
        now = self._clock()
        return {
            'has_raw': self._raw is not None,
            'has_catalog': self._catalog is not None,
            'age_seconds': round(now - self._raw.fetched_at, 1) if self._raw else None,
            'ttl_seconds': self._ttl,
            'fresh': self._raw_is_fresh(),
            'source': self._raw.payload.source if self._raw else None,
            'series_count': len(self._catalog) if self._catalog else 0,
            'fetch_count': self.fetch_count,
            'parse_count': self.parse_count,
        }
