"""
Session Context - Everything one dashboard session mutates.

Owned by the application root (app.state.session) and handed to the
routers, so tests can build as many independent sessions as they like.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx

from cache import FetchCache, LoadResult
from charts import BuilderState, DashboardLayout, SurfaceManager
from config import Config, config as default_config
from processing.temporal import RangeWindow
from sources import SourceChain

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    config: Config
    cache: FetchCache
    builder: BuilderState = field(default_factory=BuilderState)
    layout: DashboardLayout = field(default_factory=DashboardLayout)
    surfaces: Optional[SurfaceManager] = None
    range: RangeWindow = RangeWindow.ALL
    last_result: Optional[LoadResult] = None
    last_error: Optional[str] = None
    loaded_at: Optional[datetime] = None

    def __post_init__(self):
        if self.surfaces is None:
            self.surfaces = SurfaceManager(self.builder)

    @classmethod
    def create(cls, cfg: Optional[Config] = None, chain: Optional[SourceChain] = None,
               client: Optional[httpx.AsyncClient] = None, **cache_kwargs) -> "SessionContext":
        cfg = cfg or default_config
        chain = chain or SourceChain.from_config(cfg, client=client)
        return cls(
            config=cfg,
            cache=FetchCache(chain, cfg=cfg, **cache_kwargs),
            range=RangeWindow.parse(cfg.default_range),
        )

    @property
    def loaded(self) -> bool:
        return self.last_result is not None

    async def load(self, window=None, now: Optional[datetime] = None) -> LoadResult:
        """
        Load (or re-filter) data for a range and push it to every surface.

        Errors propagate; the previous result is dropped so nothing stale
        is shown after a failed refresh.
        """
        window = RangeWindow.parse(window) if window is not None else self.range
        try:
            result = await self.cache.load(window, now)
        except Exception as e:
            self.last_result = None
            self.last_error = str(e)
            self.surfaces.set_data(None, {})
            logger.error(f"[Session] Load failed: {e}")
            raise

        self.range = window
        self.last_result = result
        self.last_error = None
        self.loaded_at = datetime.now()

        self.layout.sync(result.catalog)
        self.builder.seed_defaults(result.catalog)
        self.surfaces.set_data(result.catalog, result.data)
        return result

    async def ensure_loaded(self, window=None) -> LoadResult:
        """Reuse the current result when the range matches, else load."""
        window = RangeWindow.parse(window) if window is not None else self.range
        if self.last_result is not None and self.last_result.range is window:
            return self.last_result
        return await self.load(window)

    def invalidate(self) -> None:
        """Drop cached payload, catalog and the current view."""
        self.cache.invalidate()
        self.last_result = None

    async def refresh(self) -> LoadResult:
        """Explicit refresh: bypass the TTL and re-fetch."""
        self.invalidate()
        return await self.load(self.range)

    def status(self) -> dict:
        return {
            'loaded': self.loaded,
            'range': self.range.value,
            'updated': self.loaded_at.isoformat() if self.loaded_at else None,
            'error': self.last_error,
        }
