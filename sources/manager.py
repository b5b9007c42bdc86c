"""
Source Chain - Ordered fallback across feed sources.

Sources are tried one at a time in priority order. The first payload that
both arrives and passes the sanity check wins; nothing is raced.
"""

import logging
from typing import List, Optional

import httpx

from .base import DataSource, Payload
from .http import HTTPSource
from config import Config, config as default_config
from errors import RetrievalError
from processing.tabular import detect_format

logger = logging.getLogger(__name__)


class SourceChain:
    """
    Fetches the feed from the first healthy source.

    Handles transport errors and unusable payloads by moving to the next
    source; exhausting the list raises RetrievalError.
    """

    def __init__(self, sources: List[DataSource], min_length: int = 16):
        self._sources = list(sources)
        self._min_length = min_length
        self._source_status = {s.name: None for s in self._sources}

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None, client: Optional[httpx.AsyncClient] = None) -> "SourceChain":
        cfg = cfg or default_config
        sources = [HTTPSource(url, fmt=cfg.data_format, client=client) for url in cfg.source_urls]
        return cls(sources, min_length=cfg.min_payload_length)

    @property
    def sources(self) -> List[DataSource]:
        return list(self._sources)

    def check_payload(self, source: DataSource, text: str) -> Optional[str]:
        """Return a reason the payload is unusable, or None if it looks sane."""
        stripped = (text or '').strip()
        if len(stripped) < self._min_length:
            return f"payload too short ({len(stripped)} chars)"

        fmt = source.format if source.format != 'auto' else detect_format(stripped)
        if fmt == 'csv' and ',' not in stripped:
            return "no field separator in delimited payload"
        return None

    async def fetch(self) -> Payload:
        """
        Fetch the raw payload from the first usable source.

        Raises:
            RetrievalError: every source failed, carrying the last error
        """
        if not self._sources:
            raise RetrievalError("No data sources configured")

        last_error = None
        for source in self._sources:
            try:
                text = await source.fetch_text()
            except httpx.HTTPStatusError as e:
                last_error = f"{source.name}: HTTP {e.response.status_code}"
            except httpx.HTTPError as e:
                last_error = f"{source.name}: {type(e).__name__}: {e}"
            except Exception as e:
                # Any other adapter failure also falls through to the next source
                last_error = f"{source.name}: {type(e).__name__}: {e}"
            else:
                reason = self.check_payload(source, text)
                if reason is None:
                    fmt = source.format if source.format != 'auto' else detect_format(text)
                    self._source_status[source.name] = 'ok'
                    logger.info(f"[Sources] Loaded {len(text)} chars from {source.name}")
                    return Payload(
                        text=text,
                        format=fmt,
                        source=source.name,
                        resolver=source.resolver_for(fmt),
                    )
                last_error = f"{source.name}: {reason}"

            self._source_status[source.name] = last_error
            logger.warning(f"[Sources] {last_error}")

        raise RetrievalError("Could not reach the data server", last_error)

    def available_sources(self) -> dict:
        """Last outcome per source: 'ok', an error string, or None if never tried."""
        return dict(self._source_status)
