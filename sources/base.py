"""
Abstract interface for feed sources.

A source knows how to fetch one raw payload and which metadata resolver
suits the shape of what it serves.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional
import time

from registry.series_registry import MetadataResolver, resolver_for_format


@dataclass
class Payload:
    """Raw text served by a source."""

    text: str
    format: str                 # 'json' or 'csv'
    source: str
    resolver: MetadataResolver
    fetched_at: float = field(default_factory=time.time)


class DataSource(ABC):
    """Abstract base class for feed sources."""

    def __init__(self, fmt: str = 'auto', resolver: Optional[MetadataResolver] = None):
        self.format = fmt
        self._resolver = resolver

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this source."""
        pass

    @abstractmethod
    async def fetch_text(self) -> str:
        """
        Fetch the raw payload.

        Raises on transport failure; the chain records the error and moves on.
        """
        pass

    @property
    def is_delimited(self) -> bool:
        return self.format == 'csv'

    def resolver_for(self, fmt: str) -> MetadataResolver:
        """Resolver chosen for this source, or the default for the payload's shape."""
        return self._resolver or resolver_for_format(fmt)
