"""
Liquidity Monitor - Centralized Configuration

All environment variables, constants, and settings in one place.
"""

import os
from dataclasses import dataclass, field
from typing import List


DEFAULT_DATA_URL = 'https://raw.githubusercontent.com/dankostecki/liq/main/plynnosc_full_btc.json'


def _split_urls(raw: str) -> List[str]:
    return [u.strip() for u in raw.split(',') if u.strip()]


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Data feed
    data_url: str = DEFAULT_DATA_URL
    fallback_urls: List[str] = field(default_factory=list)
    data_format: str = 'auto'          # 'json', 'csv' or 'auto'

    # Cache settings
    data_cache_ttl: int = 300          # 5 minutes

    # HTTP settings
    http_timeout: float = 15.0
    min_payload_length: int = 16

    # Display settings
    default_range: str = 'ALL'
    table_row_limit: int = 500

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            data_url=os.environ.get('LIQUIDITY_DATA_URL', DEFAULT_DATA_URL),
            fallback_urls=_split_urls(os.environ.get('LIQUIDITY_FALLBACK_URLS', '')),
            data_format=os.environ.get('LIQUIDITY_DATA_FORMAT', 'auto').lower(),

            # Allow override via env
            data_cache_ttl=int(os.environ.get('DATA_CACHE_TTL', 300)),
            http_timeout=float(os.environ.get('HTTP_TIMEOUT', 15.0)),
            default_range=os.environ.get('DEFAULT_RANGE', 'ALL').upper(),
            table_row_limit=int(os.environ.get('TABLE_ROW_LIMIT', 500)),
        )

    @property
    def source_urls(self) -> List[str]:
        """Primary URL followed by fallbacks, in priority order."""
        return [self.data_url] + [u for u in self.fallback_urls if u != self.data_url]


# Global config instance
config = Config.from_env()


# Dashboard order used on first load and on "reset"
PREFERRED_ORDER = [
    'WRESBAL_MLN_USD',
    'TGA_MLN_USD',
    'IMPLIED_WRESBAL',
    'SOFRVOL',
    'TOTAL_IMPLIED_LIQ',
    'BITCOIN',
    'WRESBAL_ASSETS',
    'BANK_ASSETS',
    # Rates & Spreads
    'ONRRP',
    'SOFR',
    'SPREAD',
    'SRF',
]


# Initial chart builder bindings: (series_id, axis, render_type)
DEFAULT_BUILDER_PAIR = [
    ('WRESBAL_MLN_USD', 'left', 'area'),
    ('BITCOIN', 'right', 'line'),
]


# Overview chart picks series whose label contains these, in order
OVERVIEW_LABEL_KEYWORDS = ['total implied', 'bitcoin']


# Colors handed out to columns without an explicit mapping
PALETTE = [
    '#3b82f6', '#22c55e', '#ef4444', '#a78bfa', '#38bdf8', '#f59e0b',
    '#f97316', '#ec4899', '#c084fc', '#6ee7b7', '#67e8f9', '#f472b6',
]
