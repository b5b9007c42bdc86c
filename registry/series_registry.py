"""
Series Registry - Field name -> series identity (id, label, unit, color).

Consolidates:
- FIELD_MAPPING (explicit metadata for the known liquidity feed)
- Unit inference heuristics for columns nobody mapped
- Date column detection

Resolution goes through a MetadataResolver. Two strategies exist:
ExplicitMappingResolver (mapping table first, heuristics for the rest) and
HeuristicResolver (heuristics only). A source may carry either; by default
both JSON and CSV payloads use the mapping-first strategy.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Collection, Dict, List, Optional, Sequence

import numpy as np

from config import PALETTE
from processing.coercion import parse_date


# Enumerated units
UNIT_PERCENT = '%'
UNIT_MILLIONS = 'M USD'
UNIT_BILLIONS = 'B USD'
UNIT_USD = 'USD'
UNIT_NONE = ''

UNITS = (UNIT_PERCENT, UNIT_MILLIONS, UNIT_BILLIONS, UNIT_USD, UNIT_NONE)


@dataclass
class FieldMeta:
    """Resolved metadata for one source column."""

    id: Optional[str]      # None -> derive from column name
    label: str
    unit: str
    color: Optional[str]   # None -> next unused palette color


# =============================================================================
# FIELD MAPPING - Explicit metadata for the liquidity feed
# =============================================================================

FIELD_MAPPING: Dict[str, FieldMeta] = {
    'wresbal_oficjalny': FieldMeta(id='WRESBAL_MLN_USD', label='WRESBAL', unit=UNIT_MILLIONS, color='#3b82f6'),
    'tga': FieldMeta(id='TGA_MLN_USD', label='TGA', unit=UNIT_MILLIONS, color='#22c55e'),
    'wresbal_implikowany': FieldMeta(id='IMPLIED_WRESBAL', label='Implied WRESBAL', unit=UNIT_MILLIONS, color='#ef4444'),
    'sofr_vol': FieldMeta(id='SOFRVOL', label='SOFR Volume', unit=UNIT_MILLIONS, color='#a78bfa'),
    'total_liquidity': FieldMeta(id='TOTAL_IMPLIED_LIQ', label='Total Implied Liq', unit=UNIT_MILLIONS, color='#38bdf8'),
    'btc_usd': FieldMeta(id='BITCOIN', label='Bitcoin', unit=UNIT_USD, color='#f59e0b'),
    'sofr_rate': FieldMeta(id='SOFR', label='SOFR', unit=UNIT_PERCENT, color='#f97316'),
    'on_rrp': FieldMeta(id='ONRRP', label='ONRRP', unit=UNIT_PERCENT, color='#ec4899'),
    'spread': FieldMeta(id='SPREAD', label='Spread (SOFR-RRP)', unit=UNIT_PERCENT, color='#c084fc'),
    'total_assets': FieldMeta(id='BANK_ASSETS', label='Bank Assets', unit=UNIT_MILLIONS, color='#6ee7b7'),
    'wresbal_to_assets_ratio': FieldMeta(id='WRESBAL_ASSETS', label='WRESBAL / Assets', unit=UNIT_PERCENT, color='#67e8f9'),
    'srf': FieldMeta(id='SRF', label='SRF', unit=UNIT_MILLIONS, color='#f472b6'),
}


# Name keywords -> unit, checked in order
PERCENT_KEYWORDS = ['rate', 'yield', 'spread', 'percent', '%']
MILLIONS_KEYWORDS = ['million', 'mln']
BILLIONS_KEYWORDS = ['billion', 'bln']
CURRENCY_KEYWORDS = ['usd', 'price', '$', 'btc', 'close']

# Mean |value| thresholds for the magnitude fallback
MILLIONS_MAGNITUDE = 100_000
PERCENT_MAGNITUDE = 50

DATE_KEYWORDS = ['date', 'data', 'time', 'day', 'period', 'timestamp', 'observation']

_ID_UNSAFE_RE = re.compile(r'[^A-Z0-9_]')


def normalize_name(name: str) -> str:
    """Lookup key for a column name."""
    return str(name).strip().lower()


def series_id_from_name(name: str) -> str:
    """Deterministic series id: uppercase, whitespace -> '_', other symbols dropped."""
    upper = re.sub(r'\s+', '_', str(name).strip().upper())
    return _ID_UNSAFE_RE.sub('', upper)


def infer_unit_from_name(name: str) -> Optional[str]:
    """Unit implied by keywords in the column name, or None if the name says nothing."""
    lowered = normalize_name(name)
    if any(k in lowered for k in PERCENT_KEYWORDS):
        return UNIT_PERCENT
    if any(k in lowered for k in MILLIONS_KEYWORDS):
        return UNIT_MILLIONS
    if any(k in lowered for k in BILLIONS_KEYWORDS):
        return UNIT_BILLIONS
    if any(k in lowered for k in CURRENCY_KEYWORDS):
        return UNIT_USD
    return None


def infer_unit_from_values(values: Sequence[float]) -> str:
    """Unit guessed from the mean magnitude of the column's numbers."""
    if not values:
        return UNIT_NONE
    magnitude = float(np.mean(np.abs(np.asarray(values, dtype=float))))
    if magnitude > MILLIONS_MAGNITUDE:
        return UNIT_MILLIONS
    if magnitude < PERCENT_MAGNITUDE:
        return UNIT_PERCENT
    return UNIT_USD


def palette_color(position: int, used: Collection[str] = ()) -> str:
    """
    First palette color not in `used`, scanning from the column position.

    Wraps to PALETTE[position % len] once every color is taken.
    """
    n = len(PALETTE)
    for offset in range(n):
        color = PALETTE[(position + offset) % n]
        if color not in used:
            return color
    return PALETTE[position % n]


def detect_date_column(headers: List[str], first_row: dict) -> Optional[str]:
    """
    Pick the date column.

    1. First header whose name contains a date keyword
    2. First header whose first-row value parses as a date
    3. First header
    """
    if not headers:
        return None

    for header in headers:
        lowered = normalize_name(header)
        if any(k in lowered for k in DATE_KEYWORDS):
            return header

    for header in headers:
        if parse_date(first_row.get(header)) is not None:
            return header

    return headers[0]


# =============================================================================
# RESOLVERS
# =============================================================================

class MetadataResolver(ABC):
    """Maps a source column to its series identity."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def resolve(self, column: str, values: Sequence[float], position: int) -> FieldMeta:
        """
        Resolve metadata for one value column.

        Args:
            column: Source column/field name
            values: The column's successfully parsed numbers (for magnitude checks)
            position: Index of the column among value columns (palette cycling)
        """
        pass


class HeuristicResolver(MetadataResolver):
    """Infers unit from the name, then from magnitudes; color is left to the catalog."""

    @property
    def name(self) -> str:
        return "heuristic"

    def resolve(self, column: str, values: Sequence[float], position: int) -> FieldMeta:
        unit = infer_unit_from_name(column)
        if unit is None:
            unit = infer_unit_from_values(values)
        return FieldMeta(
            id=None,
            label=str(column).strip(),
            unit=unit,
            color=None,
        )


class ExplicitMappingResolver(MetadataResolver):
    """Mapping table first; unmapped columns go to the fallback resolver."""

    def __init__(self, mapping: Optional[Dict[str, FieldMeta]] = None,
                 fallback: Optional[MetadataResolver] = None):
        self._mapping = {normalize_name(k): v for k, v in (mapping if mapping is not None else FIELD_MAPPING).items()}
        self._fallback = fallback or HeuristicResolver()

    @property
    def name(self) -> str:
        return "explicit"

    def lookup(self, column: str) -> Optional[FieldMeta]:
        return self._mapping.get(normalize_name(column))

    def resolve(self, column: str, values: Sequence[float], position: int) -> FieldMeta:
        meta = self.lookup(column)
        if meta is None:
            return self._fallback.resolve(column, values, position)
        return FieldMeta(
            id=meta.id,
            label=meta.label or str(column).strip(),
            unit=meta.unit,
            color=meta.color or None,
        )


def resolver_for_format(fmt: str) -> MetadataResolver:
    """
    Default strategy for a payload shape.

    Both shapes go through the mapping first, so the same feed served as JSON
    or CSV yields the same ids, labels and colors.
    """
    return ExplicitMappingResolver()
