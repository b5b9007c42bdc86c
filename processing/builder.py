"""
Series Builder - Parsed rows + resolved metadata -> series catalog.

For every value column:
1. Coerce each row's date and value, skipping rows where either fails
2. Sort ascending by timestamp
3. Keep the first point per timestamp (stable, first occurrence wins)
4. Attach SeriesConfig presentation metadata
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from errors import FormatError
from processing.coercion import parse_date, parse_number, to_timestamp
from processing.tabular import ParsedTable
from registry.series_registry import (
    MetadataResolver,
    UNIT_PERCENT,
    detect_date_column,
    palette_color,
    series_id_from_name,
)

logger = logging.getLogger(__name__)

SHORT_LABEL_MAX = 14
ELLIPSIS = '…'


@dataclass(frozen=True)
class Point:
    """One observation."""

    timestamp: int
    value: float
    date_label: str

    def to_dict(self) -> dict:
        return {'timestamp': self.timestamp, 'value': self.value, 'dateLabel': self.date_label}


@dataclass
class SeriesConfig:
    """Identity, presentation metadata and full history for one indicator."""

    id: str
    label: str
    short_label: str
    unit: str
    color: str
    default_render_type: str
    default_axis: str
    category: str
    description: str
    source_column: str = ''
    points: Tuple[Point, ...] = ()

    def to_dict(self, points: Optional[List[Point]] = None) -> dict:
        """Catalog entry as consumed by the rendering side."""
        pts = self.points if points is None else points
        return {
            'id': self.id,
            'label': self.label,
            'shortLabel': self.short_label,
            'unit': self.unit,
            'color': self.color,
            'type': self.default_render_type,
            'axis': self.default_axis,
            'description': self.description,
            'category': self.category,
            'points': [p.to_dict() for p in pts],
        }


@dataclass
class SeriesCatalog:
    """All series from one ingestion cycle, by id and in column order."""

    series_map: Dict[str, SeriesConfig] = field(default_factory=dict)
    series_list: List[SeriesConfig] = field(default_factory=list)
    date_column: Optional[str] = None

    def get(self, series_id: str) -> Optional[SeriesConfig]:
        return self.series_map.get(series_id)

    def __contains__(self, series_id: str) -> bool:
        return series_id in self.series_map

    def __len__(self) -> int:
        return len(self.series_list)

    def ids(self) -> List[str]:
        return [s.id for s in self.series_list]


def short_label(label: str) -> str:
    if len(label) > SHORT_LABEL_MAX:
        return label[:SHORT_LABEL_MAX - 1] + ELLIPSIS
    return label


def build_points(rows: List[dict], date_column: str, value_column: str) -> List[Point]:
    """Coerce, sort and deduplicate one column into a point sequence."""
    raw = []
    for row in rows:
        day = parse_date(row.get(date_column))
        if day is None:
            continue
        value = parse_number(row.get(value_column))
        if value is None:
            continue
        raw.append(Point(timestamp=to_timestamp(day), value=value, date_label=day.isoformat()))

    # sorted() is stable, so same-day rows keep feed order and the first one wins
    raw = sorted(raw, key=lambda p: p.timestamp)

    unique = []
    seen = set()
    for point in raw:
        if point.timestamp in seen:
            continue
        seen.add(point.timestamp)
        unique.append(point)
    return unique


def _unique_id(series_id: str, taken: Dict[str, SeriesConfig]) -> str:
    if series_id not in taken:
        return series_id
    n = 2
    while f"{series_id}_{n}" in taken:
        n += 1
    return f"{series_id}_{n}"


def build_catalog(table: ParsedTable, resolver: MetadataResolver) -> SeriesCatalog:
    """
    Build the series catalog from a parsed table.

    Args:
        table: Parsed headers and rows
        resolver: Metadata strategy chosen by the ingestion source

    Returns:
        SeriesCatalog with one entry per non-date column, in column order
    """
    date_column = detect_date_column(table.headers, table.first_row)
    value_columns = [h for h in table.headers if h != date_column]
    if not value_columns:
        raise FormatError("Payload has no value columns besides the date column")

    catalog = SeriesCatalog(date_column=date_column)

    resolved = []
    for position, column in enumerate(value_columns):
        points = build_points(table.rows, date_column, column)
        resolved.append((column, points, resolver.resolve(column, [p.value for p in points], position)))

    # Explicit colors are reserved up front, wherever their column sits
    used_colors = {meta.color for _, _, meta in resolved if meta.color}

    for position, (column, points, meta) in enumerate(resolved):
        color = meta.color
        if not color:
            color = palette_color(position, used_colors)
            used_colors.add(color)

        base_id = meta.id or series_id_from_name(column) or f"SERIES_{position + 1}"
        series_id = _unique_id(base_id, catalog.series_map)
        is_pct = meta.unit == UNIT_PERCENT

        cfg = SeriesConfig(
            id=series_id,
            label=meta.label,
            short_label=short_label(meta.label),
            unit=meta.unit,
            color=color,
            default_render_type='line' if is_pct else 'area',
            default_axis='right' if is_pct else 'left',
            category='Rates' if is_pct else 'Liquidity',
            description=meta.label,
            source_column=column,
            points=tuple(points),
        )
        catalog.series_map[cfg.id] = cfg
        catalog.series_list.append(cfg)

    logger.info(f"[Data] Built {len(catalog)} series (date column '{date_column}', resolver {resolver.name})")
    return catalog
