"""
Display Formatter - Values, cards, tooltips, table rows and CSV export.

Everything the front-end shows as text is produced here so every surface
formats the same number the same way.
"""

import bisect
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from processing.analytics import change_from_previous, change_over_window, change_direction, latest
from processing.builder import Point, SeriesConfig
from processing.coercion import timestamp_to_label
from registry.series_registry import UNIT_BILLIONS, UNIT_MILLIONS, UNIT_PERCENT, UNIT_USD

MISSING = '—'


def format_value(value: Optional[float], unit: str) -> str:
    """
    Format a value for display according to its unit.

    Examples:
        format_value(2500000, 'M USD') -> '$2.50T'
        format_value(850, 'M USD')     -> '$850M'
        format_value(4.2, '%')         -> '4.20%'
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return MISSING

    if unit == UNIT_PERCENT:
        return f"{value:.2f}%"

    if unit == UNIT_MILLIONS:
        if abs(value) >= 1_000_000:
            return f"${value / 1_000_000:.2f}T"
        if abs(value) >= 1_000:
            return f"${value / 1_000:.1f}B"
        return f"${value:.0f}M"

    if unit == UNIT_BILLIONS:
        if abs(value) >= 1_000:
            return f"${value / 1_000:.2f}T"
        return f"${value:.1f}B"

    if unit == UNIT_USD:
        return f"${value:,.0f}"

    text = f"{value:,.4f}".rstrip('0').rstrip('.')
    return '0' if text in ('', '-0') else text


# =============================================================================
# CARDS
# =============================================================================

def metric_card(cfg: SeriesConfig, points: Sequence[Point]) -> dict:
    """Headline card: latest value and change vs the previous observation."""
    last = latest(points)
    change = change_from_previous(points)
    return {
        'id': cfg.id,
        'label': cfg.label,
        'unit': cfg.unit,
        'color': cfg.color,
        'value': format_value(last.value if last else None, cfg.unit),
        'change': change.to_dict(),
        'changeType': change_direction(change),
    }


def mini_card(cfg: SeriesConfig, points: Sequence[Point]) -> dict:
    """Mini-chart header: latest value and change across the visible window."""
    last = latest(points)
    change = change_over_window(points)
    return {
        'id': cfg.id,
        'label': cfg.label,
        'unit': cfg.unit,
        'color': cfg.color,
        'value': format_value(last.value if last else None, cfg.unit),
        'change': change.to_dict(),
        'changeLabel': f"{'+' if change.pct >= 0 else ''}{change.pct:.1f}%",
    }


# =============================================================================
# TOOLTIP
# =============================================================================

@dataclass
class TooltipEntry:
    series_id: str
    label: str
    color: str
    value: float
    formatted: str
    date_label: str

    def to_dict(self) -> dict:
        return {
            'seriesId': self.series_id,
            'label': self.label,
            'color': self.color,
            'value': self.value,
            'formatted': self.formatted,
            'dateLabel': self.date_label,
        }


def value_near(points: Sequence[Point], timestamp: int) -> Optional[Point]:
    """
    Point at or nearest the timestamp.

    Equidistant neighbours resolve to the earlier point.
    """
    if not points:
        return None

    times = [p.timestamp for p in points]
    idx = bisect.bisect_left(times, timestamp)

    if idx < len(points) and times[idx] == timestamp:
        return points[idx]
    if idx == 0:
        return points[0]
    if idx == len(points):
        return points[-1]

    before, after = points[idx - 1], points[idx]
    if timestamp - before.timestamp <= after.timestamp - timestamp:
        return before
    return after


def tooltip_date(timestamp: int) -> str:
    return timestamp_to_label(timestamp)


# =============================================================================
# TABLE / EXPORT
# =============================================================================

def _joined_frame(series_list: Sequence[SeriesConfig], data_map: Dict[str, Sequence[Point]]) -> pd.DataFrame:
    """One row per distinct date, one column per series id (NaN where missing)."""
    columns = {}
    for cfg in series_list:
        points = data_map.get(cfg.id) or []
        columns[cfg.id] = pd.Series(
            [p.value for p in points],
            index=[p.date_label for p in points],
            dtype=float,
        )

    if not columns:
        return pd.DataFrame()

    frame = pd.concat(columns, axis=1, sort=False)
    return frame.reindex(columns=[cfg.id for cfg in series_list]).sort_index()


def _export_cell(value: float) -> str:
    if pd.isna(value):
        return ''
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def export_csv(series_list: Sequence[SeriesConfig], data_map: Dict[str, Sequence[Point]]) -> str:
    """
    Full-width CSV: Date + one column per series (by label), date ascending.

    Missing values are empty fields.
    """
    frame = _joined_frame(series_list, data_map)
    header = ['Date'] + [cfg.label for cfg in series_list]
    if frame.empty:
        return pd.DataFrame(columns=header).to_csv(index=False, lineterminator='\n').rstrip('\n')

    cells = frame.apply(lambda column: column.map(_export_cell))
    cells.columns = header[1:]
    cells.index.name = 'Date'
    return cells.to_csv(lineterminator='\n').rstrip('\n')


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"us-liquidity-{today.isoformat()}.csv"


def table_rows(series_list: Sequence[SeriesConfig], data_map: Dict[str, Sequence[Point]],
               date_filter: str = '', limit: int = 500) -> List[dict]:
    """Data-table rows: newest first, optional date substring filter, formatted cells."""
    frame = _joined_frame(series_list, data_map)
    if frame.empty:
        return []

    frame = frame.sort_index(ascending=False)
    if date_filter:
        frame = frame[frame.index.str.contains(date_filter, regex=False)]

    rows = []
    for date_label, values in frame.head(limit).iterrows():
        rows.append({
            'date': date_label,
            'values': {
                cfg.id: format_value(None if pd.isna(values[cfg.id]) else float(values[cfg.id]), cfg.unit)
                for cfg in series_list
            },
        })
    return rows
