"""
Derived Statistics - Latest value and changes for cards and rows.

All percentage changes are (a - b) / |b| * 100. A zero reference value
yields a zero change rather than a division error.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Sequence

# |pct| below this counts as "no change" on metric cards
NEUTRAL_THRESHOLD = 0.001


@dataclass(frozen=True)
class Change:
    value: float = 0.0
    pct: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def latest(points: Optional[Sequence]):
    """Most recent point, or None for an empty series."""
    return points[-1] if points else None


def _change(current: float, reference: float) -> Change:
    if not reference:
        return Change()
    diff = current - reference
    return Change(value=diff, pct=diff / abs(reference) * 100)


def change_from_previous(points: Optional[Sequence]) -> Change:
    """Last point vs the one before it."""
    if not points or len(points) < 2:
        return Change()
    return _change(points[-1].value, points[-2].value)


def change_over_window(points: Optional[Sequence]) -> Change:
    """Last point vs the first point of an already range-filtered series."""
    if not points or len(points) < 2:
        return Change()
    return _change(points[-1].value, points[0].value)


def change_direction(change: Change) -> str:
    if abs(change.pct) < NEUTRAL_THRESHOLD:
        return 'neutral'
    return 'positive' if change.pct >= 0 else 'negative'
