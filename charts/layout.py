"""
Dashboard Layout - Order and visibility of series cards and mini-charts.
"""

from typing import Dict, List

from config import PREFERRED_ORDER


class DashboardLayout:
    """Ordered series ids plus a visibility flag per id."""

    def __init__(self):
        self.order: List[str] = []
        self.visibility: Dict[str, bool] = {}

    def sync(self, catalog) -> bool:
        """
        Initialize order on first load.

        Also re-initializes when a stored id is not in uppercase form (ids
        from an older feed). Returns True when the order was rebuilt.
        """
        if self.order and all(i == i.upper() for i in self.order):
            # Append series that appeared since the order was built
            for cfg in catalog.series_list:
                if cfg.id not in self.order:
                    self.order.append(cfg.id)
                    self.visibility.setdefault(cfg.id, True)
            return False
        self.reset(catalog)
        return True

    def reset(self, catalog) -> None:
        """Preferred order first, then any other series in catalog order; all visible."""
        known = set(catalog.ids())
        ordered = [i for i in PREFERRED_ORDER if i in known]
        ordered += [i for i in catalog.ids() if i not in ordered]
        self.order = ordered
        self.visibility = {i: True for i in catalog.ids()}

    def move(self, from_index: int, to_index: int) -> None:
        """Drag-and-drop reorder."""
        n = len(self.order)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise IndexError(f"Cannot move {from_index} -> {to_index} in a list of {n}")
        if from_index == to_index:
            return
        moved = self.order.pop(from_index)
        self.order.insert(to_index, moved)

    def set_visible(self, series_id: str, visible: bool) -> None:
        if series_id not in self.order:
            raise KeyError(series_id)
        self.visibility[series_id] = bool(visible)

    def ordered_series(self, catalog) -> list:
        return [catalog.get(i) for i in self.order if i in catalog]

    def visible_series(self, catalog) -> list:
        return [cfg for cfg in self.ordered_series(catalog) if self.visibility.get(cfg.id, True)]

    def to_dict(self) -> dict:
        return {
            'order': list(self.order),
            'visibility': dict(self.visibility),
        }
