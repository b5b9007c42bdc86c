"""
Chart Builder State - The user's series-to-chart bindings.

The state is an ordered list of bindings plus at most one "open" binding
selected for inline editing. It knows nothing about rendered surfaces:
every mutation bumps a revision and notifies subscribers, and each surface
re-projects itself from the current state.

Duplicate bindings (the same series added twice) are allowed. The add
picker hides series that are already bound, but the state does not enforce it.
"""

import logging
from dataclasses import dataclass, replace, asdict
from typing import Callable, List, Optional, Tuple

from config import DEFAULT_BUILDER_PAIR

logger = logging.getLogger(__name__)

AXES = ('left', 'right')
RENDER_TYPES = ('line', 'area', 'bar')

# reconfigure() field names, with the API's camelCase aliases
_FIELD_ALIASES = {
    'axis': 'axis',
    'render_type': 'render_type',
    'type': 'render_type',
    'renderType': 'render_type',
    'color': 'color',
    'invert_axis': 'invert_axis',
    'invertAxis': 'invert_axis',
}


def _check_axis(axis: str) -> str:
    if axis not in AXES:
        raise ValueError(f"axis must be one of {AXES}, got {axis!r}")
    return axis


def _check_render_type(render_type: str) -> str:
    if render_type not in RENDER_TYPES:
        raise ValueError(f"render type must be one of {RENDER_TYPES}, got {render_type!r}")
    return render_type


@dataclass
class BuilderBinding:
    """One series placed on the builder chart."""

    series_id: str
    axis: str = 'left'
    render_type: str = 'line'
    color: str = ''
    invert_axis: bool = False

    def to_dict(self) -> dict:
        return {
            'seriesId': self.series_id,
            'axis': self.axis,
            'renderType': self.render_type,
            'color': self.color,
            'invertAxis': self.invert_axis,
        }


Listener = Callable[["BuilderState"], None]


class BuilderState:
    """Mutable builder bindings for one session."""

    def __init__(self, default_type: str = 'line'):
        self._bindings: List[BuilderBinding] = []
        self.selected_series_id: Optional[str] = None
        self.default_type = _check_render_type(default_type)
        self.revision = 0
        self._listeners: List[Listener] = []

    # =========================================================================
    # Observation
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a redraw callback; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _changed(self) -> None:
        self.revision += 1
        for listener in list(self._listeners):
            listener(self)

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def bindings(self) -> Tuple[BuilderBinding, ...]:
        return tuple(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def snapshot(self) -> List[dict]:
        """Plain copy of the binding list for comparison or serialization."""
        return [asdict(b) for b in self._bindings]

    def bound_ids(self) -> set:
        return {b.series_id for b in self._bindings}

    def to_dict(self) -> dict:
        return {
            'bindings': [b.to_dict() for b in self._bindings],
            'selectedSeriesId': self.selected_series_id,
            'defaultType': self.default_type,
            'revision': self.revision,
        }

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, series_id: str, axis: str, color: str) -> BuilderBinding:
        """Append a binding with the session default type; existing bindings are not checked."""
        binding = BuilderBinding(
            series_id=series_id,
            axis=_check_axis(axis),
            render_type=self.default_type,
            color=color,
            invert_axis=False,
        )
        self._bindings.append(binding)
        self._changed()
        return binding

    def remove(self, index: int) -> BuilderBinding:
        """Delete the binding at index; clears the selection if it pointed at that series."""
        if not 0 <= index < len(self._bindings):
            raise IndexError(f"No binding at position {index}")
        removed = self._bindings.pop(index)
        if self.selected_series_id == removed.series_id:
            self.selected_series_id = None
        self._changed()
        return removed

    def select(self, series_id: Optional[str]) -> Optional[str]:
        """Open a binding for editing; selecting the open one closes it."""
        if series_id is None or self.selected_series_id == series_id:
            self.selected_series_id = None
        else:
            self.selected_series_id = series_id
        self._changed()
        return self.selected_series_id

    def reconfigure(self, index: int, field: str, value) -> BuilderBinding:
        """Change one field of one binding in place."""
        if not 0 <= index < len(self._bindings):
            raise IndexError(f"No binding at position {index}")

        name = _FIELD_ALIASES.get(field)
        if name is None:
            raise ValueError(f"Unknown binding field {field!r}")

        binding = self._bindings[index]
        if name == 'axis':
            binding.axis = _check_axis(value)
        elif name == 'render_type':
            binding.render_type = _check_render_type(value)
        elif name == 'color':
            if not isinstance(value, str) or not value:
                raise ValueError("color must be a non-empty string")
            binding.color = value
        else:
            if not isinstance(value, bool):
                raise ValueError(f"invert_axis must be true or false, got {value!r}")
            binding.invert_axis = value

        self._changed()
        return binding

    def bulk_set_type(self, render_type: str) -> None:
        """Set every binding's type and the default for future adds."""
        _check_render_type(render_type)
        self.default_type = render_type
        self._bindings = [replace(b, render_type=render_type) for b in self._bindings]
        self._changed()

    def move(self, from_index: int, to_index: int) -> None:
        """Reorder: take the binding at from_index and insert it at to_index."""
        n = len(self._bindings)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise IndexError(f"Cannot move binding {from_index} -> {to_index} in a list of {n}")
        if from_index == to_index:
            return
        moved = self._bindings.pop(from_index)
        self._bindings.insert(to_index, moved)
        self._changed()

    def seed_defaults(self, catalog) -> bool:
        """
        Populate an empty builder on first load.

        Binds the preferred pair when the catalog has both series, otherwise
        the first two series (left, right). Returns True if anything was added.
        """
        if self._bindings or not len(catalog):
            return False

        if all(series_id in catalog for series_id, _, _ in DEFAULT_BUILDER_PAIR):
            for series_id, axis, render_type in DEFAULT_BUILDER_PAIR:
                cfg = catalog.get(series_id)
                self._bindings.append(BuilderBinding(series_id, axis, render_type, cfg.color))
        else:
            for i, cfg in enumerate(catalog.series_list[:2]):
                self._bindings.append(BuilderBinding(cfg.id, AXES[i], 'line', cfg.color))

        logger.info(f"[Builder] Seeded {len(self._bindings)} default bindings")
        self._changed()
        return True


def catalog_choices(state: BuilderState, catalog, query: str = '') -> List[dict]:
    """
    Entries for the add-series picker.

    Filters by case-insensitive substring on label or id and flags series
    that are already bound.
    """
    q = (query or '').strip().lower()
    bound = state.bound_ids()
    choices = []
    for cfg in catalog.series_list:
        if q and q not in cfg.label.lower() and q not in cfg.id.lower():
            continue
        choices.append({
            'id': cfg.id,
            'label': cfg.label,
            'unit': cfg.unit,
            'color': cfg.color,
            'added': cfg.id in bound,
        })
    return choices
