"""
Chart Surfaces - Projections of catalog + builder state for the chart widget.

Each surface (overview, builder, overlay, popup, mini-charts) is a pure
projection: given the current state and range-filtered data it produces a
SurfaceSpec from scratch. Nothing is patched incrementally, so every surface
is consistent after any mutation.

The widget itself is external. A surface may carry a RenderHandle (pushes
specs to the widget) and a resize observer; destroying a surface disconnects
the observer before removing the handle.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from config import OVERVIEW_LABEL_KEYWORDS
from processing.builder import Point, SeriesCatalog, SeriesConfig
from processing.formatter import TooltipEntry, format_value, tooltip_date, value_near
from .builder_state import BuilderState, RENDER_TYPES

logger = logging.getLogger(__name__)

# Surfaces that re-project whenever the builder state changes
STATE_SURFACES = ('builder', 'overlay')


@dataclass
class TraceSpec:
    """One series as drawn on a surface."""

    series_id: str
    label: str
    unit: str
    color: str
    render_type: str
    axis: str
    invert_axis: bool
    points: List[Point] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'seriesId': self.series_id,
            'label': self.label,
            'unit': self.unit,
            'color': self.color,
            'type': self.render_type,
            'axis': self.axis,
            'invertAxis': self.invert_axis,
            'data': [{'time': p.timestamp, 'value': p.value} for p in self.points],
        }


@dataclass
class SurfaceSpec:
    """Everything the widget needs to draw one chart."""

    key: str
    traces: List[TraceSpec] = field(default_factory=list)
    title: str = ''
    left_scale: dict = field(default_factory=lambda: {'visible': False, 'invertScale': False})
    right_scale: dict = field(default_factory=lambda: {'visible': True, 'invertScale': False})

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'title': self.title,
            'leftPriceScale': dict(self.left_scale),
            'rightPriceScale': dict(self.right_scale),
            'traces': [t.to_dict() for t in self.traces],
        }


def _with_scales(spec: SurfaceSpec) -> SurfaceSpec:
    # The last trace on a side decides that side's inversion
    for trace in spec.traces:
        side = spec.left_scale if trace.axis == 'left' else spec.right_scale
        side['visible'] = True
        side['invertScale'] = trace.invert_axis
    return spec


# =============================================================================
# PROJECTIONS
# =============================================================================

def project_bindings(key: str, state: BuilderState, catalog: Optional[SeriesCatalog],
                     data_map: Dict[str, Sequence[Point]]) -> SurfaceSpec:
    """Builder (and maximized overlay) chart: one trace per binding with data."""
    spec = SurfaceSpec(key=key)
    if catalog is None:
        return spec

    for binding in state.bindings:
        cfg = catalog.get(binding.series_id)
        if cfg is None:
            continue
        points = list(data_map.get(binding.series_id) or [])
        if not points:
            continue
        spec.traces.append(TraceSpec(
            series_id=cfg.id,
            label=cfg.short_label,
            unit=cfg.unit,
            color=binding.color,
            render_type=binding.render_type or state.default_type,
            axis=binding.axis,
            invert_axis=binding.invert_axis,
            points=points,
        ))
    return _with_scales(spec)


def project_builder(state, catalog, data_map) -> SurfaceSpec:
    return project_bindings('builder', state, catalog, data_map)


def project_overlay(state, catalog, data_map) -> SurfaceSpec:
    return project_bindings('overlay', state, catalog, data_map)


def project_single(key: str, cfg: SeriesConfig, points: Sequence[Point],
                   render_type: Optional[str] = None) -> SurfaceSpec:
    """Popup, single-series overlay and mini-charts: one series on the right axis."""
    spec = SurfaceSpec(key=key, title=cfg.label)
    if points:
        spec.traces.append(TraceSpec(
            series_id=cfg.id,
            label=cfg.label,
            unit=cfg.unit,
            color=cfg.color,
            render_type=render_type or cfg.default_render_type,
            axis='right',
            invert_axis=False,
            points=list(points),
        ))
    return _with_scales(spec)


def overview_series(catalog: SeriesCatalog) -> List[SeriesConfig]:
    """The two headline series: by label keyword, topped up from catalog order."""
    chosen = []
    for keyword in OVERVIEW_LABEL_KEYWORDS:
        match = next((s for s in catalog.series_list if keyword in s.label.lower()), None)
        if match is not None and match not in chosen:
            chosen.append(match)

    for cfg in catalog.series_list:
        if len(chosen) >= 2:
            break
        if cfg not in chosen:
            chosen.append(cfg)
    return chosen[:2]


def project_overview(catalog: Optional[SeriesCatalog], data_map: Dict[str, Sequence[Point]],
                     render_type: str = 'line') -> SurfaceSpec:
    """Dashboard overview: first headline series on the right axis, second on the left."""
    spec = SurfaceSpec(key='overview')
    if catalog is None:
        return spec

    if render_type not in RENDER_TYPES:
        raise ValueError(f"render type must be one of {RENDER_TYPES}, got {render_type!r}")

    chosen = overview_series(catalog)
    if len(chosen) >= 2:
        spec.title = f"{chosen[0].label} vs {chosen[1].label}"

    for i, cfg in enumerate(chosen):
        points = list(data_map.get(cfg.id) or [])
        if not points:
            continue
        spec.traces.append(TraceSpec(
            series_id=cfg.id,
            label=cfg.label,
            unit=cfg.unit,
            color=cfg.color,
            render_type=render_type,
            axis='right' if i == 0 else 'left',
            invert_axis=False,
            points=points,
        ))
    return _with_scales(spec)


def tooltip_for(spec: SurfaceSpec, timestamp: int) -> dict:
    """Crosshair lookup: per trace, the value at or nearest the timestamp, formatted."""
    entries = []
    for trace in spec.traces:
        point = value_near(trace.points, timestamp)
        if point is None:
            continue
        entries.append(TooltipEntry(
            series_id=trace.series_id,
            label=trace.label,
            color=trace.color,
            value=point.value,
            formatted=format_value(point.value, trace.unit),
            date_label=point.date_label,
        ))
    return {
        'date': tooltip_date(timestamp),
        'items': [e.to_dict() for e in entries],
    }


# =============================================================================
# SURFACE LIFECYCLE
# =============================================================================

class RenderHandle(ABC):
    """Adapter to one widget instance."""

    @abstractmethod
    def render(self, spec: SurfaceSpec) -> None:
        pass

    @abstractmethod
    def remove(self) -> None:
        pass


class ResizeObserver(ABC):
    """Measurement callback registration on a surface's container."""

    @abstractmethod
    def disconnect(self) -> None:
        pass


@dataclass
class ChartSurface:
    key: str
    projector: Callable[[], SurfaceSpec]
    follows_state: bool = False
    handle: Optional[RenderHandle] = None
    observer: Optional[ResizeObserver] = None
    spec: Optional[SurfaceSpec] = None
    redraws: int = 0

    def redraw(self) -> SurfaceSpec:
        self.spec = self.projector()
        self.redraws += 1
        if self.handle is not None:
            self.handle.render(self.spec)
        return self.spec


class SurfaceManager:
    """
    Owns every open surface for a session.

    Subscribes to the builder state; each mutation re-projects the surfaces
    that render from it.
    """

    def __init__(self, state: BuilderState):
        self._state = state
        self._surfaces: Dict[str, ChartSurface] = {}
        self._catalog: Optional[SeriesCatalog] = None
        self._data: Dict[str, List[Point]] = {}
        self._unsubscribe = state.subscribe(self._on_state_change)

    @property
    def catalog(self) -> Optional[SeriesCatalog]:
        return self._catalog

    def keys(self) -> List[str]:
        return list(self._surfaces)

    def get(self, key: str) -> Optional[ChartSurface]:
        return self._surfaces.get(key)

    def spec(self, key: str) -> Optional[SurfaceSpec]:
        surface = self._surfaces.get(key)
        return surface.spec if surface else None

    def set_data(self, catalog: Optional[SeriesCatalog], data: Dict[str, List[Point]]) -> None:
        """New catalog or range: redraw every open surface."""
        self._catalog = catalog
        self._data = data
        for surface in list(self._surfaces.values()):
            surface.redraw()

    def _on_state_change(self, state: BuilderState) -> None:
        for surface in list(self._surfaces.values()):
            if surface.follows_state:
                surface.redraw()

    # =========================================================================
    # Opening surfaces
    # =========================================================================

    def open(self, key: str, projector: Callable[[], SurfaceSpec], follows_state: bool = False,
             handle: Optional[RenderHandle] = None, observer: Optional[ResizeObserver] = None) -> SurfaceSpec:
        """Replace any surface under this key and draw it once."""
        self.destroy(key)
        surface = ChartSurface(key=key, projector=projector, follows_state=follows_state,
                               handle=handle, observer=observer)
        # A projector that cannot draw is never registered
        spec = surface.redraw()
        self._surfaces[key] = surface
        return spec

    def open_builder(self, handle=None, observer=None) -> SurfaceSpec:
        return self.open('builder', lambda: project_builder(self._state, self._catalog, self._data),
                         follows_state=True, handle=handle, observer=observer)

    def open_overlay(self, handle=None, observer=None) -> SurfaceSpec:
        return self.open('overlay', lambda: project_overlay(self._state, self._catalog, self._data),
                         follows_state=True, handle=handle, observer=observer)

    def open_overview(self, render_type: str = 'line', handle=None, observer=None) -> SurfaceSpec:
        return self.open('overview', lambda: project_overview(self._catalog, self._data, render_type),
                         handle=handle, observer=observer)

    def _single(self, key: str, series_id: str, render_type: Optional[str], handle, observer) -> SurfaceSpec:
        if self._catalog is None or series_id not in self._catalog:
            raise KeyError(series_id)
        cfg = self._catalog.get(series_id)
        return self.open(key, lambda: project_single(key, cfg, self._data.get(series_id) or [], render_type),
                         handle=handle, observer=observer)

    def open_popup(self, series_id: str, handle=None, observer=None) -> SurfaceSpec:
        return self._single('popup', series_id, None, handle, observer)

    def open_single_overlay(self, series_id: str, handle=None, observer=None) -> SurfaceSpec:
        # Expanded mini-chart always draws as an area
        return self._single('overlay', series_id, 'area', handle, observer)

    def open_mini(self, series_id: str, handle=None, observer=None) -> SurfaceSpec:
        return self._single(f"mini:{series_id}", series_id, None, handle, observer)

    # =========================================================================
    # Teardown
    # =========================================================================

    def destroy(self, key: str) -> bool:
        """Disconnect the observer, then remove the handle, then forget the surface."""
        surface = self._surfaces.pop(key, None)
        if surface is None:
            return False

        if surface.observer is not None:
            try:
                surface.observer.disconnect()
            except Exception as e:
                logger.warning(f"[Charts] Observer disconnect failed for {key}: {e}")
        if surface.handle is not None:
            try:
                surface.handle.remove()
            except Exception as e:
                logger.warning(f"[Charts] Handle removal failed for {key}: {e}")
        return True

    def destroy_minis(self) -> int:
        keys = [k for k in self._surfaces if k.startswith('mini:')]
        for key in keys:
            self.destroy(key)
        return len(keys)

    def close(self) -> None:
        """Destroy every surface and stop following the builder state."""
        for key in list(self._surfaces):
            self.destroy(key)
        self._unsubscribe()
