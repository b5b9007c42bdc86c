"""Charts module - Builder state, dashboard layout and surface projections."""

from .builder_state import BuilderBinding, BuilderState, catalog_choices
from .layout import DashboardLayout
from .surfaces import SurfaceManager, SurfaceSpec, TraceSpec, tooltip_for

__all__ = [
    'BuilderBinding',
    'BuilderState',
    'catalog_choices',
    'DashboardLayout',
    'SurfaceManager',
    'SurfaceSpec',
    'TraceSpec',
    'tooltip_for',
]
