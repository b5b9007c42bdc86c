"""API module - FastAPI routers and endpoints."""

from .dashboard import dashboard_router
from .builder import builder_router
from .health import health_router

__all__ = ['dashboard_router', 'builder_router', 'health_router']
