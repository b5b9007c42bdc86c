"""
Health Check and Utility Endpoints
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from session import SessionContext
from .deps import get_session

health_router = APIRouter()

VERSION = "1.0.0"


@health_router.get("/health")
async def health_check():
    """Simple health check endpoint."""
    return JSONResponse({
        "status": "healthy",
        "version": VERSION
    })


@health_router.get("/api/status")
async def api_status(session: SessionContext = Depends(get_session)):
    """Detailed status: config, session, cache and source outcomes."""
    cfg = session.config
    return JSONResponse({
        "status": "healthy" if session.last_error is None else "error",
        "version": VERSION,
        "config": {
            "data_url": cfg.data_url,
            "fallback_urls": cfg.fallback_urls,
            "data_format": cfg.data_format,
            "data_cache_ttl": cfg.data_cache_ttl,
            "default_range": cfg.default_range,
        },
        "session": session.status(),
        "data_sources": session.cache.sources(),
        "cache": session.cache.stats(),
        "surfaces": session.surfaces.keys(),
    })


@health_router.get("/api/cache/clear")
async def clear_cache(session: SessionContext = Depends(get_session)):
    """Invalidate the feed cache (next load re-fetches)."""
    session.invalidate()
    return JSONResponse({
        "status": "success",
        "message": "Cache cleared"
    })


@health_router.get("/api/sources")
async def list_sources(session: SessionContext = Depends(get_session)):
    """List configured feed sources and their last outcome."""
    return JSONResponse({
        "sources": session.cache.sources()
    })
