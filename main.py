"""
Liquidity Monitor - US Liquidity Dashboard Backend

Pulls one published feed (JSON records or CSV), turns every numeric column
into a dated series and serves the dashboard views from it:

- Metric cards with latest value and change over the selected range
- Overview, popup, overlay and mini chart specs
- A multi-series chart builder with left/right axes
- Newest-first data table and full CSV export
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import config
from errors import LiquidityError
from session import SessionContext
from sources import close_async_client
from api import dashboard_router, builder_router, health_router
from api.deps import error_status

logger = logging.getLogger("liquidity")


# =============================================================================
# APP INITIALIZATION
# =============================================================================

def create_app(session: Optional[SessionContext] = None) -> FastAPI:
    """Build the app around one dashboard session (a fresh one by default)."""
    app = FastAPI(
        title="Liquidity Monitor",
        description="US liquidity indicators with a multi-series chart builder",
        version="1.0.0"
    )

    # CORS for development (front-end runs on a different port)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session = session or SessionContext.create()

    app.include_router(dashboard_router)
    app.include_router(builder_router)
    app.include_router(health_router)

    @app.exception_handler(LiquidityError)
    async def liquidity_error_handler(request: Request, exc: LiquidityError):
        logger.warning(f"[App] {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=error_status(exc),
            content={"status": "error", "detail": exc.message, "type": type(exc).__name__}
        )

    # Exception handler for debugging
    @app.exception_handler(Exception)
    async def debug_exception_handler(request: Request, exc: Exception):
        logger.exception(f"[App] Unhandled exception on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__}
        )

    @app.on_event("startup")
    async def startup():
        logger.info("=" * 60)
        logger.info("Liquidity Monitor Starting Up")
        logger.info("=" * 60)
        logger.info(f"  Feed: {config.data_url} (format: {config.data_format})")
        logger.info(f"  Fallbacks: {len(config.fallback_urls)}")
        logger.info(f"  Cache TTL: {config.data_cache_ttl}s")
        logger.info(f"  Default range: {config.default_range}")
        logger.info("=" * 60)

    @app.on_event("shutdown")
    async def shutdown():
        app.state.session.surfaces.close()
        await close_async_client()

    return app


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()


# =============================================================================
# RUN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
