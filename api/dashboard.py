"""
Dashboard Endpoints

Catalog + range-filtered data, metric cards, data table, CSV export and
the dashboard layout (card order and visibility).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from processing.formatter import export_csv, export_filename, metric_card, mini_card, table_rows
from processing.temporal import RangeWindow
from session import SessionContext
from .deps import get_session

dashboard_router = APIRouter()


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class MoveRequest(BaseModel):
    """Drag-and-drop reorder."""
    from_index: int
    to_index: int


class VisibilityRequest(BaseModel):
    series_id: str
    visible: bool


# =============================================================================
# HELPERS
# =============================================================================

async def _load(session: SessionContext, window: Optional[RangeWindow]):
    # LiquidityError propagates to the app-level handler
    return await session.ensure_loaded(window)


def _dashboard_payload(session: SessionContext, result) -> dict:
    catalog = result.catalog
    visible = session.layout.visible_series(catalog)
    return {
        'range': result.range.value,
        'status': session.status(),
        'series': [cfg.to_dict(points=result.data.get(cfg.id, [])) for cfg in catalog.series_list],
        'cards': [metric_card(cfg, result.data.get(cfg.id, [])) for cfg in visible],
        'minis': [mini_card(cfg, result.data.get(cfg.id, [])) for cfg in visible],
        'layout': session.layout.to_dict(),
    }


# =============================================================================
# DATA
# =============================================================================

@dashboard_router.get("/api/data")
async def get_data(
    window: Optional[RangeWindow] = Query(None, alias='range'),
    session: SessionContext = Depends(get_session),
):
    """Catalog with points trimmed to the range, plus card metrics."""
    result = await _load(session, window)
    return JSONResponse(_dashboard_payload(session, result))


@dashboard_router.post("/api/refresh")
async def refresh(session: SessionContext = Depends(get_session)):
    """Drop the cache and re-fetch regardless of the remaining TTL."""
    result = await session.refresh()
    return JSONResponse(_dashboard_payload(session, result))


@dashboard_router.get("/api/table")
async def data_table(
    window: Optional[RangeWindow] = Query(None, alias='range'),
    filter: str = '',
    session: SessionContext = Depends(get_session),
):
    """Newest-first table of every series joined by date."""
    result = await _load(session, window)
    series_list = result.catalog.series_list
    return JSONResponse({
        'range': result.range.value,
        'columns': [
            {'id': s.id, 'label': s.short_label, 'description': s.description, 'unit': s.unit}
            for s in series_list
        ],
        'rows': table_rows(series_list, result.data, filter, session.config.table_row_limit),
    })


@dashboard_router.get("/api/export.csv")
async def export(
    window: Optional[RangeWindow] = Query(None, alias='range'),
    session: SessionContext = Depends(get_session),
):
    """Download every series as one CSV, oldest date first."""
    result = await _load(session, window)
    csv_text = export_csv(result.catalog.series_list, result.data)
    return Response(
        content=csv_text,
        media_type='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{export_filename()}"'},
    )


# =============================================================================
# LAYOUT
# =============================================================================

@dashboard_router.get("/api/layout")
async def get_layout(session: SessionContext = Depends(get_session)):
    return JSONResponse(session.layout.to_dict())


@dashboard_router.post("/api/layout/move")
async def move_card(body: MoveRequest, session: SessionContext = Depends(get_session)):
    try:
        session.layout.move(body.from_index, body.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(session.layout.to_dict())


@dashboard_router.post("/api/layout/visibility")
async def set_visibility(body: VisibilityRequest, session: SessionContext = Depends(get_session)):
    try:
        session.layout.set_visible(body.series_id, body.visible)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown series '{body.series_id}'")
    return JSONResponse(session.layout.to_dict())


@dashboard_router.post("/api/layout/reset")
async def reset_layout(session: SessionContext = Depends(get_session)):
    result = await _load(session, None)
    session.layout.reset(result.catalog)
    return JSONResponse(session.layout.to_dict())
