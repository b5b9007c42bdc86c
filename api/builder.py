"""
Chart Builder and Chart Surface Endpoints

Builder mutations return the new state together with the redrawn builder
surface, so the client never has to reconcile the two.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from charts import catalog_choices, tooltip_for
from processing.temporal import RangeWindow
from session import SessionContext
from .deps import get_session

builder_router = APIRouter()

SURFACES = ('overview', 'builder', 'overlay', 'popup', 'mini')


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class AddBindingRequest(BaseModel):
    series_id: str
    axis: str = 'left'


class ReconfigureRequest(BaseModel):
    field: str
    value: Any


class SelectRequest(BaseModel):
    series_id: Optional[str] = None


class TypeRequest(BaseModel):
    render_type: str


class MoveRequest(BaseModel):
    from_index: int
    to_index: int


# =============================================================================
# HELPERS
# =============================================================================

def _state_payload(session: SessionContext) -> dict:
    payload = session.builder.to_dict()
    spec = session.surfaces.spec('builder')
    payload['chart'] = spec.to_dict() if spec else None
    return payload


async def _open_surface(session: SessionContext, surface: str, series: Optional[str], render_type: str):
    if surface not in SURFACES:
        raise HTTPException(status_code=404, detail=f"Unknown chart surface '{surface}'")

    try:
        if surface == 'overview':
            return session.surfaces.open_overview(render_type)
        if surface == 'builder':
            return session.surfaces.open_builder()
        if surface == 'overlay':
            if series:
                return session.surfaces.open_single_overlay(series)
            return session.surfaces.open_overlay()
        if not series:
            raise HTTPException(status_code=400, detail=f"The {surface} chart needs a series")
        if surface == 'popup':
            return session.surfaces.open_popup(series)
        return session.surfaces.open_mini(series)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown series '{series}'")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _surface_key(surface: str, series: Optional[str]) -> str:
    return f"mini:{series}" if surface == 'mini' else surface


# =============================================================================
# BUILDER STATE
# =============================================================================

@builder_router.get("/api/builder")
async def get_builder(session: SessionContext = Depends(get_session)):
    await session.ensure_loaded()
    return JSONResponse(_state_payload(session))


@builder_router.get("/api/builder/choices")
async def builder_choices(q: str = '', session: SessionContext = Depends(get_session)):
    """Series for the add picker, flagged when already on the chart."""
    result = await session.ensure_loaded()
    return JSONResponse({'choices': catalog_choices(session.builder, result.catalog, q)})


@builder_router.post("/api/builder/bindings")
async def add_binding(body: AddBindingRequest, session: SessionContext = Depends(get_session)):
    result = await session.ensure_loaded()
    cfg = result.catalog.get(body.series_id)
    if cfg is None:
        raise HTTPException(status_code=404, detail=f"Unknown series '{body.series_id}'")
    try:
        session.builder.add(cfg.id, body.axis, cfg.color)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(_state_payload(session))


@builder_router.delete("/api/builder/bindings/{index}")
async def remove_binding(index: int, session: SessionContext = Depends(get_session)):
    try:
        session.builder.remove(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return JSONResponse(_state_payload(session))


@builder_router.patch("/api/builder/bindings/{index}")
async def reconfigure_binding(index: int, body: ReconfigureRequest,
                              session: SessionContext = Depends(get_session)):
    try:
        session.builder.reconfigure(index, body.field, body.value)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(_state_payload(session))


@builder_router.post("/api/builder/bindings/move")
async def move_binding(body: MoveRequest, session: SessionContext = Depends(get_session)):
    try:
        session.builder.move(body.from_index, body.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(_state_payload(session))


@builder_router.post("/api/builder/select")
async def select_binding(body: SelectRequest, session: SessionContext = Depends(get_session)):
    session.builder.select(body.series_id)
    return JSONResponse(_state_payload(session))


@builder_router.post("/api/builder/type")
async def set_builder_type(body: TypeRequest, session: SessionContext = Depends(get_session)):
    """Global type switch: every binding and future adds."""
    try:
        session.builder.bulk_set_type(body.render_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(_state_payload(session))


# =============================================================================
# CHART SURFACES
# =============================================================================

@builder_router.get("/api/charts/{surface}")
async def get_chart(
    surface: str,
    series: Optional[str] = None,
    chart_type: str = Query('line', alias='type'),
    window: Optional[RangeWindow] = Query(None, alias='range'),
    session: SessionContext = Depends(get_session),
):
    """Open (or re-open) a chart surface and return its spec."""
    await session.ensure_loaded(window)
    spec = await _open_surface(session, surface, series, chart_type)
    return JSONResponse(spec.to_dict())


@builder_router.get("/api/charts/{surface}/tooltip")
async def chart_tooltip(
    surface: str,
    time: int,
    series: Optional[str] = None,
    session: SessionContext = Depends(get_session),
):
    """Crosshair lookup: per trace, the value at or nearest `time`, formatted."""
    await session.ensure_loaded()
    spec = session.surfaces.spec(_surface_key(surface, series))
    if spec is None:
        spec = await _open_surface(session, surface, series, 'line')
    return JSONResponse(tooltip_for(spec, time))


@builder_router.delete("/api/charts/{surface}")
async def close_chart(surface: str, series: Optional[str] = None,
                      session: SessionContext = Depends(get_session)):
    if surface == 'mini' and not series:
        closed = session.surfaces.destroy_minis()
    else:
        closed = int(session.surfaces.destroy(_surface_key(surface, series)))
    return JSONResponse({'closed': closed})
