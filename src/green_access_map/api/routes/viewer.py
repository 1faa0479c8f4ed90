from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from green_access_map.api.schemas import (
    ClickRequest,
    GeocodeResult,
    PointerLeaveRequest,
    PointerMoveRequest,
    ThresholdRequest,
    ViewportRequest,
)
from green_access_map.geo import Feature
from green_access_map.geocoder import geocode
from green_access_map.surface import PARCELS_LAYER
from green_access_map.viewer import MapViewer


router = APIRouter(tags=["viewer"])

_session = {"viewer": None}


def set_viewer(viewer: Optional[MapViewer]) -> None:
    _session["viewer"] = viewer


def current_viewer() -> Optional[MapViewer]:
    return _session["viewer"]


def get_viewer() -> MapViewer:
    viewer = current_viewer()
    if viewer is None:
        raise HTTPException(status_code=503, detail="viewer is not started")
    return viewer


def _resolve(
    viewer: MapViewer,
    layer: str,
    feature_id: Optional[int],
    lon: Optional[float],
    lat: Optional[float],
) -> Optional[Feature]:
    try:
        if feature_id is not None:
            return viewer.feature(layer, feature_id)
        if lon is not None and lat is not None:
            return viewer.pick(layer, lon, lat)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown layer {layer}")
    raise HTTPException(status_code=400, detail="feature_id or lon/lat is required")


@router.get("/state")
async def state():
    return get_viewer().snapshot()


@router.get("/sources/{name}")
async def source(name: str, filtered: bool = False):
    try:
        return JSONResponse(get_viewer().source_geojson(name, filtered=filtered))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown source {name}")


@router.post("/viewport")
async def viewport(payload: ViewportRequest):
    west, south, east, north = payload.bbox
    if east < west or north < south:
        raise HTTPException(status_code=400, detail="bbox is invalid")
    viewer = get_viewer()
    applied = await viewer.on_viewport_change((west, south, east, north))
    return {"applied": applied, "state": viewer.snapshot()}


@router.post("/pointer/move")
async def pointer_move(payload: PointerMoveRequest):
    viewer = get_viewer()
    feature = _resolve(viewer, payload.layer, payload.feature_id, payload.lon, payload.lat)
    viewer.pointer_move(payload.layer, feature, payload.x, payload.y)
    return viewer.snapshot()


@router.post("/pointer/leave")
async def pointer_leave(payload: PointerLeaveRequest):
    viewer = get_viewer()
    try:
        viewer.pointer_leave(payload.layer)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown layer {payload.layer}")
    return viewer.snapshot()


@router.post("/click")
async def click(payload: ClickRequest):
    viewer = get_viewer()
    feature = _resolve(viewer, PARCELS_LAYER, payload.feature_id, payload.lon, payload.lat)
    routes = await viewer.click(feature)
    return {
        "routes": len(routes) if routes is not None else 0,
        "state": viewer.snapshot(),
    }


@router.post("/threshold")
async def threshold(payload: ThresholdRequest):
    viewer = get_viewer()
    value = viewer.slide(payload.value)
    return {"value": value, "state": viewer.snapshot()}


@router.post("/playback/toggle")
async def playback_toggle():
    viewer = get_viewer()
    playing = viewer.toggle_playback()
    return {"playing": playing, "state": viewer.snapshot()}


@router.get("/geocode", response_model=list[GeocodeResult])
async def geocode_search(q: str = ""):
    viewer = get_viewer()
    return await geocode(
        q,
        url=viewer.config.geocoder_url,
        client=viewer.client,
        timeout=viewer.config.http_timeout_s,
    )
