import logging

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from green_access_map.api.routes.viewer import router as viewer_router
from green_access_map.api.routes.viewer import current_viewer, set_viewer
from green_access_map.config import get_config
from green_access_map.geo import parse_bbox
from green_access_map.loader import load_fgb
from green_access_map.viewer import MapViewer


app = FastAPI(title="green_access_map")
app.include_router(viewer_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/parcels")
async def api_parcels(bbox: str = ""):
    """Parcels intersecting `bbox` as GeoJSON; the whole source without one.

    Stateless: the viewer session is not touched.
    """

    bbox_t = None
    if bbox:
        try:
            bbox_t = parse_bbox(bbox)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    config = get_config()
    collection = await load_fgb(
        config.parcels_url, bbox_t, timeout=config.http_timeout_s
    )
    return JSONResponse(collection.to_geojson())


@app.on_event("startup")
async def _start_viewer():
    logger = logging.getLogger("gam.startup")
    config = get_config()
    logger.info(
        "startup sources: parcels=%s routes=%s green_areas=%s",
        config.parcels_url,
        config.routes_url,
        config.green_areas_url,
    )
    viewer = MapViewer(config)
    await viewer.start()
    set_viewer(viewer)


@app.on_event("shutdown")
async def _stop_viewer():
    viewer = current_viewer()
    if viewer is not None:
        viewer.shutdown()
    set_viewer(None)
