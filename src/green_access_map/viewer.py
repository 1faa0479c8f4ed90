"""One map viewer session: sources, controllers and the shared tooltip."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from green_access_map.config import (
    LINK_ATTRIBUTE,
    THRESHOLD_MAX,
    THRESHOLD_MIN,
    ViewerConfig,
    get_config,
)
from green_access_map.geo import BBox, Feature, FeatureCollection
from green_access_map.loader import load_fgb, load_geojson
from green_access_map.picking import FeatureIndex
from green_access_map.selection import SelectionController
from green_access_map.session import SessionState
from green_access_map.surface import (
    BOUNDARY_SOURCE,
    GREEN_AREAS_LAYER,
    GREEN_AREAS_SOURCE,
    GREEN_STRUCTURES_SOURCE,
    LAYER_SOURCES,
    PARCELS_LAYER,
    ROUTE_POINTS_SOURCE,
    ROUTES_LAYER,
    ROUTES_SOURCE,
    SOURCES,
    MemorySurface,
)
from green_access_map.threshold import Playback, ThresholdController, walk_time_filter
from green_access_map.tooltip import Rect, TooltipSlot, park_tooltip, parcel_tooltip, route_tooltip
from green_access_map.viewport import ViewportQueryController


logger = logging.getLogger("gam.startup")

# Lines are hard to hit exactly; pick them within ~10 m.
LINE_PICK_TOLERANCE = 1e-4


class MapViewer:
    def __init__(
        self,
        config: Optional[ViewerConfig] = None,
        surface: Optional[MemorySurface] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self.surface = surface if surface is not None else MemorySurface()
        self.client = client
        self.state = SessionState()
        self.selection = SelectionController(
            self.state, self.surface, self.config.routes_url, self._load_fgb
        )
        self.viewport = ViewportQueryController(
            self.state,
            self.surface,
            self.config.parcels_url,
            self._load_fgb,
            on_publish=self.selection.rebind,
        )
        self.threshold = ThresholdController(
            self.state, self.surface, self.config.slider_debounce_ms
        )
        self.playback = Playback(self.state, self.threshold, self.config.playback_tick_ms)
        self.tooltip = TooltipSlot(
            Rect(0, 0, self.config.host_width, self.config.host_height)
        )
        self._indexes: Dict[str, FeatureIndex] = {}
        self.started = False

    async def _load_fgb(self, url: str, bbox: Optional[BBox] = None) -> FeatureCollection:
        return await load_fgb(
            url, bbox, client=self.client, timeout=self.config.http_timeout_s
        )

    async def start(self) -> None:
        """Load the static sources once and publish the first parcel snapshot."""

        for source, url in (
            (GREEN_AREAS_SOURCE, self.config.green_areas_url),
            (GREEN_STRUCTURES_SOURCE, self.config.green_structures_url),
            (BOUNDARY_SOURCE, self.config.boundary_url),
        ):
            collection = await load_geojson(
                url, client=self.client, timeout=self.config.http_timeout_s
            )
            self.surface.set_source_data(source, collection)

        self.surface.set_source_data(ROUTES_SOURCE, FeatureCollection.empty())
        self.surface.set_source_data(ROUTE_POINTS_SOURCE, FeatureCollection.empty())

        # The layer starts unfiltered while the slider reads its minimum.
        self.state.threshold = THRESHOLD_MAX
        self.state.slider_value = THRESHOLD_MIN
        self.surface.set_filter(PARCELS_LAYER, walk_time_filter(THRESHOLD_MAX))

        await self.viewport.initial_load()
        self.started = True
        logger.info(
            "viewer started: %s parcels from %s",
            len(self.surface.source(LAYER_SOURCES[PARCELS_LAYER])),
            self.config.parcels_url,
        )

    def shutdown(self) -> None:
        self.threshold.cancel()
        if self.state.playing:
            self.playback.stop()

    def _index(self, layer: str) -> FeatureIndex:
        source = LAYER_SOURCES[layer]
        collection = self.surface.source(source)
        cached = self._indexes.get(source)
        if cached is None or cached.collection is not collection:
            tolerance = LINE_PICK_TOLERANCE if layer == ROUTES_LAYER else 0.0
            cached = FeatureIndex(collection, tolerance=tolerance)
            self._indexes[source] = cached
        return cached

    def pick(self, layer: str, lon: float, lat: float) -> Optional[Feature]:
        if layer not in LAYER_SOURCES:
            raise KeyError(layer)
        return self._index(layer).pick(lon, lat)

    def feature(self, layer: str, feature_id: int) -> Optional[Feature]:
        if layer not in LAYER_SOURCES:
            raise KeyError(layer)
        return self.surface.source(LAYER_SOURCES[layer]).by_id(feature_id)

    async def on_viewport_change(self, bbox: BBox) -> bool:
        return await self.viewport.on_viewport_change(bbox)

    def pointer_move(
        self, layer: str, feature: Optional[Feature], x: float = 0, y: float = 0
    ) -> None:
        if layer not in LAYER_SOURCES:
            raise KeyError(layer)
        if feature is None:
            self.pointer_leave(layer)
            return
        if layer == PARCELS_LAYER:
            self.selection.pointer_move(feature.id, feature.get(LINK_ATTRIBUTE))
            self.tooltip.show(x, y, parcel_tooltip(feature.properties), "parcel")
        elif layer == GREEN_AREAS_LAYER:
            self.tooltip.show(x, y, park_tooltip(feature.properties), "park")
        else:
            self.surface.set_cursor("pointer")
            self.tooltip.show(x, y, route_tooltip(feature.properties), "route")

    def pointer_leave(self, layer: str) -> None:
        if layer not in LAYER_SOURCES:
            raise KeyError(layer)
        if layer == PARCELS_LAYER:
            self.selection.pointer_leave()
        elif layer == ROUTES_LAYER:
            self.surface.set_cursor("")
        self.tooltip.hide()

    async def click(self, feature: Optional[Feature]) -> Optional[FeatureCollection]:
        if feature is None:
            return None
        return await self.selection.click(feature)

    def slide(self, value: Any) -> int:
        return self.threshold.slide(value)

    def toggle_playback(self) -> bool:
        return self.playback.toggle()

    def source_geojson(self, name: str, filtered: bool = False) -> Dict[str, Any]:
        if name not in SOURCES:
            raise KeyError(name)
        if filtered:
            for layer, source in LAYER_SOURCES.items():
                if source == name:
                    return self.surface.visible_features(layer).to_geojson()
        return self.surface.source(name).to_geojson()

    def snapshot(self) -> Dict[str, Any]:
        out = self.state.snapshot()
        out["started"] = self.started
        out["cursor"] = self.surface.cursor
        out["tooltip"] = self.tooltip.snapshot()
        out["filters"] = dict(self.surface.filters)
        out["sources"] = {name: len(self.surface.source(name)) for name in SOURCES}
        out["hovered"] = self.surface.feature_state.flagged(
            LAYER_SOURCES[PARCELS_LAYER], "hover"
        )
        out["selected"] = self.surface.feature_state.flagged(
            LAYER_SOURCES[PARCELS_LAYER], "selected"
        )
        return out
