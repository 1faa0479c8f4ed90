"""Hover and selection state for parcels, plus the routes of the selection."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from green_access_map.config import LINK_ATTRIBUTE
from green_access_map.geo import Feature, FeatureCollection, assign_ids
from green_access_map.loader import load_fgb
from green_access_map.session import SessionState
from green_access_map.surface import (
    PARCELS_SOURCE,
    ROUTE_POINTS_SOURCE,
    ROUTES_SOURCE,
    RenderSurface,
)
from green_access_map.viewport import FgbLoader


logger = logging.getLogger("gam.selection")

START_COLOR = "#f87171"
END_COLOR = "#FFCD93"


def _is_finite_pair(point: Any) -> bool:
    if not isinstance(point, (list, tuple)) or len(point) < 2:
        return False
    for v in point[:2]:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return False
        if not math.isfinite(v):
            return False
    return True


def _route_line(feature: Feature) -> Optional[List[Any]]:
    geometry = feature.geometry or {}
    coords = geometry.get("coordinates")
    kind = geometry.get("type")
    if kind == "MultiLineString":
        if not coords or not coords[0]:
            return None
        coords = coords[0]
    elif kind != "LineString":
        return None
    if not coords or len(coords) < 2:
        return None
    return coords


def route_endpoints(routes: Iterable[Feature]) -> FeatureCollection:
    """Start and end point features for every well-formed route.

    `routeIndex` is the position of the route in `routes`, counting routes
    that produced no points.
    """

    records: List[Dict[str, Any]] = []
    for idx, route in enumerate(routes):
        line = _route_line(route)
        if line is None:
            continue
        for point, color, kind in (
            (line[0], START_COLOR, "start"),
            (line[-1], END_COLOR, "end"),
        ):
            if not _is_finite_pair(point):
                continue
            records.append(
                {
                    "geometry": {
                        "type": "Point",
                        "coordinates": [point[0], point[1]],
                    },
                    "properties": {"color": color, "type": kind, "routeIndex": idx},
                }
            )
    return FeatureCollection(assign_ids(records))


class SelectionController:
    def __init__(
        self,
        state: SessionState,
        surface: RenderSurface,
        routes_url: str,
        loader: FgbLoader = load_fgb,
    ):
        self.state = state
        self.surface = surface
        self.routes_url = routes_url
        self.loader = loader

    def pointer_move(self, feature_id: int, key: Any = None) -> None:
        previous = self.state.hovered_id
        if previous is not None and previous != feature_id:
            self.surface.set_feature_state(PARCELS_SOURCE, previous, {"hover": False})
        self.state.hovered_id = feature_id
        self.state.hovered_key = key
        self.surface.set_feature_state(PARCELS_SOURCE, feature_id, {"hover": True})
        self.surface.set_cursor("pointer")

    def pointer_leave(self) -> None:
        if self.state.hovered_id is not None:
            self.surface.set_feature_state(
                PARCELS_SOURCE, self.state.hovered_id, {"hover": False}
            )
        self.state.hovered_id = None
        self.state.hovered_key = None
        self.surface.set_cursor("")

    def rebind(self, parcels: FeatureCollection) -> None:
        """Move hover and selection flags onto `parcels`, a fresh snapshot.

        Ids are synthesized per decode, so a flag left on an old id would
        land on whichever parcel now carries it. Flags follow the parcel's
        key instead and are dropped when the parcel is not in the snapshot.
        """

        def by_key(key: Any) -> Optional[Feature]:
            if not key:
                return None
            for f in parcels:
                if f.get(LINK_ATTRIBUTE) == key:
                    return f
            return None

        if self.state.hovered_id is not None:
            self.surface.remove_feature_state(
                PARCELS_SOURCE, self.state.hovered_id, "hover"
            )
            hovered = by_key(self.state.hovered_key)
            self.state.hovered_id = hovered.id if hovered is not None else None
            if hovered is None:
                self.state.hovered_key = None
            else:
                self.surface.set_feature_state(PARCELS_SOURCE, hovered.id, {"hover": True})

        if self.state.selected_key is not None:
            self._clear_selected_flag()
            selected = by_key(self.state.selected_key)
            self.state.selected_id = selected.id if selected is not None else None
            if selected is not None:
                self.surface.set_feature_state(
                    PARCELS_SOURCE, selected.id, {"selected": True}
                )

    def _publish_routes(self, routes: FeatureCollection) -> None:
        self.surface.set_source_data(ROUTES_SOURCE, routes)
        self.surface.set_source_data(ROUTE_POINTS_SOURCE, route_endpoints(routes))

    def _clear_selected_flag(self) -> None:
        if self.state.selected_id is not None:
            self.surface.remove_feature_state(
                PARCELS_SOURCE, self.state.selected_id, "selected"
            )

    def deselect(self) -> None:
        self._clear_selected_flag()
        self.state.selected_id = None
        self.state.selected_key = None
        # Routes still loading for the old selection must not be published.
        self.state.next_selection_seq()
        self._publish_routes(FeatureCollection.empty())

    async def click(self, feature: Feature) -> Optional[FeatureCollection]:
        """Toggle the selection of `feature` and publish its routes.

        Returns the published routes, or None when nothing was loaded.
        """

        key = feature.get(LINK_ATTRIBUTE)
        if not key:
            logger.debug("ignoring click on feature %s without %s", feature.id, LINK_ATTRIBUTE)
            return None

        if self.state.selected_id == feature.id and self.state.selected_key == key:
            self.deselect()
            return None

        self._clear_selected_flag()
        self.state.selected_id = feature.id
        self.state.selected_key = key
        self.surface.set_feature_state(PARCELS_SOURCE, feature.id, {"selected": True})
        seq = self.state.next_selection_seq()

        collection = await self.loader(self.routes_url, None)
        if seq != self.state.selection_seq:
            logger.debug("discarding routes for %s: selection moved on", key)
            self.state.bump("stale_routes")
            return None

        routes = collection.filter(lambda r: r.get(LINK_ATTRIBUTE) == key)
        self._publish_routes(routes)
        logger.debug("selected %s: %s routes", key, len(routes))
        return routes
