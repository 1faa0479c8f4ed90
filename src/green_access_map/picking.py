from __future__ import annotations

import logging
from typing import Any, List, Optional

from shapely.errors import ShapelyError
from shapely.geometry import Point, shape
from shapely.strtree import STRtree

from green_access_map.geo import Feature, FeatureCollection


logger = logging.getLogger("gam.selection")


class FeatureIndex:
    """STRtree over one collection snapshot, for resolving pointer positions.

    Features whose geometry shapely cannot build are left out of the tree.
    """

    def __init__(self, collection: FeatureCollection, tolerance: float = 0.0):
        self.collection = collection
        self.tolerance = tolerance
        self._features: List[Feature] = []
        geoms: List[Any] = []
        for feature in collection:
            if not feature.geometry:
                continue
            try:
                geom = shape(feature.geometry)
            except (ShapelyError, ValueError, TypeError, KeyError, IndexError) as exc:
                logger.debug("feature %s has no usable geometry: %s", feature.id, exc)
                continue
            if geom.is_empty:
                continue
            self._features.append(feature)
            geoms.append(geom)
        self._tree: Optional[STRtree] = STRtree(geoms) if geoms else None

    def __len__(self) -> int:
        return len(self._features)

    def pick_all(self, lon: float, lat: float) -> List[Feature]:
        if self._tree is None:
            return []
        point = Point(lon, lat)
        if self.tolerance > 0:
            point = point.buffer(self.tolerance)
        hits = self._tree.query(point, predicate="intersects")
        # Later features draw on top.
        return [self._features[int(i)] for i in sorted(hits, reverse=True)]

    def pick(self, lon: float, lat: float) -> Optional[Feature]:
        hits = self.pick_all(lon, lat)
        return hits[0] if hits else None
