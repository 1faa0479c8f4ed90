"""The boundary to the rendering engine.

Styling effects never touch feature payloads: hover/selection flags go
through a feature-state store keyed by `(source, id)` and visibility through
a declarative filter expression per layer.
"""

from __future__ import annotations

import operator
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from green_access_map.geo import Feature, FeatureCollection


PARCELS_SOURCE = "parcels"
ROUTES_SOURCE = "routes-selected"
ROUTE_POINTS_SOURCE = "route-points"
GREEN_AREAS_SOURCE = "green_areas"
GREEN_STRUCTURES_SOURCE = "green_structures"
BOUNDARY_SOURCE = "boundary"

SOURCES = (
    PARCELS_SOURCE,
    ROUTES_SOURCE,
    ROUTE_POINTS_SOURCE,
    GREEN_AREAS_SOURCE,
    GREEN_STRUCTURES_SOURCE,
    BOUNDARY_SOURCE,
)

PARCELS_LAYER = "parcels-3d"
GREEN_AREAS_LAYER = "green-areas-fill"
ROUTES_LAYER = "routes-line"

LAYER_SOURCES = {
    PARCELS_LAYER: PARCELS_SOURCE,
    GREEN_AREAS_LAYER: GREEN_AREAS_SOURCE,
    ROUTES_LAYER: ROUTES_SOURCE,
}


class RenderSurface(Protocol):
    def set_source_data(self, source: str, collection: FeatureCollection) -> None: ...

    def set_feature_state(
        self, source: str, feature_id: int, state: Mapping[str, bool]
    ) -> None: ...

    def remove_feature_state(
        self, source: str, feature_id: int, key: Optional[str] = None
    ) -> None: ...

    def set_filter(self, layer: str, expression: Optional[list]) -> None: ...

    def set_cursor(self, cursor: str) -> None: ...


class FeatureStateStore:
    def __init__(self) -> None:
        self._states: Dict[Tuple[str, int], Dict[str, bool]] = {}

    def set(self, source: str, feature_id: int, state: Mapping[str, bool]) -> None:
        self._states.setdefault((source, feature_id), {}).update(state)

    def remove(self, source: str, feature_id: int, key: Optional[str] = None) -> None:
        if key is None:
            self._states.pop((source, feature_id), None)
            return
        current = self._states.get((source, feature_id))
        if current is None:
            return
        current.pop(key, None)
        if not current:
            del self._states[(source, feature_id)]

    def get(self, source: str, feature_id: int) -> Dict[str, bool]:
        return dict(self._states.get((source, feature_id), {}))

    def flagged(self, source: str, key: str) -> List[int]:
        return sorted(
            fid for (src, fid), state in self._states.items()
            if src == source and state.get(key)
        )


_COMPARISONS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def evaluate(expression: Any, properties: Mapping[str, Any]) -> Any:
    """Evaluate a style expression against one feature's attributes."""

    if not isinstance(expression, list) or not expression:
        return expression
    op, args = expression[0], expression[1:]
    if op == "literal":
        return args[0] if args else None
    if op == "get":
        return properties.get(args[0])
    if op == "has":
        return args[0] in properties
    if op == "coalesce":
        for arg in args:
            value = evaluate(arg, properties)
            if value is not None:
                return value
        return None
    if op in _COMPARISONS:
        left = evaluate(args[0], properties)
        right = evaluate(args[1], properties)
        if op in ("==", "!="):
            return _COMPARISONS[op](left, right)
        if left is None or right is None:
            return False
        try:
            return _COMPARISONS[op](left, right)
        except TypeError:
            return False
    if op == "all":
        return all(evaluate(a, properties) for a in args)
    if op == "any":
        return any(evaluate(a, properties) for a in args)
    if op == "!":
        return not evaluate(args[0], properties)
    raise ValueError(f"unsupported expression operator {op!r}")


class MemorySurface:
    """In-process rendering surface.

    Records every call in `events` and can report what a layer would show.
    """

    def __init__(self) -> None:
        self.sources: Dict[str, FeatureCollection] = {}
        self.feature_state = FeatureStateStore()
        self.filters: Dict[str, Optional[list]] = {}
        self.cursor = ""
        self.events: List[Tuple[Any, ...]] = []

    def set_source_data(self, source: str, collection: FeatureCollection) -> None:
        self.sources[source] = collection
        self.events.append(("data", source, len(collection)))

    def set_feature_state(
        self, source: str, feature_id: int, state: Mapping[str, bool]
    ) -> None:
        self.feature_state.set(source, feature_id, state)
        self.events.append(("state", source, feature_id, dict(state)))

    def remove_feature_state(
        self, source: str, feature_id: int, key: Optional[str] = None
    ) -> None:
        self.feature_state.remove(source, feature_id, key)
        self.events.append(("remove_state", source, feature_id, key))

    def set_filter(self, layer: str, expression: Optional[list]) -> None:
        self.filters[layer] = expression
        self.events.append(("filter", layer, expression))

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor
        self.events.append(("cursor", cursor))

    def source(self, name: str) -> FeatureCollection:
        return self.sources.get(name, FeatureCollection.empty())

    def visible_features(self, layer: str) -> FeatureCollection:
        collection = self.source(LAYER_SOURCES.get(layer, layer))
        expression = self.filters.get(layer)
        if expression is None:
            return collection

        def admitted(feature: Feature) -> bool:
            return bool(evaluate(expression, feature.properties))

        return collection.filter(admitted)
