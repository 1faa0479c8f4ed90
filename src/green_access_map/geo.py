from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


BBox = Tuple[float, float, float, float]


def _plain(obj: Any) -> Any:
    """Deep copy of a GeoJSON value into plain dicts and lists."""

    if isinstance(obj, Mapping):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(v) for v in obj]
    return obj


@dataclass(frozen=True)
class Feature:
    """One geometry + attribute record of a collection snapshot.

    Stays GeoJSON-shaped so snapshots can be handed to a renderer as-is.
    """

    id: int
    geometry: Optional[Dict[str, Any]]
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.geometry is not None:
            object.__setattr__(self, "geometry", _plain(self.geometry))
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(
                self, "properties", MappingProxyType(dict(self.properties or {}))
            )

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def to_geojson_feature(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": _plain(self.geometry),
            "properties": _plain(self.properties),
        }


@dataclass(frozen=True)
class FeatureCollection:
    """Immutable result of one decode call."""

    features: Tuple[Feature, ...] = ()

    @classmethod
    def empty(cls) -> "FeatureCollection":
        return cls(())

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def ids(self) -> List[int]:
        return [f.id for f in self.features]

    def by_id(self, feature_id: int) -> Optional[Feature]:
        for f in self.features:
            if f.id == feature_id:
                return f
        return None

    def filter(self, predicate: Callable[[Feature], bool]) -> "FeatureCollection":
        return FeatureCollection(tuple(f for f in self.features if predicate(f)))

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [f.to_geojson_feature() for f in self.features],
        }


def _explicit_id(raw: Any) -> Optional[int]:
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    if raw < 0:
        return None
    return raw


def assign_ids(records: Iterable[Mapping[str, Any]]) -> Tuple[Feature, ...]:
    """Build features from raw records, synthesizing missing identifiers.

    Explicit non-negative integer ids are kept (first occurrence wins). Every
    other record gets the next value of a counter local to this call, skipping
    values already claimed.
    """

    rows = list(records)
    claimed = set()
    explicit: List[Optional[int]] = []
    for rec in rows:
        rid = _explicit_id(rec.get("id"))
        if rid is not None and rid in claimed:
            rid = None
        if rid is not None:
            claimed.add(rid)
        explicit.append(rid)

    counter = 0
    out: List[Feature] = []
    for rec, rid in zip(rows, explicit):
        if rid is None:
            while counter in claimed:
                counter += 1
            rid = counter
            claimed.add(rid)
            counter += 1
        out.append(
            Feature(
                id=rid,
                geometry=rec.get("geometry"),
                properties=rec.get("properties") or {},
            )
        )
    return tuple(out)


def parse_bbox(raw: str) -> BBox:
    parts = [p.strip() for p in (raw or "").split(",")]
    if len(parts) != 4:
        raise ValueError("bbox must be west,south,east,north")
    west, south, east, north = [float(p) for p in parts]
    if east < west or north < south:
        raise ValueError("bbox is invalid")
    return (west, south, east, north)


def bbox_intersects(a: BBox, b: BBox) -> bool:
    return not (a[2] < b[0] or a[0] > b[2] or a[3] < b[1] or a[1] > b[3])


def _walk_coords(obj: Any) -> Iterable[Tuple[float, float]]:
    if isinstance(obj, (list, tuple)) and len(obj) >= 2 and all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in obj
    ):
        yield float(obj[0]), float(obj[1])
        return
    if isinstance(obj, (list, tuple)):
        for it in obj:
            yield from _walk_coords(it)


def geometry_bbox(geometry: Optional[Dict[str, Any]]) -> Optional[BBox]:
    if not geometry:
        return None
    if geometry.get("type") == "GeometryCollection":
        boxes = [geometry_bbox(g) for g in geometry.get("geometries") or []]
        boxes = [b for b in boxes if b is not None]
        if not boxes:
            return None
        return (
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        )
    coords = geometry.get("coordinates")
    if coords is None:
        return None
    xs: List[float] = []
    ys: List[float] = []
    for x, y in _walk_coords(coords):
        xs.append(x)
        ys.append(y)
    if not xs or not ys:
        return None
    return (min(xs), min(ys), max(xs), max(ys))
