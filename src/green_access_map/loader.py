"""Turn feature sources into immutable `FeatureCollection` snapshots.

Both loaders recover from every failure (bad status, network error,
malformed payload) by logging a warning and returning an empty collection,
so callers keep rendering whatever they showed before.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import math
from typing import Any, BinaryIO, Dict, List, Optional

import flatgeobuf
import httpx
import pyogrio
from flatgeobuf.constants import SIZE_PREFIX_LEN, magicbytes
from flatgeobuf.header_meta import HeaderMeta, from_byte_buffer
from shapely.geometry import shape

from green_access_map.geo import BBox, FeatureCollection, assign_ids, geometry_bbox
from green_access_map.sources import is_remote, local_path, read_all


logger = logging.getLogger("gam.decoder")

MAX_HEADER_SIZE = 10 * 1024 * 1024


def _read_header(handle: BinaryIO) -> HeaderMeta:
    if handle.read(len(magicbytes))[:3] != magicbytes[:3]:
        raise ValueError("not a FlatGeobuf file")
    size = int.from_bytes(handle.read(SIZE_PREFIX_LEN), "little")
    if size < 8 or size > MAX_HEADER_SIZE:
        raise ValueError(f"invalid header size {size}")
    header = from_byte_buffer(bytearray(handle.read(size)))
    handle.seek(0)
    return header


def _scan_fgb(handle: BinaryIO, bbox: Optional[BBox]) -> List[Dict[str, Any]]:
    frame = pyogrio.read_dataframe(handle, bbox=tuple(bbox) if bbox else None)
    return json.loads(frame.to_json(na="drop", drop_id=True))["features"]


def _decode_fgb(handle: BinaryIO, bbox: Optional[BBox]) -> List[Dict[str, Any]]:
    header = _read_header(handle)
    # Files written without an index (or without a feature count) are
    # scanned in full through GDAL, keeping records whose envelope hits bbox.
    if header.index_node_size == 0 or header.features_count == 0:
        logger.debug("no spatial index, scanning every record")
        return _scan_fgb(handle, bbox)
    # With a bbox only the matching index nodes and feature ranges are read.
    doc = flatgeobuf.load(handle, bbox=tuple(bbox) if bbox else None)
    return list(doc["features"])


def _decode_fgb_file(path: str, bbox: Optional[BBox]) -> List[Dict[str, Any]]:
    with open(path, "rb") as handle:
        return _decode_fgb(handle, bbox)


def _well_formed(record: Dict[str, Any]) -> bool:
    geometry = record.get("geometry")
    if not geometry:
        return True
    try:
        shape(geometry)
    except Exception:  # shapely raises several types for bad coordinate arrays
        return False
    box = geometry_bbox(geometry)
    return box is None or all(math.isfinite(v) for v in box)


def _features(records: List[Dict[str, Any]], url: str) -> FeatureCollection:
    kept = [r for r in records if _well_formed(r)]
    if len(kept) < len(records):
        logger.debug("skipped %s malformed records from %s", len(records) - len(kept), url)
    return FeatureCollection(assign_ids(kept))


async def load_fgb(
    url: str,
    bbox: Optional[BBox] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> FeatureCollection:
    """Decode a FlatGeobuf source, optionally restricted to `bbox`."""

    try:
        if is_remote(url):
            body = await read_all(url, client=client, timeout=timeout)
            records = await asyncio.to_thread(_decode_fgb, io.BytesIO(body), bbox)
        else:
            records = await asyncio.to_thread(_decode_fgb_file, local_path(url), bbox)
    except Exception as exc:
        logger.warning("failed to load %s: %s", url, exc)
        return FeatureCollection.empty()

    collection = _features(records, url)
    logger.debug("loaded %s features from %s (bbox=%s)", len(collection), url, bbox)
    return collection


def _geojson_records(doc: Any) -> List[Dict[str, Any]]:
    if isinstance(doc, list):
        return [f for f in doc if isinstance(f, dict)]
    if not isinstance(doc, dict):
        raise ValueError("GeoJSON document must be an object")
    kind = doc.get("type")
    if kind == "FeatureCollection":
        return [f for f in doc.get("features") or [] if isinstance(f, dict)]
    if kind == "Feature":
        return [doc]
    if kind:
        return [{"geometry": doc, "properties": {}}]
    raise ValueError("GeoJSON document has no type")


async def load_geojson(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> FeatureCollection:
    try:
        raw = await read_all(url, client=client, timeout=timeout)
        records = _geojson_records(json.loads(raw.decode("utf-8")))
    except Exception as exc:
        logger.warning("failed to load %s: %s", url, exc)
        return FeatureCollection.empty()
    return _features(records, url)
