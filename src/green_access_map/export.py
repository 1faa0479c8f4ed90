"""Write GeoJSON feature records to FlatGeobuf files through GDAL."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import geopandas as gpd
import pandas as pd
import pyogrio
from shapely.geometry import shape


FGB_DRIVER = "FlatGeobuf"
CRS = "EPSG:4326"


def _column(values: List[Any]):
    present = [v for v in values if v is not None]
    # bool columns are written as integers
    if present and all(isinstance(v, int) for v in present):
        return pd.array([None if v is None else int(v) for v in values], dtype="Int64")
    if present and all(isinstance(v, (int, float)) for v in present):
        return pd.array([None if v is None else float(v) for v in values], dtype="Float64")

    def text(v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, (dict, list)):
            return json.dumps(v)
        return str(v)

    return pd.Series([text(v) for v in values], dtype=object)


def to_geodataframe(records: Iterable[Mapping[str, Any]]) -> gpd.GeoDataFrame:
    """Records without a geometry are left out."""

    rows = [r for r in records if r.get("geometry")]
    props: List[Dict[str, Any]] = [dict(r.get("properties") or {}) for r in rows]
    names: List[str] = []
    for p in props:
        for name in p:
            if name not in names:
                names.append(name)
    frame = pd.DataFrame(
        {name: _column([p.get(name) for p in props]) for name in names},
        index=pd.RangeIndex(len(rows)),
    )
    geometry = gpd.GeoSeries([shape(r["geometry"]) for r in rows], index=frame.index)
    return gpd.GeoDataFrame(frame, geometry=geometry, crs=CRS)


def write_fgb(
    records: Iterable[Mapping[str, Any]],
    path: Union[str, Path],
    *,
    name: Optional[str] = None,
    spatial_index: bool = True,
) -> int:
    """Write `records` to `path` and return how many were written.

    The packed R-tree is written unless `spatial_index` is false; readers
    then fall back to scanning every record.
    """

    frame = to_geodataframe(records)
    pyogrio.write_dataframe(
        frame,
        str(path),
        layer=name or Path(path).stem,
        driver=FGB_DRIVER,
        layer_options={"SPATIAL_INDEX": "YES" if spatial_index else "NO"},
    )
    return len(frame)
