import json
import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    from green_access_map.config import reset_config_cache

    for name in list(os.environ):
        if name.startswith("GAM_"):
            monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


def square(x, y, size=1.0):
    return {
        "type": "Polygon",
        "coordinates": [
            [[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]
        ],
    }


def parcel(x, y, parcel_id, walk_time=None, **props):
    properties = {"parcel_id": parcel_id, **props}
    if walk_time is not None:
        properties["walk_time"] = walk_time
    return {"type": "Feature", "geometry": square(x, y), "properties": properties}


def route(coords, parcel_id, **props):
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": coords},
        "properties": {"parcel_id": parcel_id, **props},
    }


@pytest.fixture
def parcel_features():
    """A 5x4 grid of unit parcels; walk_time grows along x, some lack it."""

    out = []
    for i in range(5):
        for j in range(4):
            walk = None if (i + j) % 7 == 3 else 5 * i + j
            out.append(parcel(float(i), float(j), f"P{i}{j}", walk_time=walk, population=i * j))
    return out


@pytest.fixture
def route_features():
    return [
        route([[0.5, 0.5], [2.5, 2.5]], "P00", walk_time=4, walk_distance=310),
        route([[0.5, 0.5], [0.5, 3.5], [1.5, 3.5]], "P00", walk_time=7, walk_distance=1250),
        route([[1.5, 1.5], [4.5, 0.5]], "P11", walk_time=9, walk_distance=2400),
    ]


@pytest.fixture
def write_fgb_file(tmp_path):
    from green_access_map.export import write_fgb

    def _write(name, features, **kwargs):
        path = tmp_path / name
        write_fgb(features, path, **kwargs)
        return path

    return _write


@pytest.fixture
def write_geojson_file(tmp_path):
    def _write(name, features):
        path = tmp_path / name
        path.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def data_dir(tmp_path, write_fgb_file, write_geojson_file, parcel_features, route_features):
    write_fgb_file("parcels_barcelona.fgb", parcel_features)
    write_fgb_file("routes_barcelona.fgb", route_features)
    write_geojson_file(
        "green_areas_barcelona.geojson",
        [
            {
                "type": "Feature",
                "geometry": square(10.0, 10.0, 2.0),
                "properties": {"green_area_name": "Parc <Nord>", "green_area_m2": 4000},
            }
        ],
    )
    write_geojson_file("green_structures_barcelona.geojson", [])
    write_geojson_file(
        "boundary_barcelona.geojson",
        [{"type": "Feature", "geometry": square(-1.0, -1.0, 20.0), "properties": {}}],
    )
    return tmp_path
