import pytest
from fastapi.testclient import TestClient

from green_access_map.api.app import app
from green_access_map.config import reset_config_cache


@pytest.fixture
def client(data_dir, monkeypatch):
    monkeypatch.setenv("GAM_DATA_DIR", str(data_dir))
    monkeypatch.setenv("GAM_GEOCODER_URL", "https://geo.example/search")
    reset_config_cache()
    with TestClient(app) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_parcels_by_bbox(client, parcel_features):
    r = client.get("/api/parcels", params={"bbox": "0.2,0.2,0.8,0.8"})
    assert r.status_code == 200
    data = r.json()
    assert data["type"] == "FeatureCollection"
    assert [f["properties"]["parcel_id"] for f in data["features"]] == ["P00"]

    r = client.get("/api/parcels")
    assert len(r.json()["features"]) == len(parcel_features)


def test_parcels_bad_bbox(client):
    r = client.get("/api/parcels", params={"bbox": "1,2,3"})
    assert r.status_code == 400
    r = client.get("/api/parcels", params={"bbox": "3,2,1,4"})
    assert r.status_code == 400


def test_state_after_startup(client, parcel_features):
    state = client.get("/api/state").json()
    assert state["mode"] == "idle"
    assert state["sources"]["parcels"] == len(parcel_features)
    assert state["threshold"] == 42


def test_unknown_source_is_404(client):
    assert client.get("/api/sources/nope").status_code == 404
    r = client.get("/api/sources/boundary")
    assert r.status_code == 200
    assert len(r.json()["features"]) == 1


def test_click_toggle_by_position(client):
    r = client.post("/api/click", json={"lon": 0.5, "lat": 0.5})
    assert r.status_code == 200
    body = r.json()
    assert body["routes"] == 2
    assert body["state"]["mode"] == "selected"
    assert body["state"]["sources"]["route-points"] == 4
    selected = body["state"]["selected_id"]

    r = client.post("/api/click", json={"feature_id": selected})
    body = r.json()
    assert body["state"]["mode"] == "idle"
    assert body["state"]["sources"]["routes-selected"] == 0
    assert body["state"]["sources"]["route-points"] == 0


def test_click_requires_a_target(client):
    assert client.post("/api/click", json={}).status_code == 400


def test_pointer_move_and_leave(client):
    r = client.post(
        "/api/pointer/move",
        json={"layer": "parcels-3d", "lon": 1.5, "lat": 0.5, "x": 1270, "y": 790},
    )
    assert r.status_code == 200
    state = r.json()
    assert state["hovered_id"] is not None
    assert state["tooltip"]["classes"] == "tooltip tooltip-parcel"
    left, top = state["tooltip"]["position"]
    assert left < 1270 and top < 790

    state = client.post("/api/pointer/leave", json={"layer": "parcels-3d"}).json()
    assert state["hovered_id"] is None
    assert state["tooltip"]["visible"] is False

    assert client.post("/api/pointer/leave", json={"layer": "nope"}).status_code == 404


def test_viewport(client):
    r = client.post("/api/viewport", json={"bbox": [0.2, 0.2, 1.5, 0.8]})
    assert r.status_code == 200
    assert r.json()["applied"] is True
    assert r.json()["state"]["sources"]["parcels"] == 2

    assert client.post("/api/viewport", json={"bbox": [1, 2, 3]}).status_code == 422
    assert client.post("/api/viewport", json={"bbox": [3, 2, 1, 4]}).status_code == 400


def test_threshold_slider_updates_displayed_value(client):
    r = client.post("/api/threshold", json={"value": 77})
    assert r.status_code == 200
    assert r.json()["value"] == 42
    assert r.json()["state"]["slider_value"] == 42


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
def test_threshold_rejects_non_finite_values(client, raw):
    r = client.post(
        "/api/threshold",
        content=f'{{"value": {raw}}}',
        headers={"content-type": "application/json"},
    )
    assert r.status_code == 422
    assert client.get("/api/state").json()["threshold"] == 42


def test_playback_toggle(client):
    r = client.post("/api/playback/toggle")
    assert r.json()["playing"] is True
    assert r.json()["state"]["threshold"] == 1
    r = client.post("/api/playback/toggle")
    assert r.json()["playing"] is False


def test_geocode_short_query(client):
    r = client.get("/api/geocode", params={"q": "ab"})
    assert r.status_code == 200
    assert r.json() == []
