from green_access_map.config import get_config, reset_config_cache


def test_defaults_point_at_the_data_dir():
    cfg = get_config()
    assert cfg.parcels_url == "./data/barcelona/parcels_barcelona.fgb"
    assert cfg.routes_url == "./data/barcelona/routes_barcelona.fgb"
    assert cfg.boundary_url == "./data/barcelona/boundary_barcelona.geojson"
    assert cfg.slider_debounce_ms == 150
    assert cfg.playback_tick_ms == 500
    assert cfg.http_timeout_s is None
    assert (cfg.host_width, cfg.host_height) == (1280, 800)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GAM_DATA_DIR", "/srv/maps/")
    monkeypatch.setenv("GAM_ROUTES_URL", "https://cdn.example/routes.fgb")
    monkeypatch.setenv("GAM_SLIDER_DEBOUNCE_MS", "75")
    monkeypatch.setenv("GAM_HTTP_TIMEOUT_S", "2.5")
    monkeypatch.setenv("GAM_PLAYBACK_TICK_MS", "not-a-number")
    reset_config_cache()

    cfg = get_config()
    assert cfg.parcels_url == "/srv/maps/parcels_barcelona.fgb"
    assert cfg.routes_url == "https://cdn.example/routes.fgb"
    assert cfg.slider_debounce_ms == 75
    assert cfg.http_timeout_s == 2.5
    assert cfg.playback_tick_ms == 500


def test_config_is_cached_until_reset(monkeypatch):
    first = get_config()
    monkeypatch.setenv("GAM_HOST_WIDTH", "640")
    assert get_config() is first
    reset_config_cache()
    assert get_config().host_width == 640
