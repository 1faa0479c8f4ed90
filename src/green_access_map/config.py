from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


THRESHOLD_MIN = 1
THRESHOLD_MAX = 42
MISSING_SENTINEL = 999
PLAYBACK_PIVOT = 20
LINK_ATTRIBUTE = "parcel_id"
THRESHOLD_ATTRIBUTE = "walk_time"

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class ViewerConfig:
    """Where the viewer's sources live and how it paces interaction.

    Source locations default to files under `GAM_DATA_DIR`; any of them can
    be pointed at an HTTP(S) URL instead.
    """

    parcels_url: str
    routes_url: str
    green_areas_url: str
    green_structures_url: str
    boundary_url: str
    slider_debounce_ms: int = 150
    playback_tick_ms: int = 500
    http_timeout_s: Optional[float] = None
    geocoder_url: str = NOMINATIM_URL
    host_width: int = 1280
    host_height: int = 800

    @classmethod
    def from_env(cls) -> "ViewerConfig":
        data_dir = _env_str("GAM_DATA_DIR", "./data/barcelona").rstrip("/")
        return cls(
            parcels_url=_env_str("GAM_PARCELS_URL", f"{data_dir}/parcels_barcelona.fgb"),
            routes_url=_env_str("GAM_ROUTES_URL", f"{data_dir}/routes_barcelona.fgb"),
            green_areas_url=_env_str(
                "GAM_GREEN_AREAS_URL", f"{data_dir}/green_areas_barcelona.geojson"
            ),
            green_structures_url=_env_str(
                "GAM_GREEN_STRUCTURES_URL", f"{data_dir}/green_structures_barcelona.geojson"
            ),
            boundary_url=_env_str("GAM_BOUNDARY_URL", f"{data_dir}/boundary_barcelona.geojson"),
            slider_debounce_ms=_env_int("GAM_SLIDER_DEBOUNCE_MS", 150),
            playback_tick_ms=_env_int("GAM_PLAYBACK_TICK_MS", 500),
            http_timeout_s=_env_float("GAM_HTTP_TIMEOUT_S", None),
            geocoder_url=_env_str("GAM_GEOCODER_URL", NOMINATIM_URL),
            host_width=_env_int("GAM_HOST_WIDTH", 1280),
            host_height=_env_int("GAM_HOST_HEIGHT", 800),
        )


@lru_cache(maxsize=1)
def get_config() -> ViewerConfig:
    return ViewerConfig.from_env()


def reset_config_cache() -> None:
    """Test helper to force env re-read."""

    get_config.cache_clear()
