"""Package initializer for `green_access_map`."""

from .geo import Feature, FeatureCollection
from .loader import load_fgb, load_geojson

__all__ = ["Feature", "FeatureCollection", "load_fgb", "load_geojson"]
