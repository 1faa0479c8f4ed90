"""Address search against a Nominatim-compatible endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from green_access_map.config import NOMINATIM_URL


logger = logging.getLogger("gam.geocoder")

MIN_QUERY_LENGTH = 3
CITY_SUFFIX = " Barcelona"
CITY_VIEWBOX = "2.0524,41.3201,2.2281,41.4695"
RESULT_LIMIT = 5


def build_params(query: str) -> Dict[str, Any]:
    return {
        "format": "json",
        "q": f"{query}{CITY_SUFFIX}",
        "limit": RESULT_LIMIT,
        "bounded": 1,
        "viewbox": CITY_VIEWBOX,
    }


def _result(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        return {
            "display_name": str(item.get("display_name") or ""),
            "lon": float(item["lon"]),
            "lat": float(item["lat"]),
        }
    except (KeyError, TypeError, ValueError):
        return None


async def geocode(
    query: str,
    *,
    url: str = NOMINATIM_URL,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Return up to five `{display_name, lon, lat}` matches inside the city."""

    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []

    owned = client is None
    if owned:
        client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)
    try:
        response = await client.get(
            url,
            params=build_params(query),
            headers={"User-Agent": "green-access-map/0.1"},
        )
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("geocoding %r failed: %s", query, exc)
        return []
    finally:
        if owned:
            await client.aclose()

    if not isinstance(data, list):
        logger.warning("geocoding %r returned a non-list payload", query)
        return []
    results = [_result(item) for item in data if isinstance(item, dict)]
    return [r for r in results if r is not None]
