"""
Nature spots near a coordinate pair.
Provider: OpenStreetMap Overpass API.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from natureup.core.config import HTTP_TIMEOUT_SECONDS, OVERPASS_URL, PLACE_SEARCH_LIMIT, PLACE_SEARCH_RADIUS_MILES
from natureup.core.errors import ProviderError
from natureup.core.geo import haversine_m
from natureup.core.types import Candidate

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.344

# (osm key, osm value) -> candidate type
PLACE_TAGS: List[Tuple[str, str, str]] = [
    ("leisure", "park", "park"),
    ("leisure", "nature_reserve", "nature_reserve"),
    ("leisure", "garden", "garden"),
    ("natural", "beach", "beach"),
    ("natural", "water", "water"),
    ("natural", "peak", "peak"),
    ("tourism", "viewpoint", "viewpoint"),
    ("route", "hiking", "trail"),
    ("highway", "path", "trail"),
]


def _request(query: str) -> httpx.Response:
    with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as c:
        r = c.post(OVERPASS_URL, data={"data": query})
        r.raise_for_status()
        return r


def build_query(lat: float, lng: float, radius_m: float) -> str:
    around = f"(around:{radius_m:.0f},{lat},{lng})"
    parts = []
    for key, value, _ in PLACE_TAGS:
        parts.append(f'node["{key}"="{value}"]["name"]{around};')
        parts.append(f'way["{key}"="{value}"]["name"]{around};')
    return f"[out:json][timeout:{int(HTTP_TIMEOUT_SECONDS)}];(" + "".join(parts) + ");out center;"


def _place_type(tags: Dict[str, Any]) -> Optional[str]:
    for key, value, place_type in PLACE_TAGS:
        if tags.get(key) == value:
            return place_type
    return None


def _difficulty(tags: Dict[str, Any]) -> Optional[str]:
    scale = tags.get("sac_scale")
    if not scale:
        return None
    if scale in ("hiking", "strolling"):
        return "easy"
    if scale == "mountain_hiking":
        return "moderate"
    return "challenging"


def parse_elements(elements: List[Dict[str, Any]], lat: float, lng: float) -> List[Candidate]:
    seen: set[str] = set()
    candidates: List[Candidate] = []
    for el in elements:
        el_lat = el.get("lat") or (el.get("center") or {}).get("lat")
        el_lng = el.get("lon") or (el.get("center") or {}).get("lon")
        tags = el.get("tags") or {}
        place_type = _place_type(tags)
        if el_lat is None or el_lng is None or place_type is None:
            continue
        key = f"{el.get('type')}-{el.get('id')}"
        if key in seen:
            continue
        seen.add(key)
        candidates.append(
            Candidate(
                name=tags.get("name") or tags.get("ref") or place_type.replace("_", " ").title(),
                lat=el_lat,
                lng=el_lng,
                type=place_type,
                difficulty=_difficulty(tags),
                distance_m=round(haversine_m(lat, lng, el_lat, el_lng), 1),
            )
        )
    return candidates


def search_nearby(
    lat: float,
    lng: float,
    radius_m: Optional[float] = None,
    limit: int = PLACE_SEARCH_LIMIT,
) -> List[Candidate]:
    """Up to ``limit`` named nature spots within ``radius_m``, closest first.

    Raises ProviderError when Overpass cannot be reached or answers badly.
    """
    radius_m = radius_m or PLACE_SEARCH_RADIUS_MILES * METERS_PER_MILE
    try:
        data = _request(build_query(lat, lng, radius_m)).json()
    except (httpx.HTTPError, ValueError) as ex:
        logger.error("place search failed for %s,%s: %s", lat, lng, ex)
        raise ProviderError(f"Place search failed: {ex}") from ex

    if not isinstance(data, dict):
        logger.error("place search for %s,%s returned %s, not an object", lat, lng, type(data).__name__)
        raise ProviderError("Place search returned an unexpected response")

    candidates = parse_elements(data.get("elements") or [], lat, lng)
    candidates.sort(key=lambda c: c.distance_m or 0.0)
    logger.info("found %d places near %s,%s", len(candidates), lat, lng)
    return candidates[:limit]
