"""
Current conditions for a coordinate pair.
Provider: Open-Meteo (no API key).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from natureup.core.config import HTTP_TIMEOUT_SECONDS, OPEN_METEO_URL
from natureup.core.types import WeatherSnapshot

logger = logging.getLogger(__name__)

CURRENT_FIELDS = "temperature_2m,apparent_temperature,relative_humidity_2m,wind_speed_10m,weather_code"

# WMO weather interpretation codes, grouped.
WEATHER_CODES: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    61: "Rain",
    63: "Rain",
    65: "Heavy rain",
    71: "Snow",
    73: "Snow",
    75: "Heavy snow",
    80: "Rain showers",
    81: "Rain showers",
    82: "Heavy rain showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}


def _request(params: Dict[str, Any]) -> httpx.Response:
    with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS) as c:
        r = c.get(OPEN_METEO_URL, params=params)
        r.raise_for_status()
        return r


def describe(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    return WEATHER_CODES.get(int(code), "Unknown")


def get_current_weather(lat: float, lng: float, location: Optional[str] = None) -> Optional[WeatherSnapshot]:
    """Current weather at (lat, lng), or None when the provider is unavailable.

    Weather is optional context for a plan, so failures are logged and
    reported as None instead of raised.
    """
    params = {
        "latitude": lat,
        "longitude": lng,
        "current": CURRENT_FIELDS,
        "temperature_unit": "fahrenheit",
        "wind_speed_unit": "mph",
        "timezone": "auto",
    }
    try:
        data = _request(params).json()
    except (httpx.HTTPError, ValueError) as ex:
        logger.warning("weather lookup failed for %s,%s: %s", lat, lng, ex)
        return None

    current = data.get("current") if isinstance(data, dict) else None
    if not isinstance(current, dict) or current.get("temperature_2m") is None:
        logger.warning("weather response for %s,%s has no current temperature", lat, lng)
        return None
    return WeatherSnapshot(
        temperature=current["temperature_2m"],
        feels_like=current.get("apparent_temperature"),
        humidity=current.get("relative_humidity_2m"),
        wind_speed=current.get("wind_speed_10m"),
        description=describe(current.get("weather_code")),
        location=location,
    )
