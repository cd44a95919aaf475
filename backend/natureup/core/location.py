from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .config import LOCATION_CACHE_MAX_AGE_SECONDS
from .types import Candidate, PreloadedLocation, utcnow


def is_fresh(
    snapshot: PreloadedLocation,
    now: Optional[datetime] = None,
    max_age_seconds: int = LOCATION_CACHE_MAX_AGE_SECONDS,
) -> bool:
    now = now or utcnow()
    return now - snapshot.loaded_at <= timedelta(seconds=max_age_seconds)


def fresh_or_none(
    snapshot: Optional[PreloadedLocation],
    now: Optional[datetime] = None,
    max_age_seconds: int = LOCATION_CACHE_MAX_AGE_SECONDS,
) -> Optional[PreloadedLocation]:
    """Return the preloaded location only while it is still usable."""
    if snapshot is None:
        return None
    if not is_fresh(snapshot, now=now, max_age_seconds=max_age_seconds):
        return None
    return snapshot


def preload(lat: float, lng: float, spots: list[Candidate], now: Optional[datetime] = None) -> PreloadedLocation:
    return PreloadedLocation(lat=lat, lng=lng, nearby_spots=list(spots), loaded_at=now or utcnow())
