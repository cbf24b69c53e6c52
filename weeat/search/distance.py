from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from weeat.menus.models import GeoCoordinate
from weeat.search.models import Candidate

EARTH_RADIUS_MILES = 3958.8
RADIUS_SLACK_MILES = 1.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_from(user_location: GeoCoordinate, geometry: Mapping[str, Any] | None) -> float:
    """Distance to a places ``geometry`` block, NaN when it has no usable location."""
    location = (geometry or {}).get("location")
    if not isinstance(location, Mapping):
        return math.nan
    try:
        lat = float(location["lat"])
        lng = float(location["lng"])
    except (KeyError, TypeError, ValueError):
        return math.nan
    return haversine_distance(user_location.lat, user_location.lng, lat, lng)


def filter_by_distance(candidates: Iterable[Candidate], radius: float) -> list[Candidate]:
    """Keep candidates within ``radius + 1`` miles, nearest first.

    NaN distances never pass. ``sorted`` is stable, so equal distances keep
    the provider's order.
    """
    bound = radius + RADIUS_SLACK_MILES
    kept = [
        candidate
        for candidate in candidates
        if not math.isnan(candidate.distance) and candidate.distance <= bound
    ]
    return sorted(kept, key=lambda candidate: candidate.distance)
