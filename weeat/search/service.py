from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

import requests
import structlog

from weeat.core.config import settings
from weeat.core.errors import ExternalAPIError
from weeat.db.base import MenuRepository
from weeat.menus.models import GeoCoordinate, RestaurantLocation
from weeat.search.distance import distance_from, filter_by_distance
from weeat.search.models import Candidate
from weeat.search.places import GooglePlacesClient

logger = structlog.get_logger(__name__)

METERS_PER_MILE = 1609.34


def photo_proxy_url(photo_reference: str | None, max_width: int | None = None) -> str:
    if not photo_reference:
        return ""
    query = urlencode(
        {
            "photoreference": photo_reference,
            "maxwidth": max_width or settings.places_photo_max_width,
        }
    )
    return f"{settings.public_base_url.rstrip('/')}/photo?{query}"


def format_candidate(result: dict[str, Any], user_location: GeoCoordinate) -> Candidate:
    photos = result.get("photos") or []
    photo_reference = photos[0].get("photo_reference") if photos else None
    return Candidate(
        name=result.get("name") or "",
        vicinity=result.get("vicinity") or result.get("formatted_address") or "",
        geometry=result.get("geometry"),
        distance=distance_from(user_location, result.get("geometry")),
        icon=result.get("icon"),
        photo_url=photo_proxy_url(photo_reference),
    )


def search_restaurants(
    places: GooglePlacesClient,
    location: str,
    radius: float,
    keyword: str,
    user_location: GeoCoordinate,
) -> list[Candidate]:
    """Nearby restaurants for ``keyword`` within ``radius`` miles of the user, nearest first.

    A failing places call is logged and gives an empty result.
    """
    try:
        data = places.nearby_search(location, radius * METERS_PER_MILE, keyword)
    except (ExternalAPIError, requests.RequestException) as exc:
        logger.warning("restaurant_search_failed", keyword=keyword, error=str(exc))
        return []

    results = data.get("results") or []
    candidates = [format_candidate(result, user_location) for result in results]
    filtered = filter_by_distance(candidates, radius)
    logger.info(
        "restaurant_search_completed",
        keyword=keyword,
        provider_results=len(results),
        returned=len(filtered),
    )
    return filtered


def fetch_keywords(repository: MenuRepository, user_id: str | None) -> list[str]:
    keywords = [restaurant.name for restaurant in repository.list_restaurants() if restaurant.name]
    if user_id:
        keywords.extend(
            menu.restaurant_name for menu in repository.list_created_menus(user_id)
        )
    return keywords


def populate_restaurants(
    places: GooglePlacesClient,
    repository: MenuRepository,
    lat: float,
    lng: float,
    radius: float,
    keywords: list[str],
) -> int:
    """Store nearby restaurants for every keyword; returns how many were added."""
    added = 0
    for keyword in keywords:
        for result in places.nearby_restaurants(lat, lng, radius, keyword):
            location = result["geometry"]["location"]
            repository.add_restaurant(
                result["name"],
                RestaurantLocation(
                    address=result.get("vicinity") or "",
                    coordinates=GeoCoordinate(lat=location["lat"], lng=location["lng"]),
                ),
            )
            added += 1
        logger.info("restaurants_populated", keyword=keyword, total=added)
    return added
