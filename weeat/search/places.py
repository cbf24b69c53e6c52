from __future__ import annotations

from typing import Any

import requests
import structlog

from weeat.core.config import settings
from weeat.core.errors import ExternalAPIError
from weeat.core.retry import raise_for_retryable_status, retryable
from weeat.menus.models import GeoCoordinate

logger = structlog.get_logger(__name__)

NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

PLACE_TYPE = "restaurant"


@retryable("google_places")
def _get(
    url: str,
    *,
    params: dict[str, Any],
    timeout: float,
    stream: bool = False,
) -> requests.Response:
    response = requests.get(url, params=params, timeout=timeout, stream=stream)
    try:
        raise_for_retryable_status(response, "google_places")
    except ExternalAPIError:
        response.close()
        raise
    return response


class GooglePlacesClient:
    def __init__(self, api_key: str | None = None, timeout: float | None = None) -> None:
        self.api_key = api_key or settings.google_places_api_key
        self.timeout = timeout or settings.places_timeout

    def nearby_search(
        self,
        location: str,
        radius: float | str,
        keyword: str | None = None,
    ) -> dict[str, Any]:
        """Run a nearby search and return the raw places payload."""
        params = self._params(
            location=location,
            radius=radius,
            keyword=keyword,
            type=PLACE_TYPE,
        )
        logger.info("places_nearby_search", location=location, radius=radius, keyword=keyword)
        return _get(NEARBY_SEARCH_URL, params=params, timeout=self.timeout).json()

    def text_search(self, query: str) -> dict[str, Any]:
        params = self._params(query=query)
        logger.info("places_text_search", query=query)
        return _get(TEXT_SEARCH_URL, params=params, timeout=self.timeout).json()

    def fetch_photo(
        self, photo_reference: str, max_width: int | None = None
    ) -> requests.Response:
        """Open a streamed response for a place photo.

        The caller owns the response and must close it.
        """
        params = self._params(
            photoreference=photo_reference,
            maxwidth=max_width or settings.places_photo_max_width,
        )
        return _get(PHOTO_URL, params=params, timeout=self.timeout, stream=True)

    def geocode(self, address: str) -> GeoCoordinate:
        params = self._params(address=address)
        data = _get(GEOCODE_URL, params=params, timeout=self.timeout).json()
        status = data.get("status")
        if status != "OK":
            raise ExternalAPIError("google_geocoding", f"Geocoding API error: {status}")
        location = data["results"][0]["geometry"]["location"]
        return GeoCoordinate(lat=location["lat"], lng=location["lng"])

    def nearby_restaurants(
        self, lat: float, lng: float, radius: float, keyword: str
    ) -> list[dict[str, Any]]:
        """Nearby restaurants as a list, raising unless the provider reports success."""
        data = self.nearby_search(f"{lat},{lng}", radius, keyword)
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise ExternalAPIError(
                "google_places",
                f"Error fetching data from Google Places: {status}",
            )
        return data.get("results", [])

    def _params(self, **params: Any) -> dict[str, Any]:
        if not self.api_key:
            raise ExternalAPIError("google_places", "GOOGLE_PLACES_API_KEY is not configured")
        cleaned = {key: value for key, value in params.items() if value is not None}
        cleaned["key"] = self.api_key
        return cleaned
