from __future__ import annotations

import math

import pytest
import requests

from weeat.core.errors import ExternalAPIError
from weeat.menus.models import GeoCoordinate, UserMenu
from weeat.search.places import GooglePlacesClient
from weeat.search.service import (
    METERS_PER_MILE,
    fetch_keywords,
    format_candidate,
    photo_proxy_url,
    populate_restaurants,
    search_restaurants,
)

USER = GeoCoordinate(lat=40.7128, lng=-74.0060)


def _place(name: str, lat: float, lng: float, **extra) -> dict:
    return {"name": name, "geometry": {"location": {"lat": lat, "lng": lng}}, **extra}


def test_photo_proxy_url_points_at_own_photo_endpoint() -> None:
    url = photo_proxy_url("abc123")
    assert url == "https://api.weeat.test/photo?photoreference=abc123&maxwidth=400"


def test_photo_proxy_url_empty_without_reference() -> None:
    assert photo_proxy_url(None) == ""
    assert photo_proxy_url("") == ""


def test_format_candidate_falls_back_to_formatted_address() -> None:
    result = _place("Green Fork", 40.72, -74.0, formatted_address="1 Main St")

    candidate = format_candidate(result, USER)

    assert candidate.vicinity == "1 Main St"
    assert candidate.photo_url == ""
    assert candidate.distance == pytest.approx(0.59, abs=0.05)


def test_format_candidate_uses_first_photo_and_icon() -> None:
    result = _place(
        "Green Fork",
        40.72,
        -74.0,
        vicinity="Main St",
        icon="https://icons.test/r.png",
        photos=[{"photo_reference": "first"}, {"photo_reference": "second"}],
    )

    candidate = format_candidate(result, USER)

    assert candidate.vicinity == "Main St"
    assert candidate.icon == "https://icons.test/r.png"
    assert "photoreference=first" in candidate.photo_url


def test_format_candidate_without_geometry_has_nan_distance() -> None:
    candidate = format_candidate({"name": "Mystery"}, USER)
    assert math.isnan(candidate.distance)
    assert candidate.vicinity == ""


def test_search_filters_sorts_and_converts_radius_to_meters(places) -> None:
    places.payload = {
        "status": "OK",
        "results": [
            _place("far", 40.85, -74.0060),
            _place("near", 40.7150, -74.0060),
            {"name": "nowhere"},
            _place("mid", 40.7500, -74.0060),
        ],
    }

    results = search_restaurants(places, "40.7128,-74.006", 5, "salad", USER)

    assert [c.name for c in results] == ["near", "mid"]
    assert places.calls == [("nearby_search", ("40.7128,-74.006", 5 * METERS_PER_MILE, "salad"))]


@pytest.mark.parametrize(
    "error",
    [ExternalAPIError("google_places", "boom", status_code=502), requests.ConnectionError("down")],
)
def test_search_failure_gives_empty_result(places, error: Exception) -> None:
    places.error = error

    assert search_restaurants(places, "40.7,-74.0", 5, "salad", USER) == []


def test_search_without_api_key_gives_empty_result() -> None:
    places = GooglePlacesClient(api_key="")
    places.api_key = None

    assert search_restaurants(places, "40.7,-74.0", 5, "salad", USER) == []


def test_search_with_no_results(places) -> None:
    places.payload = {"status": "ZERO_RESULTS"}
    assert search_restaurants(places, "40.7,-74.0", 5, "salad", USER) == []


def test_fetch_keywords_includes_created_menu_names(seeded_repository) -> None:
    seeded_repository.add_created_menu("user-1", UserMenu(restaurant_name="Taco Stand"))

    assert fetch_keywords(seeded_repository, "user-1") == ["Green Fork", "Satay House", "Taco Stand"]
    assert fetch_keywords(seeded_repository, None) == ["Green Fork", "Satay House"]


def test_populate_restaurants_stores_each_result(repository, places) -> None:
    places.payload = {
        "status": "OK",
        "results": [_place("Pho 1", 40.71, -74.0, vicinity="Canal St")],
    }

    added = populate_restaurants(places, repository, 40.7, -74.0, 1500, ["pho", "ramen"])

    assert added == 2
    assert [r.name for r in repository.list_restaurants()] == ["Pho 1", "Pho 1"]
    assert [call[1][3] for call in places.calls] == ["pho", "ramen"]
