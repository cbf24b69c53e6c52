from __future__ import annotations

import os
from typing import Any

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("RETRY_BACKOFF_INITIAL", "0.01")
os.environ.setdefault("RETRY_BACKOFF_MAX", "0.02")
os.environ.setdefault("PUBLIC_BASE_URL", "https://api.weeat.test")

import psycopg
import pytest
from fastapi.testclient import TestClient

from weeat import main
from weeat.auth import security
from weeat.core.config import settings
from weeat.core.errors import AuthenticationError
from weeat.db.memory import InMemoryMenuRepository
from weeat.menus.models import GeoCoordinate, MenuItem, UserMenu, UserProfile


class FakePhotoResponse:
    def __init__(self, body: bytes, content_type: str = "image/png") -> None:
        self.body = body
        self.headers = {"content-type": content_type}
        self.closed = False

    def iter_content(self, chunk_size: int = 1024):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakePlacesClient:
    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self.payload = payload or {"status": "OK", "results": []}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.error: Exception | None = None

    def nearby_search(self, location: str, radius: float, keyword: str | None = None):
        self.calls.append(("nearby_search", (location, radius, keyword)))
        if self.error is not None:
            raise self.error
        return self.payload

    def text_search(self, query: str):
        self.calls.append(("text_search", (query,)))
        if self.error is not None:
            raise self.error
        return self.payload

    def nearby_restaurants(self, lat: float, lng: float, radius: float, keyword: str):
        self.calls.append(("nearby_restaurants", (lat, lng, radius, keyword)))
        return self.payload.get("results", [])

    def fetch_photo(self, photo_reference: str, max_width: int | None = None):
        self.calls.append(("fetch_photo", (photo_reference, max_width)))
        if self.error is not None:
            raise self.error
        return FakePhotoResponse(b"jpeg-bytes")

    def geocode(self, address: str) -> GeoCoordinate:
        self.calls.append(("geocode", (address,)))
        if self.error is not None:
            raise self.error
        return GeoCoordinate(lat=40.7128, lng=-74.006)


def item(name: str, allergens: Any = None, category: str = "Mains") -> MenuItem:
    return MenuItem(name=name, allergens=allergens, category=category)


@pytest.fixture()
def repository() -> InMemoryMenuRepository:
    return InMemoryMenuRepository()


@pytest.fixture()
def seeded_repository(repository: InMemoryMenuRepository) -> InMemoryMenuRepository:
    """Two restaurants and a user allergic to peanuts who saved a Caesar Salad."""
    green = repository.add_restaurant("Green Fork", thumbnail_url="https://img.test/green.jpg")
    salads = repository.add_menu_category(green.id, "Salads", index=0)
    mains = repository.add_menu_category(green.id, "Mains", index=1)
    repository.add_menu_item(green.id, salads.id, item("Caesar Salad", ["Dairy"], "Salads"))
    repository.add_menu_item(green.id, mains.id, item("Peanut Noodles", ["Peanuts", "Soy"]))
    repository.add_menu_item(green.id, mains.id, item("Grilled Salmon", ["Fish"]))

    satay = repository.add_restaurant("Satay House", thumbnail_url="https://img.test/satay.jpg")
    satay_mains = repository.add_menu_category(satay.id, "Mains", index=0)
    repository.add_menu_item(satay.id, satay_mains.id, item("Satay Skewers", [" PEANUTS "]))

    repository.upsert_user_profile(
        "user-1",
        UserProfile(name="Sam", email="sam@example.com", allergens={"peanuts": True, "dairy": False}),
    )
    repository.add_saved_menu(
        "user-1",
        UserMenu(restaurant_name="Green Fork", dishes=[item("Caesar Salad", ["Dairy"], "Salads")]),
    )
    return repository


@pytest.fixture()
def places() -> FakePlacesClient:
    return FakePlacesClient()


def _fake_verify_id_token(id_token: str) -> dict[str, Any]:
    if not id_token.startswith("token-"):
        raise AuthenticationError("Unauthorized: Invalid token")
    return {"uid": id_token.removeprefix("token-")}


@pytest.fixture()
def client(seeded_repository: InMemoryMenuRepository, places: FakePlacesClient, monkeypatch):
    monkeypatch.setattr(security, "verify_id_token", _fake_verify_id_token)
    monkeypatch.setattr(settings, "auth_enabled", True)
    main.limiter.enabled = False
    main.app.dependency_overrides[main.get_repository] = lambda: seeded_repository
    main.app.dependency_overrides[main.get_places] = lambda: places
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
        main.limiter.enabled = True


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-user-1"}


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    dsn = os.getenv("POSTGRES_DSN", settings.postgres_dsn)
    try:
        with psycopg.connect(dsn, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not reachable")
    settings.postgres_dsn = dsn
    return dsn


def _truncate_tables(conn: psycopg.Connection, tables: list[str]) -> None:
    table_list = ", ".join(tables)
    with conn.cursor() as cur:
        cur.execute(f"TRUNCATE TABLE {table_list} RESTART IDENTITY CASCADE")
    conn.commit()


@pytest.fixture()
def clean_db(postgres_dsn: str):
    from weeat.db.postgres import PostgresMenuRepository

    PostgresMenuRepository(postgres_dsn)
    tables = [
        "menu_items",
        "menu_categories",
        "restaurant_locations",
        "restaurants",
        "users",
        "user_menus",
    ]
    conn = psycopg.connect(postgres_dsn)
    _truncate_tables(conn, tables)
    yield conn
    _truncate_tables(conn, tables)
    conn.close()
