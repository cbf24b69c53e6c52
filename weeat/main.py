from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import anyio
import requests
import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.background import BackgroundTask

from weeat.auth.dependencies import require_owner
from weeat.core.config import settings
from weeat.core.errors import (
    AuthenticationError,
    ExternalAPIError,
    ForbiddenError,
    NotFoundError,
    RestaurantNotFoundError,
)
from weeat.core.logging import configure_logging, request_id_ctx
from weeat.core.sentry import init_sentry
from weeat.db.base import MenuRepository
from weeat.db.memory import InMemoryMenuRepository
from weeat.db.pool import close_pool, get_pool, init_pool
from weeat.db.postgres import PostgresMenuRepository
from weeat.menus.models import (
    GeoCoordinate,
    MenuCategory,
    MenuItem,
    PreferredLocation,
    Restaurant,
    RestaurantSummary,
    UserMenu,
    UserMenus,
    UserMenuUpdate,
    UserProfile,
)
from weeat.recommendations.models import RecommendationResponse
from weeat.recommendations.service import get_recommendations, personalize_menu
from weeat.search.models import SearchResponse
from weeat.search.places import GooglePlacesClient
from weeat.search.service import fetch_keywords, search_restaurants

configure_logging(settings.log_level)
init_sentry()
logger = structlog.get_logger(__name__)


def build_repository(backend: str) -> MenuRepository:
    if backend == "memory":
        return InMemoryMenuRepository()
    if backend == "postgres":
        return PostgresMenuRepository()
    raise ValueError(f"Unknown store backend: {backend}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.store_backend == "postgres":
        init_pool()
    logger.info("service_started", store_backend=settings.store_backend)
    if not settings.google_places_api_key:
        logger.warning("google_places_api_key_missing")
    try:
        yield
    finally:
        close_pool()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
repository: MenuRepository = build_repository(settings.store_backend)
places = GooglePlacesClient()


def get_repository() -> MenuRepository:
    return repository


def get_places() -> GooglePlacesClient:
    return places


class MenuRequest(BaseModel):
    menu: UserMenu


class AddDishRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    restaurant_name: str = Field(..., min_length=1, alias="restaurantName")
    item: MenuItem


class KeywordsResponse(BaseModel):
    keywords: list[str]


class StatusResponse(BaseModel):
    status: str


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request_id_token = request_id_ctx.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(request_id_token)

    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_validation_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.exception_handler(ValidationError)
async def pydantic_validation_handler(request: Request, exc: ValidationError):
    logger.warning("pydantic_validation_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False)},
    )


@app.exception_handler(ExternalAPIError)
async def external_api_handler(request: Request, exc: ExternalAPIError):
    logger.warning(
        "external_api_failed",
        path=request.url.path,
        service=exc.service,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=503,
        content={"detail": f"Upstream {exc.service} error"},
    )


@app.exception_handler(requests.RequestException)
async def upstream_transport_handler(request: Request, exc: requests.RequestException):
    logger.warning("external_api_unreachable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content={"detail": "Upstream google_places error"},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info("resource_not_found", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    logger.warning("authentication_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    logger.warning("forbidden", path=request.url.path)
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("rate_limit_exceeded", path=request.url.path)
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please slow down."},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
async def health() -> dict[str, str]:
    logger.info("health_check")
    return {"status": "ok"}


@app.get("/ready")
async def ready() -> JSONResponse:
    checks: dict[str, dict[str, str]] = {}
    status_code = 200

    def set_failure(name: str, error: Exception) -> None:
        nonlocal status_code
        checks[name] = {"status": "error", "error": str(error)}
        status_code = 503

    async def run_check(name: str, func) -> None:
        try:
            with anyio.fail_after(1.5):
                await anyio.to_thread.run_sync(func)
            checks[name] = {"status": "ok"}
        except Exception as exc:  # noqa: BLE001
            set_failure(name, exc)

    def check_postgres() -> None:
        pool = get_pool()
        with pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()

    def check_places() -> None:
        if not settings.google_places_api_key:
            raise RuntimeError("google_places_api_key missing")

    if settings.store_backend == "postgres":
        await run_check("postgres", check_postgres)
    await run_check("google_places", check_places)

    overall = "ok" if status_code == 200 else "error"
    return JSONResponse(status_code=status_code, content={"status": overall, "checks": checks})


@app.get("/proxy")
@limiter.limit(settings.proxy_rate_limit)
def places_proxy(
    request: Request,
    location: str = Query(..., min_length=1),
    radius: float = Query(..., gt=0),
    keyword: str | None = None,
    client: GooglePlacesClient = Depends(get_places),
) -> dict:
    return client.nearby_search(location, radius, keyword)


@app.get("/textsearch")
@limiter.limit(settings.proxy_rate_limit)
def places_text_search(
    request: Request,
    query: str = Query(..., min_length=1),
    client: GooglePlacesClient = Depends(get_places),
) -> dict:
    return client.text_search(query)


@app.get("/photo")
@limiter.limit(settings.proxy_rate_limit)
def places_photo(
    request: Request,
    photoreference: str = Query(..., min_length=1),
    maxwidth: int | None = Query(default=None, gt=0),
    client: GooglePlacesClient = Depends(get_places),
) -> StreamingResponse:
    upstream = client.fetch_photo(photoreference, maxwidth)
    return StreamingResponse(
        upstream.iter_content(chunk_size=8192),
        media_type=upstream.headers.get("content-type", "image/jpeg"),
        headers={"Cache-Control": f"public, max-age={settings.photo_cache_max_age}"},
        background=BackgroundTask(upstream.close),
    )


@app.get("/geocode", response_model=GeoCoordinate)
@limiter.limit(settings.proxy_rate_limit)
def geocode(
    request: Request,
    address: str = Query(..., min_length=1),
    client: GooglePlacesClient = Depends(get_places),
) -> GeoCoordinate:
    return client.geocode(address)


@app.get("/search", response_model=SearchResponse)
@limiter.limit(settings.proxy_rate_limit)
def search(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(..., ge=0),
    keyword: str = "",
    client: GooglePlacesClient = Depends(get_places),
) -> SearchResponse:
    results = search_restaurants(
        client,
        f"{lat},{lng}",
        radius,
        keyword,
        GeoCoordinate(lat=lat, lng=lng),
    )
    return SearchResponse(results=results)


@app.get("/restaurants", response_model=list[RestaurantSummary])
def list_restaurants(
    store: MenuRepository = Depends(get_repository),
) -> list[RestaurantSummary]:
    return store.list_restaurants()


@app.get("/restaurants/{restaurant_name}/menu", response_model=list[MenuCategory])
def restaurant_menu_by_name(
    restaurant_name: str,
    store: MenuRepository = Depends(get_repository),
) -> list[MenuCategory]:
    restaurant = store.find_restaurant_by_name(restaurant_name)
    if restaurant is None:
        raise RestaurantNotFoundError("Restaurant not found")
    return store.get_menu(restaurant.id)


@app.get("/users/{user_id}/menus", response_model=UserMenus)
@limiter.limit(settings.user_rate_limit)
def user_menus(
    request: Request,
    user_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserMenus:
    return store.get_user_menus(user_id)


@app.post("/users/{user_id}/menus/created", response_model=UserMenu, status_code=201)
@limiter.limit(settings.user_rate_limit)
def add_created_menu(
    request: Request,
    user_id: str,
    payload: MenuRequest,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserMenu:
    menu = store.add_created_menu(user_id, payload.menu)
    logger.info("created_menu_added", menu_id=menu.id, restaurant_name=menu.restaurant_name)
    return menu


@app.post("/users/{user_id}/menus/created/dishes", response_model=UserMenu, status_code=201)
@limiter.limit(settings.user_rate_limit)
def add_created_menu_dish(
    request: Request,
    user_id: str,
    payload: AddDishRequest,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserMenu:
    return store.add_item_to_created_menu(user_id, payload.restaurant_name, payload.item)


@app.put("/users/{user_id}/menus/created/{menu_id}", response_model=UserMenu)
@limiter.limit(settings.user_rate_limit)
def update_created_menu(
    request: Request,
    user_id: str,
    menu_id: str,
    payload: UserMenuUpdate,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserMenu:
    return store.update_created_menu(user_id, menu_id, payload)


@app.delete("/users/{user_id}/menus/created/{menu_id}", response_model=StatusResponse)
@limiter.limit(settings.user_rate_limit)
def delete_created_menu(
    request: Request,
    user_id: str,
    menu_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> StatusResponse:
    store.delete_created_menu(user_id, menu_id)
    logger.info("created_menu_deleted", menu_id=menu_id)
    return StatusResponse(status="deleted")


@app.post("/users/{user_id}/menus/saved", response_model=UserMenu, status_code=201)
@limiter.limit(settings.user_rate_limit)
def add_saved_menu(
    request: Request,
    user_id: str,
    payload: MenuRequest,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserMenu:
    return store.add_saved_menu(user_id, payload.menu)


@app.get("/users/{user_id}/profile", response_model=UserProfile)
@limiter.limit(settings.user_rate_limit)
def get_profile(
    request: Request,
    user_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserProfile:
    profile = store.get_user_profile(user_id)
    if profile is None:
        raise NotFoundError(f"Profile for user {user_id} not found")
    return profile


@app.put("/users/{user_id}/profile", response_model=UserProfile)
@limiter.limit(settings.user_rate_limit)
def put_profile(
    request: Request,
    user_id: str,
    payload: UserProfile,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserProfile:
    existing = store.get_user_profile(user_id)
    if payload.preferred_location is None and existing is not None:
        payload = payload.model_copy(
            update={"preferred_location": existing.preferred_location}
        )
    return store.upsert_user_profile(user_id, payload)


@app.put("/users/{user_id}/preferred-location", response_model=UserProfile)
@limiter.limit(settings.user_rate_limit)
def put_preferred_location(
    request: Request,
    user_id: str,
    payload: PreferredLocation,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> UserProfile:
    profile = store.set_preferred_location(user_id, payload)
    logger.info("preferred_location_set", restaurant_id=payload.restaurant_id)
    return profile


@app.get("/users/{user_id}/recommendations", response_model=RecommendationResponse)
@limiter.limit(settings.user_rate_limit)
def recommendations(
    request: Request,
    user_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> RecommendationResponse:
    return get_recommendations(store, user_id)


@app.get(
    "/users/{user_id}/restaurants/{restaurant_id}/menu",
    response_model=Restaurant,
)
@limiter.limit(settings.user_rate_limit)
def personalized_menu(
    request: Request,
    user_id: str,
    restaurant_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> Restaurant:
    return personalize_menu(store, user_id, restaurant_id)


@app.get("/users/{user_id}/keywords", response_model=KeywordsResponse)
@limiter.limit(settings.user_rate_limit)
def keywords(
    request: Request,
    user_id: str,
    _: str = Depends(require_owner),
    store: MenuRepository = Depends(get_repository),
) -> KeywordsResponse:
    return KeywordsResponse(keywords=fetch_keywords(store, user_id))
