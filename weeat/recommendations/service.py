from __future__ import annotations

import structlog

from weeat.db.base import MenuRepository
from weeat.menus.models import Restaurant
from weeat.recommendations.allergens import active_allergens, filter_menu_by_allergens
from weeat.recommendations.engine import filter_and_rank_restaurants
from weeat.recommendations.models import RecommendationResponse

logger = structlog.get_logger(__name__)


def fetch_user_allergens(repository: MenuRepository, user_id: str) -> frozenset[str]:
    profile = repository.get_user_profile(user_id)
    return active_allergens(profile.allergens if profile else None)


def fetch_restaurant_menus(repository: MenuRepository) -> list[Restaurant]:
    restaurants: list[Restaurant] = []
    for summary in repository.list_restaurants():
        try:
            menu = repository.get_menu(summary.id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "restaurant_menu_fetch_failed",
                restaurant_id=summary.id,
                error=str(exc),
            )
            continue
        if not menu:
            logger.info("restaurant_menu_empty", restaurant_id=summary.id)
        restaurants.append(Restaurant(**summary.model_dump(), menu=menu))
    return restaurants


def get_recommendations(repository: MenuRepository, user_id: str) -> RecommendationResponse:
    user_allergens = fetch_user_allergens(repository, user_id)
    restaurants = fetch_restaurant_menus(repository)
    owned_items = repository.get_user_menus(user_id).owned_items()

    ranked = filter_and_rank_restaurants(restaurants, user_allergens, owned_items)

    thumbnails = {restaurant.id: restaurant.thumbnail_url for restaurant in restaurants}
    recommendations = [
        entry.model_copy(update={"thumbnail_url": thumbnails.get(entry.id, "")})
        for entry in ranked
    ]
    logger.info(
        "recommendations_computed",
        total_candidates=len(restaurants),
        returned=len(recommendations),
        active_allergens=len(user_allergens),
        owned_items=len(owned_items),
    )
    return RecommendationResponse(
        recommendations=recommendations,
        total_candidates=len(restaurants),
    )


def personalize_menu(
    repository: MenuRepository, user_id: str, restaurant_id: str
) -> Restaurant:
    """One restaurant's menu with every item carrying a user allergen removed."""
    summary = repository.get_restaurant(restaurant_id)
    user_allergens = fetch_user_allergens(repository, user_id)
    menu = filter_menu_by_allergens(repository.get_menu(restaurant_id), user_allergens)
    return Restaurant(**summary.model_dump(), menu=menu)
