from __future__ import annotations

import json
from pathlib import Path

import structlog

from weeat.core.config import settings
from weeat.core.logging import configure_logging
from weeat.db.base import MenuRepository
from weeat.db.postgres import PostgresMenuRepository
from weeat.menus.models import MenuCategory, MenuItem, RestaurantSummary

DEFAULT_MENU_PATH = Path("data/menu.json")

logger = structlog.get_logger(__name__)


def _load_restaurants(path: Path) -> list[dict]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return [data]
    return data


def import_restaurant(repository: MenuRepository, document: dict) -> RestaurantSummary:
    """Store one ``{name, thumbnailUrl, menu: [{category, items}]}`` document."""
    restaurant = repository.find_restaurant_by_name(document["name"])
    if restaurant is not None and repository.get_menu(restaurant.id):
        logger.info("restaurant_menu_exists", restaurant_id=restaurant.id, name=restaurant.name)
        return restaurant
    if restaurant is None:
        restaurant = repository.add_restaurant(
            document["name"], thumbnail_url=document.get("thumbnailUrl") or ""
        )
    for position, raw_category in enumerate(document.get("menu", [])):
        category = MenuCategory.model_validate(
            {"index": position, **raw_category, "items": []}
        )
        stored = repository.add_menu_category(restaurant.id, category.category, category.index)
        for raw_item in raw_category.get("items", []):
            item = MenuItem.model_validate({**raw_item, "category": category.category})
            repository.add_menu_item(restaurant.id, stored.id, item)
    logger.info("restaurant_menu_imported", restaurant_id=restaurant.id, name=restaurant.name)
    return restaurant


def import_menus(
    menu_path: Path = DEFAULT_MENU_PATH,
    repository: MenuRepository | None = None,
) -> list[RestaurantSummary]:
    repository = repository or PostgresMenuRepository()
    return [import_restaurant(repository, document) for document in _load_restaurants(menu_path)]


if __name__ == "__main__":
    configure_logging(settings.log_level)
    import_menus()
