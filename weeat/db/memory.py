from __future__ import annotations

import uuid

from weeat.core.errors import MenuNotFoundError, RestaurantNotFoundError
from weeat.db.base import MenuRepository
from weeat.menus.models import (
    MenuCategory,
    MenuItem,
    PreferredLocation,
    RestaurantLocation,
    RestaurantSummary,
    UserMenu,
    UserMenuUpdate,
    UserProfile,
)


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryMenuRepository(MenuRepository):
    """Process-local repository for local development and tests."""

    def __init__(self) -> None:
        self._restaurants: dict[str, RestaurantSummary] = {}
        self._locations: dict[str, list[RestaurantLocation]] = {}
        self._menus: dict[str, list[MenuCategory]] = {}
        self._profiles: dict[str, UserProfile] = {}
        self._saved: dict[str, list[UserMenu]] = {}
        self._created: dict[str, list[UserMenu]] = {}

    def list_restaurants(self) -> list[RestaurantSummary]:
        return list(self._restaurants.values())

    def get_restaurant(self, restaurant_id: str) -> RestaurantSummary:
        restaurant = self._restaurants.get(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id} not found")
        return restaurant

    def find_restaurant_by_name(self, name: str) -> RestaurantSummary | None:
        for restaurant in self._restaurants.values():
            if restaurant.name == name:
                return restaurant
        return None

    def get_menu(self, restaurant_id: str) -> list[MenuCategory]:
        self.get_restaurant(restaurant_id)
        categories = self._menus.get(restaurant_id, [])
        return [
            category.model_copy(deep=True)
            for category in sorted(categories, key=lambda c: c.index)
        ]

    def add_restaurant(
        self,
        name: str,
        location: RestaurantLocation | None = None,
        thumbnail_url: str = "",
    ) -> RestaurantSummary:
        restaurant = RestaurantSummary(id=_new_id(), name=name, thumbnail_url=thumbnail_url)
        self._restaurants[restaurant.id] = restaurant
        self._menus[restaurant.id] = []
        if location is not None:
            self._locations.setdefault(restaurant.id, []).append(location)
        return restaurant

    def add_menu_category(
        self, restaurant_id: str, category: str, index: int = 0
    ) -> MenuCategory:
        self.get_restaurant(restaurant_id)
        record = MenuCategory(id=_new_id(), category=category, index=index)
        self._menus[restaurant_id].append(record)
        return record

    def add_menu_item(
        self, restaurant_id: str, category_id: str, item: MenuItem
    ) -> MenuItem:
        self.get_restaurant(restaurant_id)
        for category in self._menus[restaurant_id]:
            if category.id == category_id:
                stored = item.model_copy(
                    update={"id": item.id or _new_id(), "category": category.category}
                )
                category.items.append(stored)
                return stored
        raise MenuNotFoundError(f"Menu category {category_id} not found")

    def get_user_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    def upsert_user_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        self._profiles[user_id] = profile
        return profile

    def set_preferred_location(
        self, user_id: str, location: PreferredLocation
    ) -> UserProfile:
        profile = self._profiles.get(user_id) or UserProfile()
        profile = profile.model_copy(update={"preferred_location": location})
        self._profiles[user_id] = profile
        return profile

    def list_saved_menus(self, user_id: str) -> list[UserMenu]:
        return list(self._saved.get(user_id, []))

    def list_created_menus(self, user_id: str) -> list[UserMenu]:
        return list(self._created.get(user_id, []))

    def add_saved_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        stored = menu.model_copy(update={"id": _new_id()})
        self._saved.setdefault(user_id, []).append(stored)
        return stored

    def add_created_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        stored = menu.model_copy(update={"id": _new_id()})
        self._created.setdefault(user_id, []).append(stored)
        return stored

    def update_created_menu(
        self, user_id: str, menu_id: str, payload: UserMenuUpdate
    ) -> UserMenu:
        fields: dict[str, object] = {}
        if payload.restaurant_name is not None:
            fields["restaurant_name"] = payload.restaurant_name
        if payload.dishes is not None:
            fields["dishes"] = payload.dishes

        menus = self._created.get(user_id, [])
        for position, menu in enumerate(menus):
            if menu.id == menu_id:
                updated = menu.model_copy(update=fields)
                menus[position] = updated
                return updated
        raise MenuNotFoundError(f"Created menu {menu_id} not found")

    def delete_created_menu(self, user_id: str, menu_id: str) -> None:
        menus = self._created.get(user_id, [])
        for position, menu in enumerate(menus):
            if menu.id == menu_id:
                del menus[position]
                return
        raise MenuNotFoundError(f"Created menu {menu_id} not found")

    def add_item_to_created_menu(
        self, user_id: str, restaurant_name: str, item: MenuItem
    ) -> UserMenu:
        menus = self._created.get(user_id, [])
        for position, menu in enumerate(menus):
            if menu.restaurant_name == restaurant_name:
                updated = menu.model_copy(update={"dishes": [*menu.dishes, item]})
                menus[position] = updated
                return updated
        raise MenuNotFoundError(
            f"Restaurant {restaurant_name} does not exist in created menus."
        )
