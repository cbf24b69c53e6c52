from __future__ import annotations

from abc import ABC, abstractmethod

from weeat.menus.models import (
    MenuCategory,
    MenuItem,
    PreferredLocation,
    RestaurantLocation,
    RestaurantSummary,
    UserMenu,
    UserMenus,
    UserMenuUpdate,
    UserProfile,
)


class MenuRepository(ABC):
    @abstractmethod
    def list_restaurants(self) -> list[RestaurantSummary]:
        raise NotImplementedError

    @abstractmethod
    def get_restaurant(self, restaurant_id: str) -> RestaurantSummary:
        raise NotImplementedError

    @abstractmethod
    def find_restaurant_by_name(self, name: str) -> RestaurantSummary | None:
        raise NotImplementedError

    @abstractmethod
    def get_menu(self, restaurant_id: str) -> list[MenuCategory]:
        raise NotImplementedError

    @abstractmethod
    def add_restaurant(
        self,
        name: str,
        location: RestaurantLocation | None = None,
        thumbnail_url: str = "",
    ) -> RestaurantSummary:
        raise NotImplementedError

    @abstractmethod
    def add_menu_category(
        self, restaurant_id: str, category: str, index: int = 0
    ) -> MenuCategory:
        raise NotImplementedError

    @abstractmethod
    def add_menu_item(
        self, restaurant_id: str, category_id: str, item: MenuItem
    ) -> MenuItem:
        raise NotImplementedError

    @abstractmethod
    def get_user_profile(self, user_id: str) -> UserProfile | None:
        raise NotImplementedError

    @abstractmethod
    def upsert_user_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    def set_preferred_location(
        self, user_id: str, location: PreferredLocation
    ) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    def list_saved_menus(self, user_id: str) -> list[UserMenu]:
        raise NotImplementedError

    @abstractmethod
    def list_created_menus(self, user_id: str) -> list[UserMenu]:
        raise NotImplementedError

    @abstractmethod
    def add_saved_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        raise NotImplementedError

    @abstractmethod
    def add_created_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        raise NotImplementedError

    @abstractmethod
    def update_created_menu(
        self, user_id: str, menu_id: str, payload: UserMenuUpdate
    ) -> UserMenu:
        raise NotImplementedError

    @abstractmethod
    def delete_created_menu(self, user_id: str, menu_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def add_item_to_created_menu(
        self, user_id: str, restaurant_name: str, item: MenuItem
    ) -> UserMenu:
        raise NotImplementedError

    def get_user_menus(self, user_id: str) -> UserMenus:
        return UserMenus(
            created_menus=self.list_created_menus(user_id),
            saved_menus=self.list_saved_menus(user_id),
        )
