from __future__ import annotations

import pytest

from weeat.core.errors import MenuNotFoundError, RestaurantNotFoundError
from weeat.menus.models import (
    GeoCoordinate,
    MenuItem,
    PreferredLocation,
    UserMenu,
    UserMenuUpdate,
    UserProfile,
)


def test_menu_categories_are_ordered_by_index(repository) -> None:
    restaurant = repository.add_restaurant("Noodle Bar")
    mains = repository.add_menu_category(restaurant.id, "Mains", index=1)
    starters = repository.add_menu_category(restaurant.id, "Starters", index=0)
    repository.add_menu_item(restaurant.id, mains.id, MenuItem(name="Ramen"))
    repository.add_menu_item(restaurant.id, starters.id, MenuItem(name="Gyoza"))

    menu = repository.get_menu(restaurant.id)

    assert [c.category for c in menu] == ["Starters", "Mains"]
    assert menu[1].items[0].category == "Mains"
    assert menu[1].items[0].id


def test_get_menu_returns_copies(repository) -> None:
    restaurant = repository.add_restaurant("Noodle Bar")
    category = repository.add_menu_category(restaurant.id, "Mains")
    repository.add_menu_item(restaurant.id, category.id, MenuItem(name="Ramen"))

    repository.get_menu(restaurant.id)[0].items.clear()

    assert len(repository.get_menu(restaurant.id)[0].items) == 1


def test_unknown_restaurant_and_category(repository) -> None:
    with pytest.raises(RestaurantNotFoundError):
        repository.get_menu("missing")

    restaurant = repository.add_restaurant("Noodle Bar")
    with pytest.raises(MenuNotFoundError):
        repository.add_menu_item(restaurant.id, "missing", MenuItem(name="Ramen"))


def test_find_restaurant_by_name(repository) -> None:
    restaurant = repository.add_restaurant("Noodle Bar")
    assert repository.find_restaurant_by_name("Noodle Bar") == restaurant
    assert repository.find_restaurant_by_name("noodle bar") is None


def test_created_menu_lifecycle(repository) -> None:
    created = repository.add_created_menu(
        "user-1", UserMenu(restaurant_name="Noodle Bar", dishes=[MenuItem(name="Ramen")])
    )

    with_dish = repository.add_item_to_created_menu("user-1", "Noodle Bar", MenuItem(name="Gyoza"))
    assert [d.name for d in with_dish.dishes] == ["Ramen", "Gyoza"]

    updated = repository.update_created_menu(
        "user-1", created.id, UserMenuUpdate(dishes=[MenuItem(name="Udon")])
    )
    assert updated.restaurant_name == "Noodle Bar"
    assert [d.name for d in updated.dishes] == ["Udon"]
    assert isinstance(updated.dishes[0], MenuItem)

    repository.delete_created_menu("user-1", created.id)
    assert repository.list_created_menus("user-1") == []

    with pytest.raises(MenuNotFoundError):
        repository.delete_created_menu("user-1", created.id)


def test_add_item_to_missing_created_menu(repository) -> None:
    with pytest.raises(MenuNotFoundError, match="does not exist in created menus"):
        repository.add_item_to_created_menu("user-1", "Nowhere", MenuItem(name="Soup"))


def test_user_menus_are_isolated_per_user(repository) -> None:
    repository.add_saved_menu("user-1", UserMenu(restaurant_name="A"))
    repository.add_created_menu("user-2", UserMenu(restaurant_name="B"))

    menus = repository.get_user_menus("user-1")

    assert [m.restaurant_name for m in menus.saved_menus] == ["A"]
    assert menus.created_menus == []


def test_set_preferred_location_keeps_profile(repository) -> None:
    repository.upsert_user_profile("user-1", UserProfile(name="Sam", allergens={"soy": True}))
    location = PreferredLocation(
        restaurant_id="r1", address="1 Main St", coordinates=GeoCoordinate(lat=1.0, lng=2.0)
    )

    profile = repository.set_preferred_location("user-1", location)

    assert profile.name == "Sam"
    assert profile.allergens == {"soy": True}
    assert repository.get_user_profile("user-1").preferred_location == location
