"""
Recommendation engine.

Responsibilities:
- Drop menu items the user already owns (saved or created menus).
- Drop menu items carrying any of the user's active allergens.
- Keep the restaurants with at least one surviving item, in input order.

There is no scoring: a restaurant either qualifies or it does not.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence

from weeat.menus.models import MenuCategory, MenuItem, Restaurant
from weeat.recommendations.allergens import filter_menu_items_by_allergens
from weeat.recommendations.dedup import filter_owned_items, owned_names
from weeat.recommendations.models import RecommendedRestaurant


def filter_restaurant_menu(
    menu: Iterable[MenuCategory],
    user_allergens: frozenset[str] | set[str],
    owned: frozenset[str] | set[str],
) -> list[MenuCategory]:
    """Return the non-empty categories of ``menu`` after dedup and allergen filtering."""
    surviving: list[MenuCategory] = []
    for category in menu:
        items = filter_owned_items(category.items, owned)
        items = filter_menu_items_by_allergens(items, user_allergens)
        if items:
            surviving.append(category.model_copy(update={"items": items}))
    return surviving


def filter_and_rank_restaurants(
    restaurants: Sequence[Restaurant],
    user_allergens: frozenset[str] | set[str] | None,
    owned_items: Iterable[MenuItem] | None,
) -> list[RecommendedRestaurant]:
    allergens = frozenset(user_allergens or ())
    owned = owned_names(owned_items)

    ranked: list[RecommendedRestaurant] = []
    for restaurant in restaurants:
        menu = filter_restaurant_menu(restaurant.menu, allergens, owned)
        if not menu:
            continue
        ranked.append(
            RecommendedRestaurant(id=restaurant.id, name=restaurant.name, menu=menu)
        )
    return ranked
