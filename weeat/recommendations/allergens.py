from __future__ import annotations

from collections.abc import Iterable, Mapping

from weeat.menus.models import MenuCategory, MenuItem


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def active_allergens(profile: Mapping[str, bool] | None) -> frozenset[str]:
    """Return the normalized tags a user has flagged as ``True``.

    A missing profile means no exclusions.
    """
    if not profile:
        return frozenset()
    return frozenset(normalize_tag(tag) for tag, flag in profile.items() if flag is True)


def item_allergens(item: MenuItem) -> set[str]:
    return {normalize_tag(tag) for tag in item.allergens}


def is_safe(item: MenuItem, user_allergens: frozenset[str] | set[str]) -> bool:
    return not (item_allergens(item) & user_allergens)


def filter_menu_items_by_allergens(
    items: Iterable[MenuItem],
    user_allergens: frozenset[str] | set[str],
) -> list[MenuItem]:
    """Keep the items whose allergen tags do not intersect ``user_allergens``.

    Tags are matched by exact string equality after trimming and lowercasing,
    so "milk" and "dairy" never match each other.
    """
    return [item for item in items if is_safe(item, user_allergens)]


def filter_menu_by_allergens(
    menu: Iterable[MenuCategory],
    user_allergens: frozenset[str] | set[str],
) -> list[MenuCategory]:
    filtered: list[MenuCategory] = []
    for category in menu:
        items = filter_menu_items_by_allergens(category.items, user_allergens)
        if items:
            filtered.append(category.model_copy(update={"items": items}))
    return filtered
