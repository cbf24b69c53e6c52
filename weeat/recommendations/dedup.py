from __future__ import annotations

from collections.abc import Iterable

from weeat.menus.models import MenuItem


def owned_names(owned_items: Iterable[MenuItem] | None) -> frozenset[str]:
    if not owned_items:
        return frozenset()
    return frozenset(item.name for item in owned_items)


def filter_owned_items(
    items: Iterable[MenuItem],
    owned: frozenset[str] | set[str],
) -> list[MenuItem]:
    """Drop items the user already has, matched on the exact stored name.

    Category and restaurant are ignored: a dish with the same name anywhere
    counts as already owned.
    """
    return [item for item in items if item.name not in owned]
