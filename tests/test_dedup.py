from __future__ import annotations

from weeat.menus.models import MenuItem
from weeat.recommendations.dedup import filter_owned_items, owned_names


def _item(name: str, category: str = "Mains") -> MenuItem:
    return MenuItem(name=name, category=category)


def test_owned_item_is_excluded_regardless_of_category() -> None:
    owned = owned_names([_item("Caesar Salad", "Starters")])
    candidate = _item("Caesar Salad", "Salads")

    assert filter_owned_items([candidate, _item("Soup")], owned) == [_item("Soup")]


def test_name_match_is_case_sensitive() -> None:
    owned = owned_names([_item("Caesar Salad")])

    result = filter_owned_items([_item("caesar salad")], owned)

    assert [i.name for i in result] == ["caesar salad"]


def test_dedup_is_idempotent() -> None:
    owned = owned_names([_item("Pho"), _item("Ramen")])
    items = [_item("Pho"), _item("Udon"), _item("Ramen"), _item("Soba")]

    once = filter_owned_items(items, owned)
    twice = filter_owned_items(once, owned)

    assert once == twice
    assert [i.name for i in once] == ["Udon", "Soba"]


def test_missing_owned_items_removes_nothing() -> None:
    items = [_item("Pho")]
    assert filter_owned_items(items, owned_names(None)) == items
