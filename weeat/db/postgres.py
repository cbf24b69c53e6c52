from __future__ import annotations

import uuid
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from weeat.core.config import settings
from weeat.core.errors import MenuNotFoundError, RestaurantNotFoundError
from weeat.db.base import MenuRepository
from weeat.db.pool import get_pool
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

SAVED = "saved"
CREATED = "created"


def _new_id() -> str:
    return uuid.uuid4().hex


def _dump_dishes(dishes: list[MenuItem]) -> Json:
    return Json([dish.model_dump(by_alias=True, exclude_none=True) for dish in dishes])


class PostgresMenuRepository(MenuRepository):
    def __init__(
        self,
        dsn: str | None = None,
        pool: ConnectionPool | None = None,
    ) -> None:
        self.dsn = dsn or settings.postgres_dsn
        self._pool: ConnectionPool | None = pool
        self._use_shared_pool = pool is None and dsn is None
        self._tables_ensured = False
        if dsn is not None and pool is None:
            self._pool = ConnectionPool(
                conninfo=dsn,
                min_size=1,
                max_size=1,
                kwargs={"row_factory": dict_row},
                check=ConnectionPool.check_connection,
            )
        if self._pool is not None and settings.db_auto_create:
            self._tables_ensured = True
            self._ensure_tables()

    @property
    def pool(self) -> ConnectionPool:
        if self._pool is None:
            if self._use_shared_pool:
                self._pool = get_pool()
            else:
                raise RuntimeError("Database pool not initialized")
        if settings.db_auto_create and not self._tables_ensured:
            self._tables_ensured = True
            self._ensure_tables()
        return self._pool

    def list_restaurants(self) -> list[RestaurantSummary]:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, name, thumbnail_url
                    FROM restaurants
                    ORDER BY created_at, id
                    """
                )
                rows = cur.fetchall()
        return [self._row_to_restaurant(row) for row in rows]

    def get_restaurant(self, restaurant_id: str) -> RestaurantSummary:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, name, thumbnail_url FROM restaurants WHERE id = %(id)s",
                    {"id": restaurant_id},
                )
                row = cur.fetchone()
        if row is None:
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id} not found")
        return self._row_to_restaurant(row)

    def find_restaurant_by_name(self, name: str) -> RestaurantSummary | None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, name, thumbnail_url
                    FROM restaurants
                    WHERE name = %(name)s
                    ORDER BY created_at, id
                    LIMIT 1
                    """,
                    {"name": name},
                )
                row = cur.fetchone()
        return self._row_to_restaurant(row) if row else None

    def get_menu(self, restaurant_id: str) -> list[MenuCategory]:
        self.get_restaurant(restaurant_id)
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT c.id AS category_id, c.category, c.idx,
                           i.id AS item_id, i.data
                    FROM menu_categories c
                    LEFT JOIN menu_items i ON i.category_id = c.id
                    WHERE c.restaurant_id = %(restaurant_id)s
                    ORDER BY c.idx, c.id, i.created_at, i.id
                    """,
                    {"restaurant_id": restaurant_id},
                )
                rows = cur.fetchall()

        categories: dict[str, MenuCategory] = {}
        for row in rows:
            category = categories.get(row["category_id"])
            if category is None:
                category = MenuCategory(
                    id=row["category_id"],
                    category=row["category"],
                    index=row["idx"],
                )
                categories[row["category_id"]] = category
            if row["item_id"] is not None:
                data: dict[str, Any] = dict(row["data"] or {})
                data["id"] = row["item_id"]
                data["category"] = row["category"]
                category.items.append(MenuItem.model_validate(data))
        return list(categories.values())

    def add_restaurant(
        self,
        name: str,
        location: RestaurantLocation | None = None,
        thumbnail_url: str = "",
    ) -> RestaurantSummary:
        restaurant_id = _new_id()
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO restaurants (id, name, thumbnail_url)
                    VALUES (%(id)s, %(name)s, %(thumbnail_url)s)
                    RETURNING id, name, thumbnail_url
                    """,
                    {"id": restaurant_id, "name": name, "thumbnail_url": thumbnail_url},
                )
                row = cur.fetchone()
                if location is not None:
                    cur.execute(
                        """
                        INSERT INTO restaurant_locations (restaurant_id, address, lat, lng)
                        VALUES (%(restaurant_id)s, %(address)s, %(lat)s, %(lng)s)
                        """,
                        {
                            "restaurant_id": restaurant_id,
                            "address": location.address,
                            "lat": location.coordinates.lat,
                            "lng": location.coordinates.lng,
                        },
                    )
            conn.commit()
        return self._row_to_restaurant(row)

    def add_menu_category(
        self, restaurant_id: str, category: str, index: int = 0
    ) -> MenuCategory:
        self.get_restaurant(restaurant_id)
        category_id = _new_id()
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO menu_categories (id, restaurant_id, category, idx)
                    VALUES (%(id)s, %(restaurant_id)s, %(category)s, %(idx)s)
                    """,
                    {
                        "id": category_id,
                        "restaurant_id": restaurant_id,
                        "category": category,
                        "idx": index,
                    },
                )
            conn.commit()
        return MenuCategory(id=category_id, category=category, index=index)

    def add_menu_item(
        self, restaurant_id: str, category_id: str, item: MenuItem
    ) -> MenuItem:
        item_id = item.id or _new_id()
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT category FROM menu_categories
                    WHERE id = %(id)s AND restaurant_id = %(restaurant_id)s
                    """,
                    {"id": category_id, "restaurant_id": restaurant_id},
                )
                row = cur.fetchone()
                if row is None:
                    raise MenuNotFoundError(f"Menu category {category_id} not found")
                cur.execute(
                    """
                    INSERT INTO menu_items (id, category_id, data)
                    VALUES (%(id)s, %(category_id)s, %(data)s)
                    """,
                    {
                        "id": item_id,
                        "category_id": category_id,
                        "data": Json(
                            item.model_dump(
                                by_alias=True, exclude={"id", "category"}, exclude_none=True
                            )
                        ),
                    },
                )
            conn.commit()
        return item.model_copy(update={"id": item_id, "category": row["category"]})

    def get_user_profile(self, user_id: str) -> UserProfile | None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT profile FROM users WHERE user_id = %(user_id)s",
                    {"user_id": user_id},
                )
                row = cur.fetchone()
        if row is None:
            return None
        return UserProfile.model_validate(row["profile"] or {})

    def upsert_user_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO users (user_id, profile, updated_at)
                    VALUES (%(user_id)s, %(profile)s, NOW())
                    ON CONFLICT (user_id)
                    DO UPDATE SET profile = EXCLUDED.profile, updated_at = NOW()
                    RETURNING profile
                    """,
                    {
                        "user_id": user_id,
                        "profile": Json(profile.model_dump(mode="json", by_alias=True)),
                    },
                )
                row = cur.fetchone()
            conn.commit()
        return UserProfile.model_validate(row["profile"])

    def set_preferred_location(
        self, user_id: str, location: PreferredLocation
    ) -> UserProfile:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO users (user_id, profile, updated_at)
                    VALUES (%(user_id)s, %(patch)s, NOW())
                    ON CONFLICT (user_id)
                    DO UPDATE SET profile = users.profile || EXCLUDED.profile,
                                  updated_at = NOW()
                    RETURNING profile
                    """,
                    {
                        "user_id": user_id,
                        "patch": Json(
                            {"preferredLocation": location.model_dump(mode="json", by_alias=True)}
                        ),
                    },
                )
                row = cur.fetchone()
            conn.commit()
        return UserProfile.model_validate(row["profile"])

    def list_saved_menus(self, user_id: str) -> list[UserMenu]:
        return self._list_menus(user_id, SAVED)

    def list_created_menus(self, user_id: str) -> list[UserMenu]:
        return self._list_menus(user_id, CREATED)

    def add_saved_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        return self._insert_menu(user_id, SAVED, menu)

    def add_created_menu(self, user_id: str, menu: UserMenu) -> UserMenu:
        return self._insert_menu(user_id, CREATED, menu)

    def update_created_menu(
        self, user_id: str, menu_id: str, payload: UserMenuUpdate
    ) -> UserMenu:
        fields: dict[str, Any] = {}
        if payload.restaurant_name is not None:
            fields["restaurant_name"] = payload.restaurant_name
        if payload.dishes is not None:
            fields["dishes"] = _dump_dishes(payload.dishes)

        if not fields:
            return self._get_menu(user_id, menu_id, CREATED)

        set_clause = ", ".join(f"{key} = %({key})s" for key in fields)
        fields.update({"id": menu_id, "user_id": user_id, "kind": CREATED})
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE user_menus
                    SET {set_clause}, updated_at = NOW()
                    WHERE id = %(id)s AND user_id = %(user_id)s AND kind = %(kind)s
                    RETURNING id, restaurant_name, dishes
                    """,
                    fields,
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise MenuNotFoundError(f"Created menu {menu_id} not found")
        return self._row_to_menu(row)

    def delete_created_menu(self, user_id: str, menu_id: str) -> None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM user_menus
                    WHERE id = %(id)s AND user_id = %(user_id)s AND kind = %(kind)s
                    """,
                    {"id": menu_id, "user_id": user_id, "kind": CREATED},
                )
                deleted = cur.rowcount
            conn.commit()
        if not deleted:
            raise MenuNotFoundError(f"Created menu {menu_id} not found")

    def add_item_to_created_menu(
        self, user_id: str, restaurant_name: str, item: MenuItem
    ) -> UserMenu:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE user_menus
                    SET dishes = dishes || %(dish)s, updated_at = NOW()
                    WHERE id = (
                        SELECT id FROM user_menus
                        WHERE user_id = %(user_id)s
                          AND kind = %(kind)s
                          AND restaurant_name = %(restaurant_name)s
                        ORDER BY created_at, id
                        LIMIT 1
                    )
                    RETURNING id, restaurant_name, dishes
                    """,
                    {
                        "dish": _dump_dishes([item]),
                        "user_id": user_id,
                        "kind": CREATED,
                        "restaurant_name": restaurant_name,
                    },
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise MenuNotFoundError(
                f"Restaurant {restaurant_name} does not exist in created menus."
            )
        return self._row_to_menu(row)

    def _list_menus(self, user_id: str, kind: str) -> list[UserMenu]:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, restaurant_name, dishes
                    FROM user_menus
                    WHERE user_id = %(user_id)s AND kind = %(kind)s
                    ORDER BY created_at, id
                    """,
                    {"user_id": user_id, "kind": kind},
                )
                rows = cur.fetchall()
        return [self._row_to_menu(row) for row in rows]

    def _get_menu(self, user_id: str, menu_id: str, kind: str) -> UserMenu:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, restaurant_name, dishes
                    FROM user_menus
                    WHERE id = %(id)s AND user_id = %(user_id)s AND kind = %(kind)s
                    """,
                    {"id": menu_id, "user_id": user_id, "kind": kind},
                )
                row = cur.fetchone()
        if row is None:
            raise MenuNotFoundError(f"Menu {menu_id} not found")
        return self._row_to_menu(row)

    def _insert_menu(self, user_id: str, kind: str, menu: UserMenu) -> UserMenu:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO user_menus (id, user_id, kind, restaurant_name, dishes)
                    VALUES (%(id)s, %(user_id)s, %(kind)s, %(restaurant_name)s, %(dishes)s)
                    RETURNING id, restaurant_name, dishes
                    """,
                    {
                        "id": _new_id(),
                        "user_id": user_id,
                        "kind": kind,
                        "restaurant_name": menu.restaurant_name,
                        "dishes": _dump_dishes(menu.dishes),
                    },
                )
                row = cur.fetchone()
            conn.commit()
        return self._row_to_menu(row)

    def _get_conn(self):
        return self.pool.connection()

    def _ensure_tables(self) -> None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS restaurants (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        thumbnail_url TEXT NOT NULL DEFAULT '',
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS restaurant_locations (
                        id SERIAL PRIMARY KEY,
                        restaurant_id TEXT NOT NULL REFERENCES restaurants(id) ON DELETE CASCADE,
                        address TEXT NOT NULL DEFAULT '',
                        lat DOUBLE PRECISION NOT NULL,
                        lng DOUBLE PRECISION NOT NULL
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS menu_categories (
                        id TEXT PRIMARY KEY,
                        restaurant_id TEXT NOT NULL REFERENCES restaurants(id) ON DELETE CASCADE,
                        category TEXT NOT NULL,
                        idx INTEGER NOT NULL DEFAULT 0
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS menu_items (
                        id TEXT PRIMARY KEY,
                        category_id TEXT NOT NULL REFERENCES menu_categories(id) ON DELETE CASCADE,
                        data JSONB NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        user_id TEXT PRIMARY KEY,
                        profile JSONB NOT NULL DEFAULT '{}'::jsonb,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                )
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS user_menus (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        kind TEXT NOT NULL,
                        restaurant_name TEXT NOT NULL,
                        dishes JSONB NOT NULL DEFAULT '[]'::jsonb,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        CHECK (kind IN ('saved', 'created'))
                    )
                    """
                )
            conn.commit()

    @staticmethod
    def _row_to_restaurant(row: dict[str, Any]) -> RestaurantSummary:
        return RestaurantSummary(
            id=row["id"],
            name=row["name"],
            thumbnail_url=row["thumbnail_url"],
        )

    @staticmethod
    def _row_to_menu(row: dict[str, Any]) -> UserMenu:
        return UserMenu(
            id=row["id"],
            restaurant_name=row["restaurant_name"],
            dishes=[MenuItem.model_validate(dish) for dish in row["dishes"] or []],
        )
