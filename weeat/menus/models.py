from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = structlog.get_logger(__name__)


def coerce_allergens(value: Any) -> list[str]:
    """Load an allergen field from a stored document.

    Anything that is not a list-like collection is treated as "no allergens"
    so that a single malformed record never hides a whole menu.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(tag) for tag in value if isinstance(tag, str)]
    logger.warning("menu_item_allergens_malformed", value_type=type(value).__name__)
    return []


class GeoCoordinate(BaseModel):
    lat: float
    lng: float


class MenuItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str = Field(..., min_length=1)
    description: str = ""
    allergens: list[str] = Field(default_factory=list)
    note: str | None = None
    category: str = ""
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("allergens", mode="before")
    @classmethod
    def validate_allergens(cls, value: Any) -> list[str]:
        return coerce_allergens(value)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, value: Any) -> str:
        return value or ""


class MenuCategory(BaseModel):
    id: str | None = None
    category: str
    items: list[MenuItem] = Field(default_factory=list)
    index: int = 0


class RestaurantSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    thumbnail_url: str = Field(default="", alias="thumbnailUrl")

    @field_validator("thumbnail_url", mode="before")
    @classmethod
    def validate_thumbnail(cls, value: Any) -> str:
        return value or ""


class Restaurant(RestaurantSummary):
    menu: list[MenuCategory] = Field(default_factory=list)


class RestaurantLocation(BaseModel):
    address: str = ""
    coordinates: GeoCoordinate


class UserMenu(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    restaurant_name: str = Field(..., min_length=1, alias="restaurantName")
    dishes: list[MenuItem] = Field(default_factory=list)


class UserMenuUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    restaurant_name: str | None = Field(default=None, min_length=1, alias="restaurantName")
    dishes: list[MenuItem] | None = None


class UserMenus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    created_menus: list[UserMenu] = Field(default_factory=list, alias="createdMenus")
    saved_menus: list[UserMenu] = Field(default_factory=list, alias="savedMenus")

    def owned_items(self) -> list[MenuItem]:
        return [
            dish
            for menu in [*self.saved_menus, *self.created_menus]
            for dish in menu.dishes
        ]


class PreferredLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    restaurant_id: str = Field(..., min_length=1, alias="restaurantId")
    address: str = ""
    coordinates: GeoCoordinate


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    allergens: dict[str, bool] = Field(default_factory=dict)
    preferred_location: PreferredLocation | None = Field(
        default=None, alias="preferredLocation"
    )

    @field_validator("allergens", mode="before")
    @classmethod
    def validate_allergens(cls, value: Any) -> dict[str, bool]:
        if not isinstance(value, dict):
            return {}
        return {str(key): flag is True for key, flag in value.items()}
