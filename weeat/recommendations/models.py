from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from weeat.menus.models import MenuCategory


class RecommendedRestaurant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    thumbnail_url: str = Field(default="", alias="thumbnailUrl")
    menu: list[MenuCategory] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recommendations: list[RecommendedRestaurant]
    total_candidates: int = Field(..., alias="totalCandidates")
