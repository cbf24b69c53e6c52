from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Candidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    vicinity: str = ""
    geometry: dict[str, Any] | None = None
    distance: float
    icon: str | None = None
    photo_url: str = Field(default="", alias="photoUrl")


class SearchResponse(BaseModel):
    results: list[Candidate]
