"""Pydantic schemas for explicit skills, tags and operator profile overrides."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str


class UserTagInput(BaseModel):
    tag_id: int
    score: int = Field(..., ge=0, le=5, description="0 removes the tag")


class UserTagsUpdate(BaseModel):
    tags: list[UserTagInput]


class UserTagsUpdateResult(BaseModel):
    success: bool = True
    tag_count: int


class ProfileUpdate(BaseModel):
    avg_price_viewed: float | None = Field(None, ge=0, le=50000)
    access_tier: Literal["basic", "middle", "high"] | None = None
    platform_score: float | None = Field(None, ge=0, le=10)
    engagement_score: float | None = Field(None, ge=0, le=100)
