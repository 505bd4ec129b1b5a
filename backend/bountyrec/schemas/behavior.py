"""Pydantic schemas for interactions, blended scores and divergence prompts."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

InteractionType = Literal["view", "like", "submit", "claim", "complete"]
DivergenceActionType = Literal["add_skill", "remove_skill", "keep", "dismiss"]


class InteractionCreate(BaseModel):
    bounty_id: int
    type: InteractionType


class InteractionResult(BaseModel):
    success: bool = True
    new_engagement_score: float
    behavior_tracked: bool


class ViewCreate(BaseModel):
    bounty_id: int
    duration: int | None = Field(None, ge=0, description="Seconds spent viewing")


class ViewResult(BaseModel):
    avg_price: float


class BlendedTagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tag_id: int
    tag_name: str
    explicit_score: float
    implicit_score: float
    blended_score: float
    divergent: bool


class BlendedPriceRangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min: float
    max: float
    source: Literal["explicit", "implicit", "blended"]


class DivergenceAlertRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: Literal["new_interest", "unused_skill"]
    tag_id: int
    tag_name: str
    explicit_score: float
    implicit_score: float
    message: str


class DivergenceResponseCreate(BaseModel):
    tag_id: int
    action: DivergenceActionType
    new_score: int | None = Field(None, ge=1, le=5)

    @model_validator(mode="after")
    def _score_required_for_add(self):
        if self.action == "add_skill" and self.new_score is None:
            raise ValueError("new_score is required when adding a skill")
        return self
