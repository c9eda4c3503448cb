"""Pydantic schemas for prompts, prices and ratings."""

from __future__ import annotations

from datetime import datetime

from pydantic import (BaseModel, Field, StrictFloat, StrictInt, field_validator,
                      model_validator)

from promptmart.models.prompt import PROMPT_STATUSES
from promptmart.schemas.user import StoredFile, UserPublic


def check_offer_price(regular: float | None, offer: float | None) -> None:
    if offer is not None and regular is not None and offer > regular:
        raise ValueError("Offer price cannot be greater than regular price")


def _check_status(v: str | None) -> str | None:
    if v is not None and v not in PROMPT_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(PROMPT_STATUSES)}")
    return v


class PromptCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=1000)
    status: str = "active"
    regular_price: float = Field(ge=0)
    offer_price: float | None = Field(default=None, ge=0)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return _check_status(v)  # type: ignore[return-value]

    @model_validator(mode="after")
    def _offer_le_regular(self) -> "PromptCreate":
        check_offer_price(self.regular_price, self.offer_price)
        return self


class PromptUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=1000)
    status: str | None = None
    regular_price: float | None = Field(default=None, ge=0)
    offer_price: float | None = Field(default=None, ge=0)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("status")
    @classmethod
    def _status(cls, v: str | None) -> str | None:
        return _check_status(v)

    @model_validator(mode="after")
    def _offer_le_regular(self) -> "PromptUpdate":
        check_offer_price(self.regular_price, self.offer_price)
        return self


class PriceRead(BaseModel):
    regular: float
    offer: float | None = None


class RatingRead(BaseModel):
    total_ratings: int
    average: float

    model_config = {"from_attributes": True}


class PromptRead(BaseModel):
    id: int
    name: str
    description: str
    images: list[StoredFile]
    status: str
    price: PriceRead
    rating: RatingRead
    owner: UserPublic
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    pages: int


class PromptPage(BaseModel):
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: list[PromptRead]


class RateRequest(BaseModel):
    # Strict so JSON booleans and numeric strings are rejected
    rating: StrictFloat | StrictInt


class RatingResponse(BaseModel):
    success: bool = True
    data: RatingRead


class DeleteResponse(BaseModel):
    success: bool
    message: str
