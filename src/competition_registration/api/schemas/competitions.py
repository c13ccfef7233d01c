"""Pydantic schemas for competition catalog endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from competition_registration.db.models.competition import Competition
from competition_registration.domain.money import format_money

PRICE_PATTERN = r"^[0-9]+(\.[0-9]{1,2})?$"


class CreateCompetitionRequest(BaseModel):
    """Payload for creating a competition."""

    name: str = Field(min_length=1, max_length=200)
    price: str = Field(pattern=PRICE_PATTERN)
    city: str = Field(min_length=1, max_length=120)
    passport_required: bool = False

    @field_validator("name", "city")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value cannot be blank.")
        return trimmed


class UpdateCompetitionRequest(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    price: str | None = Field(default=None, pattern=PRICE_PATTERN)
    city: str | None = Field(default=None, min_length=1, max_length=120)
    passport_required: bool | None = None


class CompetitionResponse(BaseModel):
    """Public competition representation."""

    id: UUID
    name: str
    price: str = Field(pattern=r"^[0-9]+\.[0-9]{2}$")
    passport_required: bool
    city: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, competition: Competition) -> CompetitionResponse:
        return cls(
            id=competition.id,
            name=competition.name,
            price=format_money(competition.price),
            passport_required=competition.passport_required,
            city=competition.city,
            created_at=competition.created_at,
            updated_at=competition.updated_at,
        )


class CompetitionListResponse(BaseModel):
    """Competitions list payload."""

    items: list[CompetitionResponse]

    @classmethod
    def from_models(cls, competitions: list[Competition]) -> CompetitionListResponse:
        return cls(
            items=[CompetitionResponse.from_model(item) for item in competitions]
        )
