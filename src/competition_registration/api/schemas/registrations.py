"""Pydantic schemas for registration endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from competition_registration.db.models.registration import Registration
from competition_registration.domain.money import format_money

PaymentStatusValue = Literal["pending", "success", "failed"]


class RegistrationResponse(BaseModel):
    """Serialized registration returned by API."""

    id: UUID
    registration_id: str | None
    name: str
    email: str
    mobile: str
    address: str
    state: str
    postal_code: str
    national_id: str
    work_place: str | None
    competition_id: UUID
    competition_name: str
    competition_city: str
    document_number: str | None
    document_url: str | None
    accepted_terms: bool
    amount: str = Field(pattern=r"^[0-9]+\.[0-9]{2}$")
    payment_status: PaymentStatusValue
    payment_request_id: str | None
    payment_id: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, registration: Registration) -> RegistrationResponse:
        return cls(
            id=registration.id,
            registration_id=registration.registration_id,
            name=registration.name,
            email=registration.email,
            mobile=registration.mobile,
            address=registration.address,
            state=registration.state,
            postal_code=registration.postal_code,
            national_id=registration.national_id,
            work_place=registration.work_place,
            competition_id=registration.competition_id,
            competition_name=registration.competition_name,
            competition_city=registration.competition_city,
            document_number=registration.document_number,
            document_url=registration.document_url,
            accepted_terms=registration.accepted_terms,
            amount=format_money(registration.amount),
            payment_status=registration.payment_status.value,
            payment_request_id=registration.payment_request_id,
            payment_id=registration.payment_id,
            created_at=registration.created_at,
            updated_at=registration.updated_at,
        )


class SubmissionResponse(BaseModel):
    """Result of a submission: a new record or the existing unpaid one."""

    registration: RegistrationResponse
    retry_allowed: bool
    payment_url: str | None = None


class RegistrationListResponse(BaseModel):
    """Paginated registration list response."""

    items: list[RegistrationResponse]
    total: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)

    @classmethod
    def from_models(
        cls,
        *,
        items: list[Registration],
        total: int,
        limit: int,
        offset: int,
    ) -> RegistrationListResponse:
        return cls(
            items=[RegistrationResponse.from_model(item) for item in items],
            total=total,
            limit=limit,
            offset=offset,
        )


class UpdatePaymentStatusRequest(BaseModel):
    """Administrative payment status change."""

    registration_id: str = Field(
        min_length=1,
        max_length=64,
        description="Internal record id or human-readable registration id.",
    )
    payment_status: PaymentStatusValue
    payment_id: str | None = Field(default=None, max_length=120)

    @field_validator("registration_id")
    @classmethod
    def validate_reference(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("registration_id cannot be blank.")
        return trimmed
