"""Pydantic schemas for payment endpoints."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from competition_registration.api.schemas.registrations import RegistrationResponse
from competition_registration.services.registration_workflow import (
    RegistrationResult,
    WebhookAck,
)


class PaymentSessionResponse(BaseModel):
    """Hosted payment page for a registration."""

    id: UUID
    payment_url: str | None
    retry_allowed: bool
    registration: RegistrationResponse

    @classmethod
    def from_result(cls, result: RegistrationResult) -> PaymentSessionResponse:
        return cls(
            id=result.registration.id,
            payment_url=result.payment_url,
            retry_allowed=result.retry_allowed,
            registration=RegistrationResponse.from_model(result.registration),
        )


class WebhookAckResponse(BaseModel):
    """Acknowledgement returned to the gateway."""

    status: str
    id: str | None = None
    reason: str | None = None

    @classmethod
    def from_ack(cls, ack: WebhookAck) -> WebhookAckResponse:
        return cls(status=ack.status, id=ack.record_id, reason=ack.reason)
