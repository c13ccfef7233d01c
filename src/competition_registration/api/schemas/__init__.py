"""API request and response schemas."""

from competition_registration.api.schemas.competitions import (
    CompetitionListResponse,
    CompetitionResponse,
    CreateCompetitionRequest,
    UpdateCompetitionRequest,
)
from competition_registration.api.schemas.payments import (
    PaymentSessionResponse,
    WebhookAckResponse,
)
from competition_registration.api.schemas.registrations import (
    RegistrationListResponse,
    RegistrationResponse,
    SubmissionResponse,
    UpdatePaymentStatusRequest,
)

__all__ = [
    "CompetitionListResponse",
    "CompetitionResponse",
    "CreateCompetitionRequest",
    "PaymentSessionResponse",
    "RegistrationListResponse",
    "RegistrationResponse",
    "SubmissionResponse",
    "UpdateCompetitionRequest",
    "UpdatePaymentStatusRequest",
    "WebhookAckResponse",
]
