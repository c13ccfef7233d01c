"""Domain exceptions used across API, services and adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_REQUEST",
            message=message
            or compose_error_message(
                cause="Request data violates business rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class CompetitionNotFoundError(DomainError):
    """Raised when the referenced competition does not exist."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="COMPETITION_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Competition was not found.",
                action="Check the competition identifier and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class RegistrationNotFoundError(DomainError):
    """Raised when the referenced registration does not exist."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="REGISTRATION_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Registration was not found.",
                action="Check the registration identifier and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class DuplicateRegistrationError(DomainError):
    """Raised when the participant already holds a paid registration."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="ALREADY_REGISTERED",
            message=message
            or compose_error_message(
                cause=(
                    "A registration with this email, mobile or national ID "
                    "already exists and is paid."
                ),
                action="No new payment is needed for this participant.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class PaymentAlreadyCompletedError(DomainError):
    """Raised when a payment action targets an already paid registration."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PAYMENT_ALREADY_COMPLETED",
            message=message
            or compose_error_message(
                cause="Payment is already successful for this registration.",
                action="Do not start a new payment for this registration.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class InvalidPaymentStatusTransitionError(DomainError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_PAYMENT_STATUS_TRANSITION",
            message=message
            or compose_error_message(
                cause="Requested payment status change is not allowed.",
                action="Check the current payment status before updating it.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class DocumentUploadError(DomainError):
    """Raised when the identity document cannot be stored."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="UPLOAD_FAILED",
            message=message
            or compose_error_message(
                cause="The identity document could not be stored.",
                action="Retry the submission later.",
            ),
            status_code=HTTPStatus.BAD_GATEWAY,
            details=details or {},
        )


class PaymentInitiationError(DomainError):
    """Raised when the payment gateway refuses to create a payment session."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PAYMENT_INITIATION_FAILED",
            message=message
            or compose_error_message(
                cause="The payment gateway could not start a payment.",
                action="Retry the payment for this registration later.",
            ),
            status_code=HTTPStatus.BAD_GATEWAY,
            details=details or {},
        )


class InvalidWebhookSignatureError(DomainError):
    """Raised when a webhook payload is not signed with the shared secret."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message
            or compose_error_message(
                cause="Webhook signature does not match the payload.",
                action="Sign the raw payload with the configured shared secret.",
            ),
            status_code=HTTPStatus.UNAUTHORIZED,
            details=details or {},
        )


class GatewayError(Exception):
    """Transport or upstream failure reported by the payment gateway."""

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        upstream_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def as_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {"gateway_message": self.message}
        if self.upstream_status is not None:
            details["upstream_status"] = self.upstream_status
        if self.upstream_body is not None:
            details["upstream_body"] = self.upstream_body
        return details


class StorageUploadError(Exception):
    """Failure reported by the document storage service."""


class EmailDeliveryError(Exception):
    """Failure reported by the transactional email service."""
