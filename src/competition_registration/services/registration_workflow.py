"""Registration and payment reconciliation workflow."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal, Protocol
from urllib.parse import urlencode
from uuid import UUID

from competition_registration.db.models.competition import Competition
from competition_registration.db.models.registration import (
    PaymentStatus,
    Registration,
)
from competition_registration.domain.documents import (
    DocumentUpload,
    validate_document,
)
from competition_registration.domain.errors import (
    CompetitionNotFoundError,
    DocumentUploadError,
    DuplicateRegistrationError,
    GatewayError,
    InvalidPaymentStatusTransitionError,
    InvalidRequestError,
    InvalidWebhookSignatureError,
    PaymentAlreadyCompletedError,
    PaymentInitiationError,
    RegistrationNotFoundError,
    StorageUploadError,
    compose_error_message,
)
from competition_registration.domain.identity import (
    generate_registration_id,
    normalize_email,
    normalize_mobile,
    normalize_national_id,
    storage_folder_name,
)
from competition_registration.domain.money import parse_money
from competition_registration.domain.payment_status import can_transition, sources_for
from competition_registration.infrastructure.payments.instamojo_gateway import (
    BuyerContact,
    PaymentSession,
    PaymentVerification,
    WebhookEvent,
)
from competition_registration.services.notification_service import (
    ConfirmationDetails,
)

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = (
    "name",
    "email",
    "mobile",
    "address",
    "state",
    "postal_code",
    "national_id",
)
REGISTRATION_ID_ATTEMPTS = 5


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by the workflow."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class CompetitionRepositoryProtocol(Protocol):
    """Competition lookups consumed by the workflow."""

    def get(self, competition_id: UUID) -> Competition | None: ...


class RegistrationRepositoryProtocol(Protocol):
    """Registration persistence consumed by the workflow."""

    def get(self, registration_id: UUID) -> Registration | None: ...

    def get_by_registration_id(self, registration_id: str) -> Registration | None: ...

    def get_by_payment_request_id(
        self,
        payment_request_id: str,
    ) -> Registration | None: ...

    def find_matching_identity(
        self,
        *,
        email: str,
        mobile: str,
        national_id: str,
    ) -> list[Registration]: ...

    def registration_id_exists(self, registration_id: str) -> bool: ...

    def add(self, registration: Registration) -> Registration: ...

    def transition_status(
        self,
        registration: Registration,
        *,
        from_statuses: Iterable[PaymentStatus],
        to_status: PaymentStatus,
        values: dict[str, Any] | None = None,
    ) -> bool: ...

    def delete(self, registration: Registration) -> None: ...


class PaymentGatewayProtocol(Protocol):
    """Payment gateway contract consumed by the workflow."""

    def create_payment_session(
        self,
        *,
        purpose: str,
        amount: Decimal,
        buyer: BuyerContact,
        callback_url: str,
        webhook_url: str | None = None,
    ) -> PaymentSession: ...

    def verify_payment(self, payment_id: str) -> PaymentVerification: ...

    def verify_webhook_signature(
        self,
        raw_payload: bytes,
        signature: str | None,
        secret: str,
    ) -> bool: ...

    def parse_webhook(
        self,
        raw_payload: bytes,
        content_type: str | None,
    ) -> WebhookEvent: ...


class DocumentUploaderProtocol(Protocol):
    """Document storage contract consumed by the workflow."""

    def upload(
        self,
        content: bytes,
        desired_filename: str,
        owner_folder: str,
    ) -> str: ...


class NotificationDispatcherProtocol(Protocol):
    """Hands a confirmation off to run outside the request transaction."""

    def dispatch(self, details: ConfirmationDetails) -> None: ...


@dataclass(slots=True, frozen=True)
class WorkflowConfig:
    """Explicit configuration, built once from settings at startup."""

    backend_base_url: str
    frontend_base_url: str
    webhook_secret: str = ""
    document_policy: Literal["required", "optional"] = "optional"
    registration_id_prefix: str = "REG"
    max_document_bytes: int = 5 * 1024 * 1024


@dataclass(slots=True, frozen=True)
class SubmitRegistrationInput:
    """Input model for one registration submission."""

    competition_id: UUID
    name: str
    email: str
    mobile: str
    address: str
    state: str
    postal_code: str
    national_id: str
    accepted_terms: bool
    amount: str
    work_place: str | None = None
    document_number: str | None = None


@dataclass(slots=True, frozen=True)
class CallbackParams:
    """Query parameters appended by the gateway to the user redirect."""

    payment_id: str | None = None
    payment_request_id: str | None = None
    payment_status: str | None = None


@dataclass(slots=True)
class RegistrationResult:
    """Outcome of submit and retry."""

    registration: Registration
    created: bool
    retry_allowed: bool = False
    payment_url: str | None = None


@dataclass(slots=True, frozen=True)
class CallbackOutcome:
    """Where the browser goes after the payment redirect."""

    redirect_url: str
    payment_status: PaymentStatus | None


@dataclass(slots=True, frozen=True)
class WebhookAck:
    """Acknowledgement body returned to the gateway."""

    status: str
    record_id: str | None = None
    reason: str | None = None


class RegistrationWorkflow:
    """Coordinates submission, payment sessions and payment confirmation."""

    def __init__(
        self,
        *,
        competition_repository: CompetitionRepositoryProtocol,
        registration_repository: RegistrationRepositoryProtocol,
        payment_gateway: PaymentGatewayProtocol,
        document_uploader: DocumentUploaderProtocol,
        notification_dispatcher: NotificationDispatcherProtocol,
        session: SessionProtocol,
        config: WorkflowConfig,
    ) -> None:
        self._competition_repository = competition_repository
        self._registration_repository = registration_repository
        self._payment_gateway = payment_gateway
        self._document_uploader = document_uploader
        self._notification_dispatcher = notification_dispatcher
        self._session = session
        self._config = config

    def submit(
        self,
        payload: SubmitRegistrationInput,
        document: DocumentUpload | None = None,
        *,
        start_payment: bool = True,
    ) -> RegistrationResult:
        """Validate, deduplicate, persist and optionally start payment."""

        competition = self._competition_repository.get(payload.competition_id)
        if competition is None:
            raise CompetitionNotFoundError(
                details={"competition_id": str(payload.competition_id)}
            )

        fields = self._validated_text_fields(payload)
        self._ensure_terms_accepted(payload)
        self._ensure_amount_matches_price(payload.amount, competition)
        document, document_number = self._resolve_document(
            competition=competition,
            document=document,
            document_number=payload.document_number,
        )

        email = normalize_email(fields["email"])
        mobile = normalize_mobile(fields["mobile"])
        national_id = normalize_national_id(fields["national_id"])

        existing = self._find_existing(
            email=email,
            mobile=mobile,
            national_id=national_id,
        )
        if existing is not None:
            return RegistrationResult(
                registration=existing,
                created=False,
                retry_allowed=True,
            )

        document_url = None
        if document is not None:
            document_url = self._upload_document(document, fields["name"])

        registration = Registration(
            name=fields["name"],
            email=email,
            mobile=mobile,
            address=fields["address"],
            state=fields["state"],
            postal_code=fields["postal_code"],
            national_id=national_id,
            work_place=(payload.work_place or "").strip() or None,
            competition_id=competition.id,
            competition_name=competition.name,
            competition_city=competition.city,
            document_number=document_number,
            document_url=document_url,
            accepted_terms=True,
            amount=competition.price,
            payment_status=PaymentStatus.PENDING,
        )
        try:
            self._registration_repository.add(registration)
            self._session.commit()
            self._session.refresh(registration)
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "registration_submitted",
            extra={
                "record_id": str(registration.id),
                "competition_id": str(competition.id),
            },
        )

        if not start_payment:
            return RegistrationResult(registration=registration, created=True)

        payment_url = self._start_payment_session(registration, competition)
        return RegistrationResult(
            registration=registration,
            created=True,
            payment_url=payment_url,
        )

    def retry(self, record_id: UUID) -> RegistrationResult:
        """Reset an unpaid registration and open a fresh payment session."""

        registration = self._registration_repository.get(record_id)
        if registration is None:
            raise RegistrationNotFoundError(details={"id": str(record_id)})
        if registration.payment_status == PaymentStatus.SUCCESS:
            raise PaymentAlreadyCompletedError(details={"id": str(record_id)})

        competition = self._competition_repository.get(registration.competition_id)
        if competition is None:
            raise CompetitionNotFoundError(
                message=compose_error_message(
                    cause="Associated competition not found.",
                    action="Register again for an existing competition.",
                ),
                details={"competition_id": str(registration.competition_id)},
            )

        try:
            reset = self._registration_repository.transition_status(
                registration,
                from_statuses=(PaymentStatus.PENDING, PaymentStatus.FAILED),
                to_status=PaymentStatus.PENDING,
                values={"payment_request_id": None, "payment_id": None},
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        if not reset:
            raise PaymentAlreadyCompletedError(details={"id": str(record_id)})

        logger.info("payment_retry_started", extra={"record_id": str(record_id)})
        payment_url = self._start_payment_session(registration, competition, retry=True)
        return RegistrationResult(
            registration=registration,
            created=False,
            payment_url=payment_url,
        )

    def confirm(self, record_id: str | None, params: CallbackParams) -> CallbackOutcome:
        """Resolve the user redirect from the gateway into a frontend page.

        Never raises for expected failures: every path ends in a redirect.
        """

        registration = self._registration_by_record_id(record_id)
        if registration is None:
            logger.warning("callback_registration_not_found", extra={"id": record_id})
            return self.error_redirect("RegistrationNotFound")

        if registration.payment_status == PaymentStatus.SUCCESS:
            return self._outcome_for(registration)

        if not params.payment_id:
            logger.info(
                "callback_without_payment_id",
                extra={"record_id": str(registration.id)},
            )
            self._apply_failure(registration)
            return self._outcome_for(registration)

        try:
            verification = self._payment_gateway.verify_payment(params.payment_id)
        except GatewayError as exc:
            logger.warning(
                "payment_verification_unavailable",
                extra={"record_id": str(registration.id), "error": exc.message},
            )
            return CallbackOutcome(
                redirect_url=self._frontend_url(
                    "registration-pending", id=str(registration.id)
                ),
                payment_status=registration.payment_status,
            )

        verified = (
            verification.is_paid
            and registration.payment_request_id is not None
            and verification.verified_session_id == registration.payment_request_id
        )
        if not verified:
            logger.warning(
                "payment_verification_rejected",
                extra={
                    "record_id": str(registration.id),
                    "gateway_status": verification.status,
                },
            )
            self._apply_failure(registration)
            return self._outcome_for(registration)

        try:
            self._apply_success(registration, payment_id=verification.payment_id)
        except DuplicateRegistrationError:
            return self.error_redirect("AlreadyRegistered")
        return self._outcome_for(registration)

    def confirm_via_webhook(
        self,
        raw_payload: bytes,
        signature: str | None,
        content_type: str | None,
    ) -> WebhookAck:
        """Apply a signed server-to-server payment notification."""

        if not self._payment_gateway.verify_webhook_signature(
            raw_payload,
            signature,
            self._config.webhook_secret,
        ):
            logger.warning("webhook_rejected", extra={"reason": "bad_signature"})
            raise InvalidWebhookSignatureError()

        try:
            event = self._payment_gateway.parse_webhook(raw_payload, content_type)
        except ValueError:
            logger.warning("webhook_ignored", extra={"reason": "invalid_payload"})
            return WebhookAck(status="ignored", reason="invalid_payload")

        registration = self._registration_by_reference(event.registration_reference)
        if registration is None and event.payment_request_id:
            registration = self._registration_repository.get_by_payment_request_id(
                event.payment_request_id
            )
        if registration is None:
            logger.warning(
                "webhook_ignored",
                extra={
                    "reason": "registration_not_found",
                    "reference": event.registration_reference,
                    "payment_request_id": event.payment_request_id,
                },
            )
            return WebhookAck(status="ignored", reason="registration_not_found")

        record_id = str(registration.id)
        if registration.payment_status == PaymentStatus.SUCCESS:
            return WebhookAck(status="already_confirmed", record_id=record_id)

        # A retry replaces the session; events for the old one change nothing.
        if (
            event.payment_request_id
            and event.payment_request_id != registration.payment_request_id
        ):
            logger.warning(
                "webhook_ignored",
                extra={
                    "reason": "stale_session",
                    "record_id": record_id,
                    "payment_request_id": event.payment_request_id,
                    "payment_id": event.payment_id,
                    "gateway_status": event.status,
                },
            )
            return WebhookAck(
                status="ignored",
                record_id=record_id,
                reason="stale_session",
            )

        if not event.is_paid or event.amount != registration.amount:
            logger.warning(
                "webhook_payment_not_accepted",
                extra={
                    "record_id": record_id,
                    "gateway_status": event.status,
                    "amount": str(event.amount),
                    "expected_amount": str(registration.amount),
                },
            )
            self._apply_failure(registration)
            return WebhookAck(status="failed", record_id=record_id)

        try:
            confirmed = self._apply_success(registration, payment_id=event.payment_id)
        except DuplicateRegistrationError:
            return WebhookAck(status="ignored", record_id=record_id, reason="duplicate")
        if not confirmed:
            return WebhookAck(status="already_confirmed", record_id=record_id)
        return WebhookAck(status="confirmed", record_id=record_id)

    def update_status(
        self,
        reference: str,
        target: PaymentStatus,
        *,
        payment_id: str | None = None,
    ) -> Registration:
        """Administrative status change, bound by the same state machine."""

        registration = self._registration_by_reference(reference)
        if registration is None:
            raise RegistrationNotFoundError(details={"registration_id": reference})
        if target == PaymentStatus.PENDING:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="A registration returns to pending only through a retry.",
                    action="Use the payment retry endpoint instead.",
                )
            )

        current = registration.payment_status
        if current == target:
            return registration
        if not can_transition(current, target):
            raise InvalidPaymentStatusTransitionError(
                details={"current": current.value, "requested": target.value}
            )

        if target == PaymentStatus.SUCCESS:
            self._apply_success(
                registration,
                payment_id=payment_id or registration.payment_id,
            )
        else:
            self._apply_failure(registration)
        return registration

    def delete(self, record_id: UUID) -> None:
        registration = self._registration_repository.get(record_id)
        if registration is None:
            raise RegistrationNotFoundError(details={"id": str(record_id)})
        try:
            self._registration_repository.delete(registration)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("registration_deleted", extra={"record_id": str(record_id)})

    def error_redirect(self, message: str) -> CallbackOutcome:
        return CallbackOutcome(
            redirect_url=self._frontend_url("registration-error", message=message),
            payment_status=None,
        )

    def _validated_text_fields(
        self,
        payload: SubmitRegistrationInput,
    ) -> dict[str, str]:
        fields: dict[str, str] = {}
        for field_name in REQUIRED_TEXT_FIELDS:
            value = (getattr(payload, field_name) or "").strip()
            if not value:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause=f"Missing required field: {field_name}.",
                        action="Fill in every required field and submit again.",
                    ),
                    details={"field": field_name},
                )
            fields[field_name] = value
        return fields

    def _ensure_terms_accepted(self, payload: SubmitRegistrationInput) -> None:
        if not payload.accepted_terms:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Terms and conditions were not accepted.",
                    action="Accept the terms and submit again.",
                ),
                details={"field": "accepted_terms"},
            )

    def _ensure_amount_matches_price(
        self,
        amount: str,
        competition: Competition,
    ) -> None:
        try:
            submitted = parse_money(amount)
        except ValueError as exc:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Amount must be a decimal number.",
                    action="Send the competition price as the amount.",
                ),
                details={"field": "amount"},
            ) from exc
        if submitted != competition.price:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Incorrect amount provided based on competition price.",
                    action="Send the current competition price as the amount.",
                ),
                details={"amount": str(submitted), "price": str(competition.price)},
            )

    def _resolve_document(
        self,
        *,
        competition: Competition,
        document: DocumentUpload | None,
        document_number: str | None,
    ) -> tuple[DocumentUpload | None, str | None]:
        if not competition.passport_required:
            return None, None

        number = (document_number or "").strip() or None
        if self._config.document_policy == "required":
            if number is None:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="Passport number is required for this competition.",
                        action="Provide the passport number and submit again.",
                    ),
                    details={"field": "document_number"},
                )
            if document is None:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="Passport file is required for this competition.",
                        action="Attach the passport file and submit again.",
                    ),
                    details={"field": "document_file"},
                )

        if document is None:
            return None, None
        validate_document(document, max_bytes=self._config.max_document_bytes)
        return document, number

    def _find_existing(
        self,
        *,
        email: str,
        mobile: str,
        national_id: str,
    ) -> Registration | None:
        matches = self._registration_repository.find_matching_identity(
            email=email,
            mobile=mobile,
            national_id=national_id,
        )
        if any(match.payment_status == PaymentStatus.SUCCESS for match in matches):
            logger.info(
                "registration_rejected_already_paid",
                extra={"matches": len(matches)},
            )
            raise DuplicateRegistrationError()
        if matches:
            logger.info(
                "registration_existing_unpaid",
                extra={"record_id": str(matches[0].id)},
            )
            return matches[0]
        return None

    def _upload_document(self, document: DocumentUpload, participant_name: str) -> str:
        try:
            return self._document_uploader.upload(
                document.content,
                document.filename,
                storage_folder_name(participant_name),
            )
        except StorageUploadError as exc:
            logger.error("document_upload_failed", extra={"error": str(exc)})
            raise DocumentUploadError(details={"reason": str(exc)}) from exc

    def _start_payment_session(
        self,
        registration: Registration,
        competition: Competition,
        *,
        retry: bool = False,
    ) -> str:
        purpose = f"Competition Reg: {competition.name}"
        if retry:
            purpose = f"{purpose} (Retry)"
        try:
            payment_session = self._payment_gateway.create_payment_session(
                purpose=purpose,
                amount=registration.amount,
                buyer=BuyerContact(
                    name=registration.name,
                    email=registration.email,
                    phone=registration.mobile,
                ),
                callback_url=self._callback_url(registration.id),
                webhook_url=self._webhook_url(),
            )
        except GatewayError as exc:
            logger.error(
                "payment_initiation_failed",
                extra={"record_id": str(registration.id), "error": exc.message},
            )
            self._apply_failure(registration)
            raise PaymentInitiationError(details=exc.as_details()) from exc

        try:
            self._registration_repository.transition_status(
                registration,
                from_statuses=(PaymentStatus.PENDING,),
                to_status=PaymentStatus.PENDING,
                values={"payment_request_id": payment_session.session_id},
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "payment_session_created",
            extra={
                "record_id": str(registration.id),
                "payment_request_id": payment_session.session_id,
            },
        )
        return payment_session.hosted_page_url

    def _apply_success(
        self,
        registration: Registration,
        *,
        payment_id: str | None,
    ) -> bool:
        """Mark paid once; only the writer that wins dispatches the email."""

        values: dict[str, Any] = {
            "registration_id": registration.registration_id
            or self._new_registration_id(),
        }
        if payment_id:
            values["payment_id"] = payment_id
        try:
            changed = self._registration_repository.transition_status(
                registration,
                from_statuses=sources_for(PaymentStatus.SUCCESS),
                to_status=PaymentStatus.SUCCESS,
                values=values,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        if not changed:
            return False
        logger.info(
            "payment_confirmed",
            extra={
                "record_id": str(registration.id),
                "registration_id": registration.registration_id,
            },
        )
        self._dispatch_confirmation(registration)
        return True

    def _apply_failure(self, registration: Registration) -> bool:
        if registration.payment_status == PaymentStatus.FAILED:
            return False
        try:
            changed = self._registration_repository.transition_status(
                registration,
                from_statuses=sources_for(PaymentStatus.FAILED),
                to_status=PaymentStatus.FAILED,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        if changed:
            logger.info("payment_failed", extra={"record_id": str(registration.id)})
        return changed

    def _dispatch_confirmation(self, registration: Registration) -> None:
        details = ConfirmationDetails.from_registration(registration)
        try:
            self._notification_dispatcher.dispatch(details)
        except Exception:
            logger.exception(
                "confirmation_dispatch_failed",
                extra={"record_id": details.record_id},
            )

    def _new_registration_id(self) -> str:
        candidate = generate_registration_id(self._config.registration_id_prefix)
        for _ in range(REGISTRATION_ID_ATTEMPTS - 1):
            if not self._registration_repository.registration_id_exists(candidate):
                break
            candidate = generate_registration_id(self._config.registration_id_prefix)
        return candidate

    def _registration_by_record_id(self, record_id: str | None) -> Registration | None:
        if not record_id:
            return None
        try:
            parsed = UUID(record_id.strip())
        except ValueError:
            return None
        return self._registration_repository.get(parsed)

    def _registration_by_reference(self, reference: str | None) -> Registration | None:
        if not reference:
            return None
        registration = self._registration_by_record_id(reference)
        if registration is not None:
            return registration
        return self._registration_repository.get_by_registration_id(reference.strip())

    def _outcome_for(self, registration: Registration) -> CallbackOutcome:
        page = (
            "registration-success"
            if registration.payment_status == PaymentStatus.SUCCESS
            else "registration-failure"
        )
        return CallbackOutcome(
            redirect_url=self._frontend_url(page, id=str(registration.id)),
            payment_status=registration.payment_status,
        )

    def _callback_url(self, record_id: UUID) -> str:
        base = self._config.backend_base_url.rstrip("/")
        query = urlencode({"registration_id": str(record_id)})
        return f"{base}/payment/callback?{query}"

    def _webhook_url(self) -> str | None:
        if not self._config.webhook_secret:
            return None
        base = self._config.backend_base_url.rstrip("/")
        return f"{base}/payment/webhook"

    def _frontend_url(self, page: str, **query: str) -> str:
        base = self._config.frontend_base_url.rstrip("/")
        return f"{base}/{page}?{urlencode(query)}"
