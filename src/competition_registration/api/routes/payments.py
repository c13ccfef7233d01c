"""Payment routes: hosted-page start, gateway callback and webhook."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response, status
from fastapi.responses import RedirectResponse

from competition_registration.api.dependencies import (
    get_document_upload,
    get_raw_body,
    get_registration_workflow,
    get_submission_input,
)
from competition_registration.api.schemas.payments import (
    PaymentSessionResponse,
    WebhookAckResponse,
)
from competition_registration.domain.documents import DocumentUpload
from competition_registration.infrastructure.payments.instamojo_gateway import (
    WEBHOOK_SIGNATURE_HEADER,
)
from competition_registration.services.registration_workflow import (
    CallbackParams,
    RegistrationWorkflow,
    SubmitRegistrationInput,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["Payments"])


@router.post(
    "/register-and-pay",
    response_model=PaymentSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "Existing unpaid registration, retry allowed"},
        400: {"description": "Invalid payload"},
        404: {"description": "Competition not found"},
        409: {"description": "Already registered and paid"},
        502: {"description": "Upload or payment initiation failed"},
    },
)
def register_and_pay(
    response: Response,
    payload: Annotated[SubmitRegistrationInput, Depends(get_submission_input)],
    document: Annotated[DocumentUpload | None, Depends(get_document_upload)],
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
) -> PaymentSessionResponse:
    """Store a pending registration and return the hosted payment page."""

    result = workflow.submit(payload, document)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return PaymentSessionResponse.from_result(result)


@router.get("/callback", response_class=RedirectResponse)
def payment_callback(
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
    registration_id: Annotated[str | None, Query()] = None,
    payment_id: Annotated[str | None, Query()] = None,
    payment_request_id: Annotated[str | None, Query()] = None,
    payment_status: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    """Browser redirect from the gateway; always answers with a redirect."""

    try:
        outcome = workflow.confirm(
            registration_id,
            CallbackParams(
                payment_id=payment_id,
                payment_request_id=payment_request_id,
                payment_status=payment_status,
            ),
        )
    except Exception:
        logger.exception("payment_callback_failed", extra={"id": registration_id})
        outcome = workflow.error_redirect("InternalError")
    return RedirectResponse(outcome.redirect_url, status_code=status.HTTP_302_FOUND)


@router.post(
    "/retry/{record_id}",
    response_model=PaymentSessionResponse,
    responses={
        404: {"description": "Registration or competition not found"},
        409: {"description": "Payment already completed"},
        502: {"description": "Payment initiation failed"},
    },
)
def retry_payment(
    record_id: UUID,
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
) -> PaymentSessionResponse:
    """Open a fresh payment session for an unpaid registration."""

    return PaymentSessionResponse.from_result(workflow.retry(record_id))


@router.post(
    "/webhook",
    response_model=WebhookAckResponse,
    responses={401: {"description": "Invalid signature"}},
)
def payment_webhook(
    raw_body: Annotated[bytes, Depends(get_raw_body)],
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
    signature: Annotated[str | None, Header(alias=WEBHOOK_SIGNATURE_HEADER)] = None,
    content_type: Annotated[str | None, Header()] = None,
) -> WebhookAckResponse:
    """Signed gateway notification; acknowledged once authenticated."""

    ack = workflow.confirm_via_webhook(raw_body, signature, content_type)
    return WebhookAckResponse.from_ack(ack)
