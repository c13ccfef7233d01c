"""Registration routes."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from competition_registration.api.dependencies import (
    get_document_upload,
    get_registration_repository,
    get_registration_workflow,
    get_submission_input,
)
from competition_registration.api.schemas.registrations import (
    PaymentStatusValue,
    RegistrationListResponse,
    RegistrationResponse,
    SubmissionResponse,
    UpdatePaymentStatusRequest,
)
from competition_registration.db.models.registration import PaymentStatus
from competition_registration.domain.documents import DocumentUpload
from competition_registration.domain.errors import (
    InvalidRequestError,
    RegistrationNotFoundError,
    compose_error_message,
)
from competition_registration.reporting.registration_export import (
    render_registrations_csv,
)
from competition_registration.repositories.registration_repository import (
    RegistrationListFilters,
    RegistrationRepository,
)
from competition_registration.services.registration_workflow import (
    RegistrationWorkflow,
    SubmitRegistrationInput,
)

router = APIRouter(prefix="/registration", tags=["Registrations"])


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "Existing unpaid registration, retry allowed"},
        400: {"description": "Invalid payload"},
        404: {"description": "Competition not found"},
        409: {"description": "Already registered and paid"},
        502: {"description": "Document upload failed"},
    },
)
def create_registration(
    response: Response,
    payload: Annotated[SubmitRegistrationInput, Depends(get_submission_input)],
    document: Annotated[DocumentUpload | None, Depends(get_document_upload)],
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
) -> SubmissionResponse:
    """Store a pending registration without opening a payment session."""

    result = workflow.submit(payload, document, start_payment=False)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return SubmissionResponse(
        registration=RegistrationResponse.from_model(result.registration),
        retry_allowed=result.retry_allowed,
    )


@router.get(
    "",
    response_model=RegistrationListResponse,
    responses={400: {"description": "Invalid query filters"}},
)
def list_registrations(
    repository: Annotated[RegistrationRepository, Depends(get_registration_repository)],
    competition_id: Annotated[UUID | None, Query()] = None,
    payment_status: Annotated[PaymentStatusValue | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> RegistrationListResponse:
    """List registrations newest first."""

    items, total = repository.list_registrations(
        RegistrationListFilters(
            competition_id=competition_id,
            payment_status=PaymentStatus(payment_status) if payment_status else None,
            limit=limit,
            offset=offset,
        )
    )
    return RegistrationListResponse.from_models(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.patch(
    "",
    response_model=RegistrationResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Registration not found"},
        409: {"description": "Status change not allowed"},
    },
)
def update_payment_status(
    payload: UpdatePaymentStatusRequest,
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
) -> RegistrationResponse:
    """Change payment status by record id or human-readable registration id."""

    registration = workflow.update_status(
        payload.registration_id,
        PaymentStatus(payload.payment_status),
        payment_id=payload.payment_id,
    )
    return RegistrationResponse.from_model(registration)


@router.get(
    "/export",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV export"},
        400: {"description": "Invalid query filters"},
        404: {"description": "No registrations match the filters"},
    },
)
def export_registrations(
    repository: Annotated[RegistrationRepository, Depends(get_registration_repository)],
    competition_id: Annotated[UUID | None, Query()] = None,
    payment_status: Annotated[PaymentStatusValue | None, Query()] = None,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> Response:
    """Download registrations as CSV."""

    if start_date and end_date and start_date > end_date:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="start_date is after end_date.",
                action="Send a start_date on or before end_date.",
            )
        )

    items, _ = repository.list_registrations(
        RegistrationListFilters(
            competition_id=competition_id,
            payment_status=PaymentStatus(payment_status) if payment_status else None,
            created_from=datetime.combine(start_date, time.min, tzinfo=UTC)
            if start_date
            else None,
            created_until=datetime.combine(end_date, time.max, tzinfo=UTC)
            if end_date
            else None,
            limit=None,
        )
    )
    if not items:
        raise RegistrationNotFoundError(
            message=compose_error_message(
                cause="No registrations match the export filters.",
                action="Widen the filters and export again.",
            )
        )
    return Response(
        content=render_registrations_csv(items),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="registrations.csv"'},
    )


@router.get(
    "/{record_id}",
    response_model=RegistrationResponse,
    responses={404: {"description": "Registration not found"}},
)
def get_registration(
    record_id: UUID,
    repository: Annotated[RegistrationRepository, Depends(get_registration_repository)],
) -> RegistrationResponse:
    registration = repository.get(record_id)
    if registration is None:
        raise RegistrationNotFoundError(details={"id": str(record_id)})
    return RegistrationResponse.from_model(registration)


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Registration not found"}},
)
def delete_registration(
    record_id: UUID,
    workflow: Annotated[RegistrationWorkflow, Depends(get_registration_workflow)],
) -> Response:
    workflow.delete(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
