"""API dependency providers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated
from uuid import UUID

import httpx
from fastapi import BackgroundTasks, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from competition_registration.core.settings import Settings, get_settings
from competition_registration.db.session import get_db_session
from competition_registration.domain.documents import DocumentUpload
from competition_registration.infrastructure.email.zeptomail_client import (
    ZeptoMailClient,
)
from competition_registration.infrastructure.payments.instamojo_gateway import (
    InstamojoGateway,
)
from competition_registration.infrastructure.storage.cloudinary_uploader import (
    CloudinaryUploader,
)
from competition_registration.reporting.receipt_pdf import ReceiptRenderer
from competition_registration.repositories.competition_repository import (
    CompetitionRepository,
)
from competition_registration.repositories.registration_repository import (
    RegistrationRepository,
)
from competition_registration.services.competition_service import CompetitionService
from competition_registration.services.notification_service import (
    BackgroundNotificationDispatcher,
    NotificationService,
)
from competition_registration.services.registration_workflow import (
    DocumentUploaderProtocol,
    NotificationDispatcherProtocol,
    PaymentGatewayProtocol,
    RegistrationWorkflow,
    SubmitRegistrationInput,
    WorkflowConfig,
)


@lru_cache(maxsize=1)
def get_http_client() -> httpx.Client:
    """Shared outbound HTTP client with a bounded timeout on every call."""

    return httpx.Client(timeout=get_settings().http_timeout_seconds)


def get_competition_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> CompetitionService:
    """Build competition service with per-request session."""

    return CompetitionService(
        competition_repository=CompetitionRepository(session),
        registration_counter=RegistrationRepository(session),
        session=session,
    )


def get_registration_repository(
    session: Annotated[Session, Depends(get_db_session)],
) -> RegistrationRepository:
    """Build registration repository with per-request session."""

    return RegistrationRepository(session)


def get_payment_gateway(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PaymentGatewayProtocol:
    return InstamojoGateway(
        api_key=settings.instamojo_api_key,
        auth_token=settings.instamojo_auth_token,
        payment_requests_url=settings.instamojo_api_endpoint,
        payments_url=settings.instamojo_payments_endpoint,
        http_client=get_http_client(),
    )


def get_document_uploader(
    settings: Annotated[Settings, Depends(get_settings)],
) -> DocumentUploaderProtocol:
    return CloudinaryUploader(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        root_folder=settings.cloudinary_root_folder,
        http_client=get_http_client(),
    )


def get_notification_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> NotificationService:
    return NotificationService(
        email_client=ZeptoMailClient(
            base_url=settings.zepto_url,
            token=settings.zepto_token,
            from_address=settings.zepto_from,
            from_name=settings.zepto_from_name,
            http_client=get_http_client(),
        ),
        receipt_renderer=ReceiptRenderer(
            event_name=settings.event_name,
            organizer_name=settings.organizer_name,
        ),
        template_key=settings.zepto_template_key,
    )


def get_notification_dispatcher(
    background_tasks: BackgroundTasks,
    notification_service: Annotated[
        NotificationService, Depends(get_notification_service)
    ],
) -> NotificationDispatcherProtocol:
    """Send confirmations after the response, outside the status transaction."""

    return BackgroundNotificationDispatcher(
        tasks=background_tasks,
        notification_service=notification_service,
    )


def get_workflow_config(
    settings: Annotated[Settings, Depends(get_settings)],
) -> WorkflowConfig:
    return WorkflowConfig(
        backend_base_url=settings.backend_base_url,
        frontend_base_url=settings.frontend_base_url,
        webhook_secret=settings.payment_webhook_secret,
        document_policy=settings.document_policy,
        registration_id_prefix=settings.registration_id_prefix,
        max_document_bytes=settings.max_document_bytes,
    )


def get_registration_workflow(
    session: Annotated[Session, Depends(get_db_session)],
    payment_gateway: Annotated[PaymentGatewayProtocol, Depends(get_payment_gateway)],
    document_uploader: Annotated[
        DocumentUploaderProtocol, Depends(get_document_uploader)
    ],
    notification_dispatcher: Annotated[
        NotificationDispatcherProtocol, Depends(get_notification_dispatcher)
    ],
    config: Annotated[WorkflowConfig, Depends(get_workflow_config)],
) -> RegistrationWorkflow:
    """Build registration workflow with per-request session and adapters."""

    return RegistrationWorkflow(
        competition_repository=CompetitionRepository(session),
        registration_repository=RegistrationRepository(session),
        payment_gateway=payment_gateway,
        document_uploader=document_uploader,
        notification_dispatcher=notification_dispatcher,
        session=session,
        config=config,
    )


def get_submission_input(
    competition_id: Annotated[UUID, Form()],
    name: Annotated[str, Form()],
    email: Annotated[str, Form()],
    mobile: Annotated[str, Form()],
    address: Annotated[str, Form()],
    state: Annotated[str, Form()],
    postal_code: Annotated[str, Form()],
    national_id: Annotated[str, Form()],
    amount: Annotated[str, Form()],
    accepted_terms: Annotated[bool, Form()] = False,
    work_place: Annotated[str | None, Form()] = None,
    document_number: Annotated[str | None, Form()] = None,
) -> SubmitRegistrationInput:
    """Read the multipart registration form."""

    return SubmitRegistrationInput(
        competition_id=competition_id,
        name=name,
        email=email,
        mobile=mobile,
        address=address,
        state=state,
        postal_code=postal_code,
        national_id=national_id,
        accepted_terms=accepted_terms,
        amount=amount,
        work_place=work_place,
        document_number=document_number,
    )


def get_document_upload(
    settings: Annotated[Settings, Depends(get_settings)],
    document_file: Annotated[UploadFile | None, File()] = None,
) -> DocumentUpload | None:
    """Buffer the identity document, reading at most one byte past the limit."""

    if document_file is None or not document_file.filename:
        return None
    content = document_file.file.read(settings.max_document_bytes + 1)
    return DocumentUpload(filename=document_file.filename, content=content)


async def get_raw_body(request: Request) -> bytes:
    """Raw request bytes, needed to check the webhook signature."""

    return await request.body()
