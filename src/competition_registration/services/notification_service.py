"""Confirmation receipt and email for paid registrations."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Protocol

from competition_registration.db.models.registration import Registration
from competition_registration.domain.money import format_money
from competition_registration.infrastructure.email.zeptomail_client import (
    EmailAttachment,
)
from competition_registration.reporting.receipt_pdf import ReceiptData

logger = logging.getLogger(__name__)


class EmailClientProtocol(Protocol):
    """Email client contract consumed by notification service."""

    def send_template(
        self,
        *,
        to_address: str,
        to_name: str,
        template_key: str,
        merge_info: Mapping[str, str],
        attachments: Sequence[EmailAttachment] = (),
    ) -> None: ...


class ReceiptRendererProtocol(Protocol):
    """Receipt renderer contract consumed by notification service."""

    def render(self, data: ReceiptData) -> bytes: ...


@dataclass(slots=True, frozen=True)
class ConfirmationDetails:
    """Snapshot of a paid registration taken after the status commit."""

    record_id: str
    registration_id: str
    name: str
    email: str
    mobile: str
    competition_name: str
    competition_city: str
    amount: str
    payment_id: str
    national_id: str
    document_number: str
    work_place: str
    address: str
    state: str
    postal_code: str

    @classmethod
    def from_registration(cls, registration: Registration) -> ConfirmationDetails:
        return cls(
            record_id=str(registration.id),
            registration_id=registration.registration_id or "",
            name=registration.name,
            email=registration.email,
            mobile=registration.mobile,
            competition_name=registration.competition_name,
            competition_city=registration.competition_city,
            amount=format_money(registration.amount),
            payment_id=registration.payment_id or "",
            national_id=registration.national_id,
            document_number=registration.document_number or "",
            work_place=registration.work_place or "",
            address=registration.address,
            state=registration.state,
            postal_code=registration.postal_code,
        )

    def merge_info(self) -> dict[str, str]:
        return {
            "registration_id": self.registration_id,
            "competition_name": self.competition_name,
            "competition_city": self.competition_city,
            "name": self.name,
            "email": self.email,
            "mobile": self.mobile,
            "amount": self.amount,
            "payment_status": "success",
            "payment_id": self.payment_id,
            "passport_number": self.document_number,
            "aadhaar_number": self.national_id,
            "workplace": self.work_place,
            "address": self.address,
            "state": self.state,
            "pin": self.postal_code,
        }


class NotificationService:
    """Renders the receipt and sends the confirmation email."""

    def __init__(
        self,
        *,
        email_client: EmailClientProtocol,
        receipt_renderer: ReceiptRendererProtocol,
        template_key: str,
    ) -> None:
        self._email_client = email_client
        self._receipt_renderer = receipt_renderer
        self._template_key = template_key

    def send_confirmation(
        self,
        details: ConfirmationDetails,
        *,
        issued_on: date | None = None,
    ) -> bool:
        """Send the confirmation email; return ``False`` when skipped."""

        if not details.email:
            logger.warning(
                "confirmation_skipped_missing_email",
                extra={"record_id": details.record_id},
            )
            return False

        receipt = self._receipt_renderer.render(
            ReceiptData(
                registration_id=details.registration_id,
                name=details.name,
                email=details.email,
                mobile=details.mobile,
                competition_name=details.competition_name,
                competition_city=details.competition_city,
                amount=details.amount,
                payment_id=details.payment_id,
                issued_on=issued_on or datetime.now(tz=UTC).date(),
            )
        )
        self._email_client.send_template(
            to_address=details.email,
            to_name=details.name,
            template_key=self._template_key,
            merge_info=details.merge_info(),
            attachments=[
                EmailAttachment(
                    name=f"Receipt-{details.registration_id}.pdf",
                    content_base64=base64.b64encode(receipt).decode("ascii"),
                )
            ],
        )
        logger.info(
            "confirmation_sent",
            extra={
                "record_id": details.record_id,
                "registration_id": details.registration_id,
            },
        )
        return True

    def send_confirmation_safely(self, details: ConfirmationDetails) -> None:
        """Background entry point: failures are logged and never raised."""

        try:
            self.send_confirmation(details)
        except Exception:
            logger.exception(
                "confirmation_failed",
                extra={
                    "record_id": details.record_id,
                    "registration_id": details.registration_id,
                },
            )


class TaskQueueProtocol(Protocol):
    """Anything that runs callables later, e.g. FastAPI ``BackgroundTasks``."""

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None: ...


class BackgroundNotificationDispatcher:
    """Queues confirmation sends so they run after the response is sent."""

    def __init__(
        self,
        *,
        tasks: TaskQueueProtocol,
        notification_service: NotificationService,
    ) -> None:
        self._tasks = tasks
        self._notification_service = notification_service

    def dispatch(self, details: ConfirmationDetails) -> None:
        self._tasks.add_task(
            self._notification_service.send_confirmation_safely,
            details,
        )
        logger.info(
            "confirmation_queued",
            extra={"record_id": details.record_id},
        )
