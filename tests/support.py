"""Test doubles and helpers shared by unit, contract and integration tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from competition_registration.core.settings import Settings
from competition_registration.db.models.competition import Competition
from competition_registration.db.models.registration import Registration
from competition_registration.domain.errors import GatewayError, StorageUploadError
from competition_registration.infrastructure.payments.instamojo_gateway import (
    BuyerContact,
    PaymentSession,
    PaymentVerification,
    WebhookEvent,
    compute_webhook_signature,
    parse_webhook_payload,
    verify_webhook_signature,
)
from competition_registration.services.notification_service import (
    ConfirmationDetails,
)

WEBHOOK_SECRET = "test-webhook-secret"
BACKEND_URL = "https://api.example.test"
FRONTEND_URL = "https://app.example.test"


@dataclass
class FakePaymentGateway:
    """Gateway double; webhook signing and parsing use the real helpers."""

    sessions: list[dict[str, Any]] = field(default_factory=list)
    verifications: dict[str, PaymentVerification] = field(default_factory=dict)
    create_error: GatewayError | None = None
    verify_error: GatewayError | None = None
    verify_calls: list[str] = field(default_factory=list)

    def create_payment_session(
        self,
        *,
        purpose: str,
        amount: Decimal,
        buyer: BuyerContact,
        callback_url: str,
        webhook_url: str | None = None,
    ) -> PaymentSession:
        if self.create_error is not None:
            raise self.create_error
        session_id = f"PR{len(self.sessions) + 1:04d}"
        self.sessions.append(
            {
                "session_id": session_id,
                "purpose": purpose,
                "amount": amount,
                "buyer": buyer,
                "callback_url": callback_url,
                "webhook_url": webhook_url,
            }
        )
        return PaymentSession(
            session_id=session_id,
            hosted_page_url=f"https://pay.example.test/{session_id}",
        )

    def verify_payment(self, payment_id: str) -> PaymentVerification:
        self.verify_calls.append(payment_id)
        if self.verify_error is not None:
            raise self.verify_error
        return self.verifications[payment_id]

    def verify_webhook_signature(
        self,
        raw_payload: bytes,
        signature: str | None,
        secret: str,
    ) -> bool:
        return verify_webhook_signature(raw_payload, signature, secret)

    def parse_webhook(
        self,
        raw_payload: bytes,
        content_type: str | None,
    ) -> WebhookEvent:
        return parse_webhook_payload(raw_payload, content_type)

    def mark_paid(
        self,
        payment_id: str,
        session_id: str,
        *,
        status: str = "Credit",
    ) -> None:
        self.verifications[payment_id] = PaymentVerification(
            status=status,
            verified_session_id=session_id,
            payment_id=payment_id,
        )


@dataclass
class FakeDocumentUploader:
    uploads: list[dict[str, Any]] = field(default_factory=list)
    error: StorageUploadError | None = None

    def upload(self, content: bytes, desired_filename: str, owner_folder: str) -> str:
        if self.error is not None:
            raise self.error
        self.uploads.append(
            {
                "content": content,
                "filename": desired_filename,
                "folder": owner_folder,
            }
        )
        return f"https://files.example.test/{owner_folder}/{desired_filename}"


@dataclass
class RecordingDispatcher:
    sent: list[ConfirmationDetails] = field(default_factory=list)

    def dispatch(self, details: ConfirmationDetails) -> None:
        self.sent.append(details)


def build_test_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "PAYMENT_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "BACKEND_BASE_URL": BACKEND_URL,
        "FRONTEND_BASE_URL": FRONTEND_URL,
        "DOCUMENT_POLICY": "optional",
        "MAX_DOCUMENT_BYTES": 1024,
    }
    values.update(overrides)
    return Settings(**values)


def seed_competition(
    session: Session,
    *,
    name: str = "Classical Solo",
    price: str = "500.00",
    passport_required: bool = False,
    city: str = "pune",
) -> Competition:
    now = datetime.now(tz=UTC)
    competition = Competition(
        name=name,
        price=Decimal(price),
        passport_required=passport_required,
        city=city,
        created_at=now,
        updated_at=now,
    )
    session.add(competition)
    session.commit()
    return competition


def registration_form(competition_id: UUID | str, **overrides: str) -> dict[str, str]:
    form = {
        "competition_id": str(competition_id),
        "name": "Asha Rao",
        "email": "asha@example.com",
        "mobile": "9876543210",
        "address": "12 MG Road",
        "state": "Maharashtra",
        "postal_code": "411001",
        "national_id": "1234 5678 9012",
        "amount": "500",
        "accepted_terms": "true",
    }
    form.update(overrides)
    return form


def signed_webhook(payload: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    body = json.dumps(payload).encode("utf-8")
    return body, {
        "Content-Type": "application/json",
        "X-Webhook-Signature": compute_webhook_signature(body, WEBHOOK_SECRET),
    }


def load_registration(
    session_factory: sessionmaker[Session], record_id: str | UUID
) -> Registration:
    with session_factory() as session:
        registration = session.get(Registration, UUID(str(record_id)))
        assert registration is not None
        return registration


def count_registrations(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as session:
        return session.query(Registration).count()




def register_and_pay(
    client: TestClient,
    competition_id: UUID | str,
    **overrides: str,
) -> dict[str, Any]:
    """Submit through the payment route and return the created body."""

    response = client.post(
        "/payment/register-and-pay",
        data=registration_form(competition_id, **overrides),
    )
    assert response.status_code == 201, response.text
    return response.json()


def callback_params(
    record_id: str,
    *,
    payment_id: str | None = "MOJO1",
    session_id: str = "PR0001",
    payment_status: str = "Credit",
) -> dict[str, str]:
    params = {
        "registration_id": record_id,
        "payment_request_id": session_id,
        "payment_status": payment_status,
    }
    if payment_id is not None:
        params["payment_id"] = payment_id
    return params
