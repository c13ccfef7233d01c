from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from support import (
    WEBHOOK_SECRET,
    RecordingDispatcher,
    load_registration,
    register_and_pay,
    signed_webhook,
)

from competition_registration.db.models.competition import Competition
from competition_registration.db.models.registration import PaymentStatus
from competition_registration.infrastructure.payments.instamojo_gateway import (
    compute_webhook_signature,
)


def webhook_payload(reference: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "payment_id": "MOJO1",
        "payment_request_id": "PR0001",
        "status": "Credit",
        "amount": "500.00",
        "custom_fields": {"registration_id": {"value": reference}},
    }
    payload.update(overrides)
    return payload


def test_signed_webhook_confirms_payment_once(
    client: TestClient,
    competition: Competition,
    dispatcher: RecordingDispatcher,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    body, headers = signed_webhook(webhook_payload(record_id))

    first = client.post("/payment/webhook", content=body, headers=headers)
    replay = client.post("/payment/webhook", content=body, headers=headers)

    assert first.status_code == 200
    assert first.json() == {"status": "confirmed", "id": record_id, "reason": None}
    assert replay.status_code == 200
    assert replay.json()["status"] == "already_confirmed"
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.SUCCESS
    assert stored.payment_id == "MOJO1"
    assert len(dispatcher.sent) == 1


def test_tampered_webhook_returns_401_and_changes_nothing(
    client: TestClient,
    competition: Competition,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    body, headers = signed_webhook(webhook_payload(record_id))
    tampered = body.replace(b"500.00", b"5.00")

    response = client.post("/payment/webhook", content=tampered, headers=headers)
    unsigned = client.post(
        "/payment/webhook",
        content=body,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    assert unsigned.status_code == 401
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.PENDING


def test_webhook_with_wrong_amount_marks_failed(
    client: TestClient,
    competition: Competition,
    dispatcher: RecordingDispatcher,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    body, headers = signed_webhook(webhook_payload(record_id, amount="5.00"))

    response = client.post("/payment/webhook", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "failed"
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.FAILED
    assert dispatcher.sent == []


def test_webhook_for_unknown_registration_is_acknowledged(
    client: TestClient,
) -> None:
    body, headers = signed_webhook(webhook_payload("REG-UNKNOWN1"))

    response = client.post("/payment/webhook", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "status": "ignored",
        "id": None,
        "reason": "registration_not_found",
    }


def test_webhook_with_undecodable_payload_is_acknowledged(
    client: TestClient,
) -> None:
    body = b"[1, 2, 3]"
    response = client.post(
        "/payment/webhook",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Webhook-Signature": compute_webhook_signature(body, WEBHOOK_SECRET),
        },
    )

    assert response.status_code == 200
    assert response.json()["reason"] == "invalid_payload"


def test_form_encoded_webhook_confirms_failed_registration(
    client: TestClient,
    competition: Competition,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    client.patch(
        "/registration",
        json={"registration_id": record_id, "payment_status": "failed"},
    )
    body = urlencode(
        {
            "payment_id": "MOJO2",
            "status": "Credit",
            "amount": "500",
            "custom_fields": json.dumps({"registration_id": {"value": record_id}}),
        }
    ).encode()

    response = client.post(
        "/payment/webhook",
        content=body,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "X-Webhook-Signature": compute_webhook_signature(body, WEBHOOK_SECRET),
        },
    )

    assert response.json()["status"] == "confirmed"
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.SUCCESS
    assert stored.registration_id is not None

    human_body, headers = signed_webhook(webhook_payload(stored.registration_id))
    replay = client.post("/payment/webhook", content=human_body, headers=headers)
    assert replay.json() == {
        "status": "already_confirmed",
        "id": record_id,
        "reason": None,
    }


def test_webhook_for_session_replaced_by_retry_is_ignored(
    client: TestClient,
    competition: Competition,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    retry = client.post(f"/payment/retry/{record_id}")
    assert retry.status_code == 200
    body, headers = signed_webhook(webhook_payload(record_id, status="Failed"))

    response = client.post("/payment/webhook", content=body, headers=headers)

    assert response.json() == {
        "status": "ignored",
        "id": record_id,
        "reason": "stale_session",
    }
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.PENDING
    assert stored.payment_request_id == "PR0002"


def test_webhook_without_reference_is_matched_by_payment_request(
    client: TestClient,
    competition: Competition,
    dispatcher: RecordingDispatcher,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    payload = webhook_payload(record_id)
    del payload["custom_fields"]
    body, headers = signed_webhook(payload)

    response = client.post("/payment/webhook", content=body, headers=headers)

    assert response.json() == {"status": "confirmed", "id": record_id, "reason": None}
    stored = load_registration(sqlite_session_factory, record_id)
    assert stored.payment_status == PaymentStatus.SUCCESS
    assert len(dispatcher.sent) == 1
