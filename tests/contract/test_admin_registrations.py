from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from support import RecordingDispatcher, register_and_pay, registration_form

from competition_registration.db.models.competition import Competition

SECOND_PARTICIPANT = {
    "name": "Ravi Kumar",
    "email": "ravi@example.com",
    "mobile": "9123456780",
    "national_id": "999988887777",
}


def test_list_registrations_filters_by_status(
    client: TestClient,
    competition: Competition,
) -> None:
    first = register_and_pay(client, competition.id)["id"]
    register_and_pay(client, competition.id, **SECOND_PARTICIPANT)
    client.patch(
        "/registration",
        json={"registration_id": first, "payment_status": "failed"},
    )

    everything = client.get("/registration").json()
    failed = client.get("/registration", params={"payment_status": "failed"}).json()

    assert everything["total"] == 2
    assert everything["limit"] == 50
    assert failed["total"] == 1
    assert [item["id"] for item in failed["items"]] == [first]


def test_list_registrations_rejects_unknown_status(client: TestClient) -> None:
    response = client.get("/registration", params={"payment_status": "refunded"})

    assert response.status_code == 400


def test_get_registration_by_record_id(
    client: TestClient,
    competition: Competition,
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]

    found = client.get(f"/registration/{record_id}")
    missing = client.get(f"/registration/{uuid4()}")

    assert found.status_code == 200
    assert found.json()["email"] == "asha@example.com"
    assert missing.status_code == 404


def test_patch_success_assigns_registration_id_and_notifies(
    client: TestClient,
    competition: Competition,
    dispatcher: RecordingDispatcher,
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]

    response = client.patch(
        "/registration",
        json={
            "registration_id": record_id,
            "payment_status": "success",
            "payment_id": "MANUAL-1",
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["payment_status"] == "success"
    assert body["payment_id"] == "MANUAL-1"
    assert body["registration_id"].startswith("REG-")
    assert len(dispatcher.sent) == 1

    by_human_id = client.patch(
        "/registration",
        json={"registration_id": body["registration_id"], "payment_status": "success"},
    )
    assert by_human_id.status_code == 200
    assert len(dispatcher.sent) == 1


def test_patch_cannot_leave_success(
    client: TestClient,
    competition: Competition,
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]
    client.patch(
        "/registration",
        json={"registration_id": record_id, "payment_status": "success"},
    )

    response = client.patch(
        "/registration",
        json={"registration_id": record_id, "payment_status": "failed"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_PAYMENT_STATUS_TRANSITION"


def test_patch_to_pending_returns_400(
    client: TestClient,
    competition: Competition,
) -> None:
    record_id = register_and_pay(client, competition.id)["id"]

    response = client.patch(
        "/registration",
        json={"registration_id": record_id, "payment_status": "pending"},
    )

    assert response.status_code == 400


def test_patch_unknown_registration_returns_404(client: TestClient) -> None:
    response = client.patch(
        "/registration",
        json={"registration_id": "REG-MISSING0", "payment_status": "failed"},
    )

    assert response.status_code == 404


def test_delete_registration_returns_204(
    client: TestClient,
    competition: Competition,
) -> None:
    created = client.post("/registration", data=registration_form(competition.id))
    record_id = created.json()["registration"]["id"]

    response = client.delete(f"/registration/{record_id}")

    assert response.status_code == 204
    assert client.get(f"/registration/{record_id}").status_code == 404
    assert client.delete(f"/registration/{record_id}").status_code == 404
