from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from competition_registration.db.models.competition import Competition


def test_create_competition_returns_201_with_normalized_fields(
    client: TestClient,
) -> None:
    response = client.post(
        "/competitions",
        json={"name": " Group Dance ", "price": "750.5", "city": " Pune "},
    )

    body = response.json()
    assert response.status_code == 201
    assert body["name"] == "Group Dance"
    assert body["price"] == "750.50"
    assert body["city"] == "pune"
    assert body["passport_required"] is False


def test_create_competition_returns_400_for_invalid_price(client: TestClient) -> None:
    response = client.post(
        "/competitions",
        json={"name": "Group Dance", "price": "-1", "city": "pune"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


def test_list_competitions_filters_by_city(
    client: TestClient,
    competition: Competition,
    passport_competition: Competition,
) -> None:
    everything = client.get("/competitions").json()["items"]
    mumbai = client.get("/competitions", params={"city": "Mumbai"}).json()["items"]

    assert {item["name"] for item in everything} == {
        "Classical Solo",
        "International Duet",
    }
    assert [item["id"] for item in mumbai] == [str(passport_competition.id)]


def test_get_competition_returns_404_for_unknown_id(client: TestClient) -> None:
    response = client.get(f"/competitions/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["code"] == "COMPETITION_NOT_FOUND"


def test_update_competition_changes_only_sent_fields(
    client: TestClient,
    competition: Competition,
) -> None:
    response = client.put(
        f"/competitions/{competition.id}",
        json={"price": "650.00"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["price"] == "650.00"
    assert body["name"] == "Classical Solo"
    assert body["city"] == "pune"


def test_delete_competition_returns_204(
    client: TestClient,
    competition: Competition,
) -> None:
    response = client.delete(f"/competitions/{competition.id}")

    assert response.status_code == 204
    assert client.get(f"/competitions/{competition.id}").status_code == 404
