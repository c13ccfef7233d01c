from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker
from support import seed_competition
from typer.testing import CliRunner

from competition_registration import cli
from competition_registration.db.models.registration import (
    PaymentStatus,
    Registration,
)
from competition_registration.repositories.registration_repository import (
    RegistrationRepository,
)

runner = CliRunner()


@pytest.fixture
def seeded_factory(
    sqlite_session_factory: sessionmaker[Session],
    monkeypatch: pytest.MonkeyPatch,
) -> sessionmaker[Session]:
    with sqlite_session_factory() as session:
        competition = seed_competition(session)
        repository = RegistrationRepository(session)
        for index, status in enumerate((PaymentStatus.PENDING, PaymentStatus.SUCCESS)):
            repository.add(
                Registration(
                    name=f"Participant {index}",
                    email=f"participant{index}@example.com",
                    mobile=f"90000000{index:02d}",
                    address="12 MG Road",
                    state="Maharashtra",
                    postal_code="411001",
                    national_id=f"1234567890{index:02d}",
                    competition_id=competition.id,
                    competition_name=competition.name,
                    competition_city=competition.city,
                    accepted_terms=True,
                    amount=competition.price,
                    payment_status=status,
                    payment_request_id=f"PR{index:04d}",
                )
            )
        session.commit()
    monkeypatch.setattr(cli, "SessionFactory", sqlite_session_factory)
    return sqlite_session_factory


def test_healthcheck_reports_ready(seeded_factory: sessionmaker[Session]) -> None:
    result = runner.invoke(cli.app, ["healthcheck"])

    assert result.exit_code == 0
    assert "ready" in result.stdout


def test_export_registrations_writes_filtered_csv(
    seeded_factory: sessionmaker[Session],
    tmp_path: Path,
) -> None:
    output = tmp_path / "paid.csv"

    result = runner.invoke(
        cli.app,
        [
            "export-registrations",
            "--output",
            str(output),
            "--payment-status",
            "success",
        ],
    )

    assert result.exit_code == 0
    assert "Exported 1 registrations" in result.stdout
    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert "participant1@example.com" in lines[1]


def test_export_registrations_rejects_bad_competition_id(
    seeded_factory: sessionmaker[Session],
    tmp_path: Path,
) -> None:
    result = runner.invoke(
        cli.app,
        [
            "export-registrations",
            "--output",
            str(tmp_path / "out.csv"),
            "--competition-id",
            "not-a-uuid",
        ],
    )

    assert result.exit_code != 0


def test_list_pending_prints_unpaid_registrations(
    seeded_factory: sessionmaker[Session],
) -> None:
    result = runner.invoke(cli.app, ["list-pending", "--older-than-minutes", "0"])

    assert result.exit_code == 0
    assert "participant0@example.com" in result.stdout
    assert "participant1@example.com" not in result.stdout
    assert "Unpaid registrations: 1" in result.stdout
