"""CLI bootstrap for competition-registration."""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import typer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from competition_registration.core.logging import configure_logging
from competition_registration.core.settings import get_settings
from competition_registration.db.models.registration import PaymentStatus
from competition_registration.db.session import SessionFactory
from competition_registration.domain.money import format_money
from competition_registration.reporting.registration_export import (
    render_registrations_csv,
)
from competition_registration.repositories.registration_repository import (
    RegistrationListFilters,
    RegistrationRepository,
)

app = typer.Typer(help="CLI for competition registrations and payments.")
OUTPUT_FILE_OPTION = typer.Option(..., "--output", dir_okay=False, writable=True)
PAYMENT_STATUS_OPTION = typer.Option(None, "--payment-status")
COMPETITION_ID_OPTION = typer.Option(None, "--competition-id")
OLDER_THAN_OPTION = typer.Option(30, "--older-than-minutes", min=0)


@app.callback()
def setup() -> None:
    configure_logging(get_settings().log_level)


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the database answers."""
    try:
        with SessionFactory() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        typer.echo(f"database unavailable: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo("competition-registration is ready")


@app.command("export-registrations")
def export_registrations(
    output: Path = OUTPUT_FILE_OPTION,
    payment_status: PaymentStatus | None = PAYMENT_STATUS_OPTION,
    competition_id: str | None = COMPETITION_ID_OPTION,
) -> None:
    """Write registrations to a CSV file."""
    try:
        competition_uuid = UUID(competition_id) if competition_id else None
    except ValueError as exc:
        raise typer.BadParameter(
            "competition id must be a UUID", param_hint="--competition-id"
        ) from exc

    with SessionFactory() as session:
        items, _ = RegistrationRepository(session).list_registrations(
            RegistrationListFilters(
                competition_id=competition_uuid,
                payment_status=payment_status,
                limit=None,
            )
        )
        output.write_text(render_registrations_csv(items), encoding="utf-8")
    typer.echo(f"Exported {len(items)} registrations to {output}")


@app.command("list-pending")
def list_pending(older_than_minutes: int = OLDER_THAN_OPTION) -> None:
    """List unpaid registrations to reconcile by hand against the gateway."""
    cutoff = datetime.now(tz=UTC) - timedelta(minutes=older_than_minutes)
    with SessionFactory() as session:
        items = RegistrationRepository(session).list_unpaid_created_before(cutoff)
        for registration in items:
            typer.echo(
                f"{registration.id} | {registration.payment_status.value} | "
                f"{registration.email} | {format_money(registration.amount)} | "
                f"payment request: {registration.payment_request_id or '-'}"
            )
    typer.echo(f"Unpaid registrations: {len(items)}")


def main() -> None:
    """Run the competition-registration CLI application."""
    app()


if __name__ == "__main__":
    main()
