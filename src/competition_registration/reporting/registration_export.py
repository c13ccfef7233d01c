"""CSV export of registrations for organizers."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import datetime

from competition_registration.db.models.registration import Registration
from competition_registration.domain.money import format_money

EXPORT_COLUMNS: tuple[str, ...] = (
    "RegistrationID",
    "Name",
    "Email",
    "Mobile",
    "Address",
    "CompetitionCity",
    "State",
    "PostalCode",
    "NationalID",
    "CompetitionID",
    "CompetitionName",
    "WorkPlace",
    "DocumentNumber",
    "DocumentURL",
    "Amount",
    "PaymentStatus",
    "PaymentRequestID",
    "PaymentID",
    "CreatedAt",
    "UpdatedAt",
)


def _format_timestamp(value: datetime | None) -> str:
    return value.isoformat(timespec="seconds") if value else ""


def export_row(registration: Registration) -> dict[str, str]:
    return {
        "RegistrationID": registration.registration_id or "",
        "Name": registration.name,
        "Email": registration.email,
        "Mobile": registration.mobile,
        "Address": registration.address,
        "CompetitionCity": registration.competition_city,
        "State": registration.state,
        "PostalCode": registration.postal_code,
        "NationalID": registration.national_id,
        "CompetitionID": str(registration.competition_id),
        "CompetitionName": registration.competition_name,
        "WorkPlace": registration.work_place or "",
        "DocumentNumber": registration.document_number or "",
        "DocumentURL": registration.document_url or "",
        "Amount": format_money(registration.amount),
        "PaymentStatus": registration.payment_status.value,
        "PaymentRequestID": registration.payment_request_id or "",
        "PaymentID": registration.payment_id or "",
        "CreatedAt": _format_timestamp(registration.created_at),
        "UpdatedAt": _format_timestamp(registration.updated_at),
    }


def render_registrations_csv(registrations: Iterable[Registration]) -> str:
    """Render registrations as CSV text with a fixed header row."""

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for registration in registrations:
        writer.writerow(export_row(registration))
    return buffer.getvalue()
