"""Registration persistence operations."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from competition_registration.db.models.registration import (
    PaymentStatus,
    Registration,
)
from competition_registration.domain.errors import DuplicateRegistrationError

PAID_IDENTITY_INDEX_NAMES = frozenset(
    {
        "uq_registrations_paid_email",
        "uq_registrations_paid_mobile",
        "uq_registrations_paid_national_id",
    }
)
# SQLite reports the violated columns, not the index name.
SQLITE_PAID_IDENTITY_MARKERS = (
    "registrations.email",
    "registrations.mobile",
    "registrations.national_id",
)


def is_paid_identity_conflict(exc: IntegrityError) -> bool:
    """Tell whether a unique violation comes from the paid-identity indexes."""

    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name is not None:
        return constraint_name in PAID_IDENTITY_INDEX_NAMES

    message = str(exc.orig)
    return any(marker in message for marker in SQLITE_PAID_IDENTITY_MARKERS)


@dataclass(slots=True, frozen=True)
class RegistrationListFilters:
    """Filters for listing and exporting registrations."""

    competition_id: UUID | None = None
    payment_status: PaymentStatus | None = None
    created_from: datetime | None = None
    created_until: datetime | None = None
    limit: int | None = 50
    offset: int = 0


class RegistrationRepository:
    """Repository for registrations and their payment status."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, registration_id: UUID) -> Registration | None:
        return self._session.get(Registration, registration_id)

    def get_by_registration_id(self, registration_id: str) -> Registration | None:
        statement = select(Registration).where(
            Registration.registration_id == registration_id
        )
        return self._session.scalar(statement)

    def get_by_payment_request_id(
        self,
        payment_request_id: str,
    ) -> Registration | None:
        statement = select(Registration).where(
            Registration.payment_request_id == payment_request_id
        )
        return self._session.scalars(statement).first()

    def find_matching_identity(
        self,
        *,
        email: str,
        mobile: str,
        national_id: str,
    ) -> list[Registration]:
        """Return registrations sharing any of email, mobile or national ID."""

        statement = (
            select(Registration)
            .where(
                or_(
                    Registration.email == email,
                    Registration.mobile == mobile,
                    Registration.national_id == national_id,
                )
            )
            .order_by(Registration.created_at.desc())
        )
        return list(self._session.scalars(statement).all())

    def registration_id_exists(self, registration_id: str) -> bool:
        statement = select(Registration.id).where(
            Registration.registration_id == registration_id
        )
        return self._session.scalar(statement) is not None

    def add(self, registration: Registration) -> Registration:
        now = datetime.now(tz=UTC)
        registration.created_at = now
        registration.updated_at = now
        self._session.add(registration)
        self._session.flush()
        return registration

    def transition_status(
        self,
        registration: Registration,
        *,
        from_statuses: Iterable[PaymentStatus],
        to_status: PaymentStatus,
        values: dict[str, Any] | None = None,
    ) -> bool:
        """Compare-and-set the payment status of one registration.

        Returns ``False`` when the stored status is no longer one of
        ``from_statuses``, which means a concurrent writer got there first.
        """

        statement = (
            update(Registration)
            .where(
                Registration.id == registration.id,
                Registration.payment_status.in_(list(from_statuses)),
            )
            .values(
                payment_status=to_status,
                updated_at=datetime.now(tz=UTC),
                **(values or {}),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(statement)
        except IntegrityError as exc:
            if is_paid_identity_conflict(exc):
                raise DuplicateRegistrationError(
                    details={"id": str(registration.id)}
                ) from exc
            raise
        self._session.refresh(registration)
        return bool(result.rowcount)

    def list_registrations(
        self,
        filters: RegistrationListFilters,
    ) -> tuple[list[Registration], int]:
        statement = self._apply_filters(select(Registration), filters)
        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        statement = statement.order_by(
            Registration.created_at.desc(),
            Registration.id.asc(),
        ).offset(filters.offset)
        if filters.limit is not None:
            statement = statement.limit(filters.limit)
        return list(self._session.scalars(statement).all()), total

    def count_unpaid_for_competition(self, competition_id: UUID) -> int:
        statement = select(func.count(Registration.id)).where(
            Registration.competition_id == competition_id,
            Registration.payment_status != PaymentStatus.SUCCESS,
        )
        return int(self._session.scalar(statement) or 0)

    def list_unpaid_created_before(self, cutoff: datetime) -> list[Registration]:
        statement = (
            select(Registration)
            .where(
                Registration.payment_status != PaymentStatus.SUCCESS,
                Registration.created_at < cutoff,
            )
            .order_by(Registration.created_at.asc())
        )
        return list(self._session.scalars(statement).all())

    def delete(self, registration: Registration) -> None:
        self._session.delete(registration)
        self._session.flush()

    def _apply_filters(
        self,
        statement: Select[tuple[Registration]],
        filters: RegistrationListFilters,
    ) -> Select[tuple[Registration]]:
        if filters.competition_id is not None:
            statement = statement.where(
                Registration.competition_id == filters.competition_id
            )
        if filters.payment_status is not None:
            statement = statement.where(
                Registration.payment_status == filters.payment_status
            )
        if filters.created_from is not None:
            statement = statement.where(Registration.created_at >= filters.created_from)
        if filters.created_until is not None:
            statement = statement.where(
                Registration.created_at <= filters.created_until
            )
        return statement
