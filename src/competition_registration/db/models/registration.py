"""Registration ORM model with payment status."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Numeric,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from competition_registration.db.base import Base

PAID_ONLY = text("payment_status = 'success'")


class PaymentStatus(enum.StrEnum):
    """Payment lifecycle states of one registration."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Registration(Base):
    """Participant registration tied to one competition and one payment."""

    __tablename__ = "registrations"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_registrations_amount_not_negative"),
        Index("ix_registrations_email", "email"),
        Index("ix_registrations_mobile", "mobile"),
        Index("ix_registrations_national_id", "national_id"),
        Index("ix_registrations_competition_id", "competition_id"),
        Index("ix_registrations_payment_request_id", "payment_request_id"),
        Index(
            "uq_registrations_paid_email",
            "email",
            unique=True,
            postgresql_where=PAID_ONLY,
            sqlite_where=PAID_ONLY,
        ),
        Index(
            "uq_registrations_paid_mobile",
            "mobile",
            unique=True,
            postgresql_where=PAID_ONLY,
            sqlite_where=PAID_ONLY,
        ),
        Index(
            "uq_registrations_paid_national_id",
            "national_id",
            unique=True,
            postgresql_where=PAID_ONLY,
            sqlite_where=PAID_ONLY,
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    registration_id: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        unique=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    mobile: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    state: Mapped[str] = mapped_column(String(120), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(12), nullable=False)
    national_id: Mapped[str] = mapped_column(String(32), nullable=False)
    work_place: Mapped[str | None] = mapped_column(String(200), nullable=True)
    competition_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    competition_name: Mapped[str] = mapped_column(String(200), nullable=False)
    competition_city: Mapped[str] = mapped_column(String(120), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    document_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    accepted_terms: Mapped[bool] = mapped_column(Boolean, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            name="payment_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_request_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
