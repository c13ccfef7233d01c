"""Create competitions and registrations tables.

Revision ID: 001_create_registration_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_create_registration_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


payment_status_enum = sa.Enum("pending", "success", "failed", name="payment_status")
PAID_ONLY = sa.text("payment_status = 'success'")


def upgrade() -> None:
    op.create_table(
        "competitions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "passport_required",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("price >= 0", name="ck_competitions_price_not_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_competitions_city", "competitions", ["city"])

    op.create_table(
        "registrations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("registration_id", sa.String(length=32), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("mobile", sa.String(length=20), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("state", sa.String(length=120), nullable=False),
        sa.Column("postal_code", sa.String(length=12), nullable=False),
        sa.Column("national_id", sa.String(length=32), nullable=False),
        sa.Column("work_place", sa.String(length=200), nullable=True),
        sa.Column("competition_id", sa.Uuid(), nullable=False),
        sa.Column("competition_name", sa.String(length=200), nullable=False),
        sa.Column("competition_city", sa.String(length=120), nullable=False),
        sa.Column("document_number", sa.String(length=40), nullable=True),
        sa.Column("document_url", sa.String(length=500), nullable=True),
        sa.Column("accepted_terms", sa.Boolean(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_status", payment_status_enum, nullable=False),
        sa.Column("payment_request_id", sa.String(length=64), nullable=True),
        sa.Column("payment_id", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount >= 0", name="ck_registrations_amount_not_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("registration_id", name="uq_registrations_registration_id"),
    )
    op.create_index("ix_registrations_email", "registrations", ["email"])
    op.create_index("ix_registrations_mobile", "registrations", ["mobile"])
    op.create_index("ix_registrations_national_id", "registrations", ["national_id"])
    op.create_index(
        "ix_registrations_competition_id", "registrations", ["competition_id"]
    )
    op.create_index(
        "ix_registrations_payment_request_id",
        "registrations",
        ["payment_request_id"],
    )
    for column in ("email", "mobile", "national_id"):
        op.create_index(
            f"uq_registrations_paid_{column}",
            "registrations",
            [column],
            unique=True,
            postgresql_where=PAID_ONLY,
            sqlite_where=PAID_ONLY,
        )


def downgrade() -> None:
    for column in ("national_id", "mobile", "email"):
        op.drop_index(f"uq_registrations_paid_{column}", table_name="registrations")
    op.drop_index(
        "ix_registrations_payment_request_id", table_name="registrations"
    )
    op.drop_index("ix_registrations_competition_id", table_name="registrations")
    op.drop_index("ix_registrations_national_id", table_name="registrations")
    op.drop_index("ix_registrations_mobile", table_name="registrations")
    op.drop_index("ix_registrations_email", table_name="registrations")
    op.drop_table("registrations")
    op.drop_index("ix_competitions_city", table_name="competitions")
    op.drop_table("competitions")
    payment_status_enum.drop(op.get_bind(), checkfirst=True)
