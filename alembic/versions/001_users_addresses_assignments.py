"""Initial migration: users, addresses, and address_assignments tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Status groups as defined in lib/timeline/taxonomy.py at revision 001.
_ALL_STATUSES = (
    "'deleted', 'expired', 'mail_only_permanent', 'mail_only_temporary', "
    "'package_only_permanent', 'package_only_temporary', 'permanent', 'temporary'"
)
_PERMANENT_STATUSES = "'mail_only_permanent', 'package_only_permanent', 'permanent'"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("smart_id", sa.String(8), nullable=False),
        sa.Column("email", sa.String(100), unique=True, nullable=False),
        sa.Column("first_name", sa.String(30), nullable=False),
        sa.Column("last_name", sa.String(30), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_smart_id", "users", ["smart_id"], unique=True)

    op.create_table(
        "addresses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("nickname", sa.String(255), nullable=True),
        sa.Column("line_one", sa.String(255), nullable=False),
        sa.Column("line_two", sa.String(255), nullable=True),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("attention_to", sa.String(255), nullable=True),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("state", sa.String(255), nullable=False),
        sa.Column("zip_code", sa.String(255), nullable=False),
        sa.Column("country", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("delivery_instructions", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_addresses_zip_code", "addresses", ["zip_code"])

    op.create_table(
        "address_assignments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("address_id", UUID(as_uuid=True), sa.ForeignKey("addresses.id"), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(f"status IN ({_ALL_STATUSES})", name="ck_address_assignments_status"),
        sa.CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_address_assignments_date_order",
        ),
    )
    op.create_index("ix_address_assignments_user_status", "address_assignments", ["user_id", "status"])
    op.create_index(
        "ix_address_assignments_user_dates",
        "address_assignments",
        ["user_id", "start_date", "end_date"],
    )

    # At most one open-ended permanent-class row per user
    op.create_index(
        "uq_address_assignments_open_permanent",
        "address_assignments",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text(f"end_date IS NULL AND status IN ({_PERMANENT_STATUSES})"),
    )


def downgrade() -> None:
    op.drop_index("uq_address_assignments_open_permanent", table_name="address_assignments")
    op.drop_index("ix_address_assignments_user_dates", table_name="address_assignments")
    op.drop_index("ix_address_assignments_user_status", table_name="address_assignments")
    op.drop_table("address_assignments")
    op.drop_index("ix_addresses_zip_code", table_name="addresses")
    op.drop_table("addresses")
    op.drop_index("ix_users_smart_id", table_name="users")
    op.drop_table("users")
