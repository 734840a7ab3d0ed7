"""AddressAssignment model: binds a user to an address over a date range.

Permanent-class rows are open-ended until superseded; temporary-class rows
always carry an end date.  A partial unique index backs the rule that a user
has at most one open permanent-class row.
"""

import uuid
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from address_timeline.lib.timeline.taxonomy import PERMANENT_STATUSES, AssignmentStatus
from address_timeline.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from address_timeline.models.address import Address
    from address_timeline.models.user import User


def _sql_in(values: Iterable[str]) -> str:
    return ", ".join(f"'{v}'" for v in sorted(values))


_OPEN_PERMANENT = f"end_date IS NULL AND status IN ({_sql_in(PERMANENT_STATUSES)})"


class AddressAssignment(Base, UUIDMixin, TimestampMixin):
    """A user's address for one channel set and date range.

    Attributes:
        user_id: FK to the owning user.
        address_id: FK to the assigned address.
        status: An ``AssignmentStatus`` value.
        start_date: First day of the assignment (never null).
        end_date: Last day of the assignment, or null while open-ended.
    """

    __tablename__ = "address_assignments"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    address_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("addresses.id"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(lazy="raise")  # noqa: F821
    address: Mapped["Address"] = relationship(lazy="raise")  # noqa: F821

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_sql_in(AssignmentStatus)})",
            name="ck_address_assignments_status",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_address_assignments_date_order",
        ),
        Index("ix_address_assignments_user_status", "user_id", "status"),
        Index("ix_address_assignments_user_dates", "user_id", "start_date", "end_date"),
        Index(
            "uq_address_assignments_open_permanent",
            "user_id",
            unique=True,
            postgresql_where=text(_OPEN_PERMANENT),
            sqlite_where=text(_OPEN_PERMANENT),
        ),
    )
