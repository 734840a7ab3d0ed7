"""User model: the owner of an address timeline.

Accounts are managed elsewhere.  Lookups need the carrier-facing smart ID
plus the name and phone printed on the label.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from address_timeline.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Account holder whose deliverable addresses change over time."""

    __tablename__ = "users"

    smart_id: Mapped[str] = mapped_column(String(8), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(30), nullable=False)
    last_name: Mapped[str] = mapped_column(String(30), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
