"""Address model: an immutable postal address referenced by assignments."""

from sqlalchemy import Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from address_timeline.models.base import Base, TimestampMixin, UUIDMixin


class Address(Base, UUIDMixin, TimestampMixin):
    """Postal address with optional geocoded coordinates.

    Changing where a user receives deliveries creates a new address and a
    new assignment; existing rows are never edited in place.
    """

    __tablename__ = "addresses"

    nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    line_one: Mapped[str] = mapped_column(String(255), nullable=False)
    line_two: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    attention_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(255), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    delivery_instructions: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (Index("ix_addresses_zip_code", "zip_code"),)
