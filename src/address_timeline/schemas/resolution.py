"""Pydantic v2 schemas for effective-address lookups."""

import uuid
from datetime import date

from pydantic import BaseModel, Field

from address_timeline.lib.timeline.taxonomy import AssignmentStatus, Channel


class EffectiveAddressResponse(BaseModel):
    """The address a carrier should deliver to for one user, channel, and date."""

    assignment_id: uuid.UUID
    channel: Channel
    address_type: AssignmentStatus = Field(description="Status of the assignment in effect")
    start_date: date
    end_date: date | None = None
    smart_id: str
    first_name: str
    last_name: str
    business_name: str | None = None
    attention_to: str | None = None
    line_one: str
    line_two: str | None = None
    city: str
    state: str
    zip_code: str
    country: str
    phone: str | None = Field(
        default=None,
        description="Address phone, falling back to the user's profile phone",
    )
    delivery_instructions: str | None = Field(
        default=None,
        description="Courier instructions (package lookups only)",
    )


class SenderRecipientResponse(BaseModel):
    """Sender and recipient addresses resolved together for one shipment."""

    sender: EffectiveAddressResponse
    recipient: EffectiveAddressResponse


class ZipCodeResponse(BaseModel):
    """Zip code only, for retailers and carriers that need routing data."""

    smart_id: str
    zip_code: str
