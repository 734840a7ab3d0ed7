"""Pydantic v2 schemas for address assignments."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AddressResponse(BaseModel):
    """Postal address fields shown alongside an assignment."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    nickname: str | None = None
    business_name: str | None = None
    attention_to: str | None = None
    line_one: str
    line_two: str | None = None
    city: str
    state: str
    zip_code: str
    country: str
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    delivery_instructions: str | None = None


class AssignmentResponse(BaseModel):
    """One assignment in a user's timeline, for account history views."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    user_id: uuid.UUID
    status: str
    start_date: date
    end_date: date | None = None
    address: AddressResponse
    created_at: datetime
    updated_at: datetime


class AssignmentListResponse(BaseModel):
    """A user's assignments."""

    items: list[AssignmentResponse]
    total: int
