"""Resolution service: answers which address is in effect for a user on a date.

Lookups are read-only and never lock.  A multi-step lookup such as a sender
and recipient pair runs inside one transaction so both answers come from the
same snapshot.
"""

import uuid
from datetime import date

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from address_timeline.core.database import transaction
from address_timeline.core.logging import log_integrity_failure
from address_timeline.lib.timeline.errors import (
    AssignmentNotFoundError,
    AssignmentValidationError,
    TimelineIntegrityError,
)
from address_timeline.lib.timeline.smart_id import normalize_smart_id
from address_timeline.lib.timeline.taxonomy import Channel, temporary_statuses_for, valid_statuses_for
from address_timeline.models.address_assignment import AddressAssignment
from address_timeline.models.user import User
from address_timeline.schemas.resolution import (
    EffectiveAddressResponse,
    SenderRecipientResponse,
    ZipCodeResponse,
)
from address_timeline.services.assignment_repository import find_by_user_and_status_and_date


def _parse_channel(channel: str) -> Channel:
    try:
        return Channel(channel)
    except ValueError:
        msg = f"Unknown delivery channel '{channel}'"
        raise AssignmentValidationError(msg) from None


async def resolve_effective_address(
    session: AsyncSession,
    user_id: uuid.UUID,
    channel: str,
    target_date: date,
) -> AddressAssignment:
    """Resolve the assignment in effect for a user, channel, and date.

    A temporary assignment for the channel wins over any permanent one.  An
    assignment is in effect from the day after its start date through the
    day before its end date; open-ended rows never lapse.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        channel: ``mail`` or ``package``.
        target_date: The day being asked about.

    Returns:
        The assignment, with its user and address loaded.

    Raises:
        AssignmentValidationError: If the channel is unknown.
        AssignmentNotFoundError: If no assignment is in effect.
        TimelineIntegrityError: If several assignments are in effect at once.
    """
    parsed = _parse_channel(channel)

    async with transaction(session):
        for statuses in (temporary_statuses_for(parsed), valid_statuses_for(parsed)):
            matches = await find_by_user_and_status_and_date(session, user_id, statuses, target_date)
            if len(matches) > 1:
                log_integrity_failure(
                    f"{len(matches)} {parsed} assignments in effect on {target_date.isoformat()}",
                    user_id=str(user_id),
                    channel=str(parsed),
                    assignment_ids=[str(m.id) for m in matches],
                )
                msg = f"Multiple {parsed} addresses in effect on {target_date.isoformat()}"
                raise TimelineIntegrityError(msg)
            if matches:
                logger.debug(
                    f"Resolved {parsed} address for user {user_id} on {target_date}: assignment {matches[0].id}"
                )
                return matches[0]

    msg = f"No {parsed} address in effect for user {user_id} on {target_date.isoformat()}"
    raise AssignmentNotFoundError(msg)


async def get_user_by_smart_id(session: AsyncSession, smart_id: str) -> User:
    """Look up a user by smart ID after normalizing look-alike characters.

    Raises:
        AssignmentNotFoundError: If no user carries the smart ID.
    """
    normalized = normalize_smart_id(smart_id)
    async with transaction(session):
        result = await session.execute(select(User).where(User.smart_id == normalized))
        user = result.scalar_one_or_none()
    if user is None:
        msg = f"No user with smart ID '{normalized}'"
        raise AssignmentNotFoundError(msg)
    return user


def build_effective_address_response(assignment: AddressAssignment, channel: str) -> EffectiveAddressResponse:
    """Flatten a resolved assignment into the carrier-facing response.

    The address phone falls back to the user's profile phone.  Delivery
    instructions are courier notes and only go out on package lookups.
    """
    parsed = Channel(channel)
    user = assignment.user
    address = assignment.address
    return EffectiveAddressResponse(
        assignment_id=assignment.id,
        channel=parsed,
        address_type=assignment.status,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        smart_id=user.smart_id,
        first_name=user.first_name,
        last_name=user.last_name,
        business_name=address.business_name,
        attention_to=address.attention_to,
        line_one=address.line_one,
        line_two=address.line_two,
        city=address.city,
        state=address.state,
        zip_code=address.zip_code,
        country=address.country,
        phone=address.phone or user.phone,
        delivery_instructions=address.delivery_instructions if parsed == Channel.PACKAGE else None,
    )


async def resolve_for_smart_id(
    session: AsyncSession,
    smart_id: str,
    channel: str,
    target_date: date,
) -> EffectiveAddressResponse:
    """Resolve the effective address for the user behind a smart ID."""
    async with transaction(session):
        user = await get_user_by_smart_id(session, smart_id)
        assignment = await resolve_effective_address(session, user.id, channel, target_date)
    return build_effective_address_response(assignment, channel)


async def resolve_sender_and_recipient(
    session: AsyncSession,
    sender_smart_id: str,
    recipient_smart_id: str,
    channel: str,
    target_date: date,
) -> SenderRecipientResponse:
    """Resolve both ends of a shipment from one consistent snapshot.

    Raises:
        AssignmentNotFoundError: If either user is unknown or has no
            address in effect.
    """
    async with transaction(session):
        sender = await resolve_for_smart_id(session, sender_smart_id, channel, target_date)
        recipient = await resolve_for_smart_id(session, recipient_smart_id, channel, target_date)
    logger.debug(f"Resolved sender {sender.smart_id} and recipient {recipient.smart_id} for {target_date}")
    return SenderRecipientResponse(sender=sender, recipient=recipient)


async def resolve_zip_code(
    session: AsyncSession,
    smart_id: str,
    channel: str,
    target_date: date,
) -> ZipCodeResponse:
    """Resolve only the zip code of the effective address."""
    resolved = await resolve_for_smart_id(session, smart_id, channel, target_date)
    return ZipCodeResponse(smart_id=resolved.smart_id, zip_code=resolved.zip_code)
