"""Integration tests for effective-address resolution and carrier lookups."""

import uuid
from datetime import date

import pytest
from loguru import logger
from sqlalchemy import select

from address_timeline.lib.timeline.errors import (
    AssignmentNotFoundError,
    AssignmentValidationError,
    TimelineIntegrityError,
)
from address_timeline.lib.timeline.taxonomy import Channel
from address_timeline.models.address_assignment import AddressAssignment
from address_timeline.services.assignment_service import create_assignment
from address_timeline.services.resolution_service import (
    build_effective_address_response,
    get_user_by_smart_id,
    resolve_effective_address,
    resolve_for_smart_id,
    resolve_sender_and_recipient,
    resolve_zip_code,
)


async def _create(session, user_id, address_id, status, start, end=None) -> uuid.UUID:  # type: ignore[no-untyped-def]
    outcome = await create_assignment(
        session,
        user_id=user_id,
        address_id=address_id,
        status=status,
        start_date=start,
        end_date=end,
    )
    return outcome.assignment.id


class TestResolveEffectiveAddress:
    """Tests for the two-pass resolver."""

    async def test_start_date_is_exclusive(self, async_session, user_id, address_id) -> None:
        """An assignment takes effect the day after its start date."""
        permanent = await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))

        with pytest.raises(AssignmentNotFoundError):
            await resolve_effective_address(async_session, user_id, "mail", date(2024, 1, 1))

        for day in (date(2024, 1, 2), date(2030, 1, 1)):
            resolved = await resolve_effective_address(async_session, user_id, "mail", day)
            assert resolved.id == permanent

    async def test_temporary_wins_inside_its_range(self, async_session, make_address, user_id, address_id) -> None:
        permanent = await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))
        travel = await make_address("9 Beach Rd", city="Miami", zip_code="33101")
        temp = await _create(async_session, user_id, travel, "temporary", date(2024, 1, 10), date(2024, 1, 20))

        expected = {
            date(2024, 1, 10): permanent,
            date(2024, 1, 11): temp,
            date(2024, 1, 19): temp,
            date(2024, 1, 20): permanent,
        }
        for day, assignment_id in expected.items():
            resolved = await resolve_effective_address(async_session, user_id, Channel.PACKAGE, day)
            assert resolved.id == assignment_id, day

    async def test_returns_user_and_address(self, async_session, user_id, address_id) -> None:
        await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))
        resolved = await resolve_effective_address(async_session, user_id, "mail", date(2024, 2, 1))
        assert resolved.user.id == user_id
        assert resolved.address.id == address_id

    async def test_channel_only_temporary(self, async_session, make_address, user_id, address_id) -> None:
        permanent = await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))
        office = await make_address("100 Office Park")
        mail_only = await _create(
            async_session, user_id, office, "mail_only_temporary", date(2024, 2, 1), date(2024, 2, 28)
        )

        mail = await resolve_effective_address(async_session, user_id, "mail", date(2024, 2, 15))
        package = await resolve_effective_address(async_session, user_id, "package", date(2024, 2, 15))

        assert mail.id == mail_only
        assert package.id == permanent

    async def test_channel_only_permanent_not_valid_for_other_channel(
        self, async_session, user_id, address_id
    ) -> None:
        locker = await _create(async_session, user_id, address_id, "package_only_permanent", date(2024, 1, 1))

        resolved = await resolve_effective_address(async_session, user_id, "package", date(2024, 3, 1))
        assert resolved.id == locker
        with pytest.raises(AssignmentNotFoundError):
            await resolve_effective_address(async_session, user_id, "mail", date(2024, 3, 1))

    async def test_closed_permanent_resolves_for_past_dates(self, async_session, user_id, address_id) -> None:
        first = await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))
        second = await _create(async_session, user_id, address_id, "permanent", date(2024, 3, 1))

        assert (await resolve_effective_address(async_session, user_id, "mail", date(2024, 2, 15))).id == first
        assert (await resolve_effective_address(async_session, user_id, "mail", date(2024, 3, 2))).id == second

    async def test_no_assignments(self, async_session, user_id) -> None:
        with pytest.raises(AssignmentNotFoundError):
            await resolve_effective_address(async_session, user_id, "mail", date(2024, 1, 1))

    async def test_unknown_channel(self, async_session, user_id) -> None:
        with pytest.raises(AssignmentValidationError, match="Unknown delivery channel"):
            await resolve_effective_address(async_session, user_id, "pigeon", date(2024, 1, 1))

    async def test_ambiguous_match_is_integrity_error(self, async_session, user_id, address_id) -> None:
        for start, end in ((date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 1, 15), date(2024, 2, 15))):
            async_session.add(
                AddressAssignment(
                    user_id=user_id,
                    address_id=address_id,
                    status="temporary",
                    start_date=start,
                    end_date=end,
                )
            )
        await async_session.commit()

        with pytest.raises(TimelineIntegrityError, match="Multiple mail addresses"):
            await resolve_effective_address(async_session, user_id, "mail", date(2024, 1, 20))

    async def test_ambiguous_match_logs_the_rows_involved(self, async_session, user_id, address_id) -> None:
        for start, end in ((date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 1, 15), date(2024, 2, 15))):
            async_session.add(
                AddressAssignment(
                    user_id=user_id,
                    address_id=address_id,
                    status="temporary",
                    start_date=start,
                    end_date=end,
                )
            )
        await async_session.commit()
        result = await async_session.execute(select(AddressAssignment.id).where(AddressAssignment.user_id == user_id))
        ids = [str(i) for i in result.scalars().all()]

        messages: list[str] = []
        handler_id = logger.add(messages.append, level="ERROR", format="{message}")
        try:
            with pytest.raises(TimelineIntegrityError):
                await resolve_effective_address(async_session, user_id, "mail", date(2024, 1, 20))
        finally:
            logger.remove(handler_id)

        assert len(messages) == 1
        assert str(user_id) in messages[0]
        assert all(assignment_id in messages[0] for assignment_id in ids)


class TestSmartIdLookups:
    """Tests for carrier lookups keyed by smart ID."""

    async def test_get_user_normalizes_smart_id(self, async_session, make_user) -> None:
        user_id = await make_user("AB12CD50")
        user = await get_user_by_smart_id(async_session, " ab12cdso ")
        assert user.id == user_id

    async def test_unknown_smart_id(self, async_session) -> None:
        with pytest.raises(AssignmentNotFoundError, match="smart ID"):
            await get_user_by_smart_id(async_session, "NOPE0000")

    async def test_resolve_for_smart_id(self, async_session, make_user, make_address) -> None:
        user_id = await make_user("QW12ER34", first_name="Grace", last_name="Hopper")
        address_id = await make_address("1 Navy Way", zip_code="20001")
        assignment_id = await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))

        response = await resolve_for_smart_id(async_session, "qw12er34", "mail", date(2024, 2, 1))

        assert response.assignment_id == assignment_id
        assert response.smart_id == "QW12ER34"
        assert response.first_name == "Grace"
        assert response.last_name == "Hopper"
        assert response.line_one == "1 Navy Way"
        assert response.zip_code == "20001"
        assert response.address_type == "permanent"
        assert response.channel == Channel.MAIL

    async def test_phone_falls_back_to_user_phone(self, async_session, make_user, make_address) -> None:
        user_id = await make_user(phone="555-0199")
        no_phone = await make_address(phone=None)
        await _create(async_session, user_id, no_phone, "permanent", date(2024, 1, 1))

        response = await resolve_for_smart_id(async_session, "AB12CD34", "mail", date(2024, 2, 1))
        assert response.phone == "555-0199"

    async def test_address_phone_preferred(self, async_session, make_user, make_address) -> None:
        user_id = await make_user(phone="555-0199")
        with_phone = await make_address(phone="555-0142")
        await _create(async_session, user_id, with_phone, "permanent", date(2024, 1, 1))

        response = await resolve_for_smart_id(async_session, "AB12CD34", "mail", date(2024, 2, 1))
        assert response.phone == "555-0142"

    async def test_delivery_instructions_only_for_packages(self, async_session, make_user, make_address) -> None:
        user_id = await make_user()
        address_id = await make_address(delivery_instructions="Leave at side door")
        await _create(async_session, user_id, address_id, "permanent", date(2024, 1, 1))

        mail = await resolve_for_smart_id(async_session, "AB12CD34", "mail", date(2024, 2, 1))
        package = await resolve_for_smart_id(async_session, "AB12CD34", "package", date(2024, 2, 1))

        assert mail.delivery_instructions is None
        assert package.delivery_instructions == "Leave at side door"

    async def test_sender_and_recipient(self, async_session, make_user, make_address) -> None:
        sender_id = await make_user("5END0001")
        recipient_id = await make_user("RECV0002")
        sender_address = await make_address("1 Sender St", zip_code="10001")
        recipient_address = await make_address("2 Recipient Rd", zip_code="94105")
        await _create(async_session, sender_id, sender_address, "permanent", date(2024, 1, 1))
        await _create(async_session, recipient_id, recipient_address, "permanent", date(2024, 1, 1))

        response = await resolve_sender_and_recipient(
            async_session, "send0001", "recv0002", "package", date(2024, 2, 1)
        )

        assert response.sender.line_one == "1 Sender St"
        assert response.recipient.zip_code == "94105"

    async def test_sender_and_recipient_missing_recipient(self, async_session, make_user, make_address) -> None:
        sender_id = await make_user("5END0001")
        await _create(async_session, sender_id, await make_address(), "permanent", date(2024, 1, 1))
        await make_user("RECV0002")

        with pytest.raises(AssignmentNotFoundError):
            await resolve_sender_and_recipient(async_session, "5END0001", "RECV0002", "mail", date(2024, 2, 1))

    async def test_zip_code(self, async_session, make_user, make_address) -> None:
        user_id = await make_user()
        await _create(async_session, user_id, await make_address(zip_code="60601"), "permanent", date(2024, 1, 1))

        response = await resolve_zip_code(async_session, "AB12CD34", "package", date(2024, 2, 1))

        assert response.model_dump() == {"smart_id": "AB12CD34", "zip_code": "60601"}


class TestBuildEffectiveAddressResponse:
    """Tests for flattening a resolved assignment."""

    async def test_blank_address_phone_uses_profile_phone(self, async_session, make_user, make_address) -> None:
        user_id = await make_user(phone="555-0177")
        address_id = await make_address(phone="")
        await _create(async_session, user_id, address_id, "temporary", date(2024, 1, 1), date(2024, 1, 31))

        resolved = await resolve_effective_address(async_session, user_id, "mail", date(2024, 1, 15))
        response = build_effective_address_response(resolved, "mail")

        assert response.phone == "555-0177"
        assert response.end_date == date(2024, 1, 31)
