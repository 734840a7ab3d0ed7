"""Assignment repository: the persistence interface of the timeline engine.

Every function runs on the caller's session, which is also the transaction
handle.  Lookups that feed a cascading write take row locks
(``SELECT ... FOR UPDATE``); dialects without row locks ignore the clause.
Only the assignment service writes through this module.
"""

import uuid
from collections.abc import Iterable
from datetime import date

from sqlalchemy import ColumnElement, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from address_timeline.core.logging import log_integrity_failure
from address_timeline.lib.timeline.errors import TimelineIntegrityError
from address_timeline.lib.timeline.taxonomy import PERMANENT_STATUSES, TERMINAL_STATUSES, AssignmentStatus
from address_timeline.models.address import Address
from address_timeline.models.address_assignment import AddressAssignment
from address_timeline.models.base import utcnow
from address_timeline.models.user import User


def status_values(statuses: Iterable[str]) -> list[str]:
    """Plain, sorted status strings for SQL ``IN`` clauses."""
    return sorted(str(s) for s in statuses)


def non_terminal() -> ColumnElement[bool]:
    """Filter excluding ``expired`` and ``deleted`` rows."""
    return AddressAssignment.status.not_in(status_values(TERMINAL_STATUSES))


def with_relations() -> tuple:
    """Loader options joining the owning user and the assigned address."""
    return (selectinload(AddressAssignment.user), selectinload(AddressAssignment.address))


# ---------------------------------------------------------------------------
# Locks and existence checks
# ---------------------------------------------------------------------------


async def lock_user(session: AsyncSession, user_id: uuid.UUID) -> bool:
    """Lock the user row, serializing timeline writes for that user.

    Args:
        session: Database session.
        user_id: The owning user's UUID.

    Returns:
        True if the user exists.
    """
    result = await session.execute(select(User.id).where(User.id == user_id).with_for_update())
    return result.scalar_one_or_none() is not None


async def address_exists(session: AsyncSession, address_id: uuid.UUID) -> bool:
    """Return True if the address row exists."""
    result = await session.execute(select(Address.id).where(Address.id == address_id))
    return result.scalar_one_or_none() is not None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_by_id(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    *,
    for_update: bool = False,
    joined: bool = False,
) -> AddressAssignment | None:
    """Load one assignment by ID, refreshing any copy already in the session.

    Args:
        session: Database session.
        assignment_id: The assignment UUID.
        for_update: Lock the row for the rest of the transaction.
        joined: Eager-load the user and address.

    Returns:
        The assignment or None.
    """
    query = (
        select(AddressAssignment)
        .where(AddressAssignment.id == assignment_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    if joined:
        query = query.options(*with_relations())
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def find_overlapping(
    session: AsyncSession,
    user_id: uuid.UUID,
    statuses: Iterable[str],
    start: date,
    end: date,
    *,
    exclude_id: uuid.UUID | None = None,
) -> list[AddressAssignment]:
    """Find non-terminal rows whose ``[start_date, end_date]`` overlaps ``[start, end]``.

    Overlap is inclusive: rows sharing a single boundary day match.  Open-ended
    rows are never returned.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        statuses: Status set to search.
        start: First day of the proposed range.
        end: Last day of the proposed range.
        exclude_id: Assignment to leave out (the row being re-dated).

    Returns:
        Overlapping rows ordered by start date.
    """
    query = select(AddressAssignment).where(
        AddressAssignment.user_id == user_id,
        AddressAssignment.status.in_(status_values(statuses)),
        non_terminal(),
        AddressAssignment.end_date.is_not(None),
        AddressAssignment.start_date <= end,
        AddressAssignment.end_date >= start,
    )
    if exclude_id is not None:
        query = query.where(AddressAssignment.id != exclude_id)
    result = await session.execute(query.order_by(AddressAssignment.start_date))
    return list(result.scalars().all())


async def find_by_user_and_status_and_date(
    session: AsyncSession,
    user_id: uuid.UUID,
    statuses: Iterable[str],
    target_date: date,
) -> list[AddressAssignment]:
    """Find non-terminal rows in effect on ``target_date``.

    A row is in effect when ``start_date < target_date`` and its end date is
    null or ``end_date > target_date``.  An assignment takes effect the day
    after its start date.

    Returns:
        Matching rows with user and address joined.
    """
    result = await session.execute(
        select(AddressAssignment)
        .where(
            AddressAssignment.user_id == user_id,
            AddressAssignment.status.in_(status_values(statuses)),
            non_terminal(),
            AddressAssignment.start_date < target_date,
            or_(AddressAssignment.end_date.is_(None), AddressAssignment.end_date > target_date),
        )
        .options(*with_relations())
        .order_by(AddressAssignment.start_date)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def find_open_permanent(session: AsyncSession, user_id: uuid.UUID) -> list[AddressAssignment]:
    """Lock and return every non-terminal permanent-class row with no end date."""
    result = await session.execute(
        select(AddressAssignment)
        .where(
            AddressAssignment.user_id == user_id,
            AddressAssignment.status.in_(status_values(PERMANENT_STATUSES)),
            AddressAssignment.end_date.is_(None),
        )
        .order_by(AddressAssignment.start_date)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def find_open_permanent_predecessor(
    session: AsyncSession,
    user_id: uuid.UUID,
    end_date: date,
) -> AddressAssignment | None:
    """Lock and return the permanent-class row ending on ``end_date``.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        end_date: The day before the successor's start date.

    Returns:
        The predecessor or None.

    Raises:
        TimelineIntegrityError: If more than one row ends on that day.
    """
    result = await session.execute(
        select(AddressAssignment)
        .where(
            AddressAssignment.user_id == user_id,
            AddressAssignment.status.in_(status_values(PERMANENT_STATUSES)),
            AddressAssignment.end_date == end_date,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    rows = list(result.scalars().all())
    if len(rows) > 1:
        log_integrity_failure(
            f"duplicate permanent predecessors ending {end_date.isoformat()}",
            user_id=str(user_id),
            assignment_ids=[str(r.id) for r in rows],
        )
        msg = f"Found {len(rows)} permanent assignments ending {end_date.isoformat()}; expected at most one"
        raise TimelineIntegrityError(msg)
    return rows[0] if rows else None


async def find_successor(
    session: AsyncSession,
    user_id: uuid.UUID,
    start_date: date,
    *,
    exclude_id: uuid.UUID | None = None,
) -> AddressAssignment | None:
    """Return the first non-terminal permanent-class row starting on ``start_date``."""
    query = select(AddressAssignment).where(
        AddressAssignment.user_id == user_id,
        AddressAssignment.status.in_(status_values(PERMANENT_STATUSES)),
        AddressAssignment.start_date == start_date,
    )
    if exclude_id is not None:
        query = query.where(AddressAssignment.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalars().first()


async def has_earlier_permanent(
    session: AsyncSession,
    user_id: uuid.UUID,
    before: date,
    *,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    """Return True if a non-terminal permanent-class row starts before ``before``."""
    query = select(AddressAssignment.id).where(
        AddressAssignment.user_id == user_id,
        AddressAssignment.status.in_(status_values(PERMANENT_STATUSES)),
        AddressAssignment.start_date < before,
    )
    if exclude_id is not None:
        query = query.where(AddressAssignment.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalars().first() is not None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def insert(session: AsyncSession, assignment: AddressAssignment) -> AddressAssignment:
    """Add a new assignment and flush it so its ID and defaults are populated."""
    session.add(assignment)
    await session.flush()
    return assignment


async def update_end_date(session: AsyncSession, assignment_id: uuid.UUID, new_end_date: date | None) -> None:
    """Set (or clear, with None) an assignment's end date."""
    await session.execute(
        update(AddressAssignment)
        .where(AddressAssignment.id == assignment_id)
        .values(end_date=new_end_date, updated_at=utcnow())
    )


async def update_dates(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    start_date: date,
    end_date: date | None,
) -> None:
    """Replace both dates of an assignment."""
    await session.execute(
        update(AddressAssignment)
        .where(AddressAssignment.id == assignment_id)
        .values(start_date=start_date, end_date=end_date, updated_at=utcnow())
    )


async def update_status(session: AsyncSession, assignment_id: uuid.UUID, new_status: AssignmentStatus) -> None:
    """Change an assignment's status."""
    await session.execute(
        update(AddressAssignment)
        .where(AddressAssignment.id == assignment_id)
        .values(status=str(new_status), updated_at=utcnow())
    )
