"""Assignment service: the only writer of the assignment timeline.

Each write validates its input first, then runs one transaction that locks
the owning user row, re-reads whatever the cascade depends on with row
locks, and applies the insert or update together with any predecessor
repair.  Writes return a ``WriteOutcome`` naming the repaired predecessor.
"""

import uuid
from dataclasses import dataclass
from datetime import date

from loguru import logger
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from address_timeline.core.database import transaction
from address_timeline.core.logging import log_integrity_failure
from address_timeline.lib.timeline.errors import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    TimelineIntegrityError,
)
from address_timeline.lib.timeline.overlap import day_after, day_before
from address_timeline.lib.timeline.taxonomy import (
    PERMANENT_STATUSES,
    AssignmentStatus,
    is_permanent_class,
    is_temporary_class,
)
from address_timeline.lib.timeline.validation import validate_assignment_fields, validate_dates
from address_timeline.models.address_assignment import AddressAssignment
from address_timeline.models.base import utcnow
from address_timeline.services import assignment_repository as repo
from address_timeline.services.overlap_service import check_conflict


@dataclass
class WriteOutcome:
    """Result of a timeline write.

    Attributes:
        assignment: The created or modified assignment, user and address joined.
        predecessor: The permanent-class row whose end date was repaired, if any.
    """

    assignment: AddressAssignment
    predecessor: AddressAssignment | None = None


def _integrity_failure(message: str, **context: object) -> TimelineIntegrityError:
    log_integrity_failure(message, **context)
    return TimelineIntegrityError(message)


async def _reload(session: AsyncSession, assignment_id: uuid.UUID) -> AddressAssignment:
    row = await repo.get_by_id(session, assignment_id, joined=True)
    if row is None:
        msg = f"Address assignment {assignment_id} not found"
        raise AssignmentNotFoundError(msg)
    return row


async def _load_locked(session: AsyncSession, assignment_id: uuid.UUID) -> AddressAssignment:
    """Lock the owner, then the assignment row, and return the fresh row.

    Locks are taken user-first so every writer acquires them in the same order.
    """
    row = await repo.get_by_id(session, assignment_id)
    if row is None or row.status == AssignmentStatus.DELETED:
        msg = f"Address assignment {assignment_id} not found"
        raise AssignmentNotFoundError(msg)
    await repo.lock_user(session, row.user_id)
    row = await repo.get_by_id(session, assignment_id, for_update=True)
    if row is None or row.status == AssignmentStatus.DELETED:
        msg = f"Address assignment {assignment_id} not found"
        raise AssignmentNotFoundError(msg)
    return row


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


async def get_assignment(session: AsyncSession, assignment_id: uuid.UUID) -> AddressAssignment:
    """Get a single assignment with its user and address.

    Args:
        session: Database session.
        assignment_id: The assignment UUID.

    Returns:
        The assignment, including soft-deleted ones.

    Raises:
        AssignmentNotFoundError: If no such assignment exists.
    """
    async with transaction(session):
        return await _reload(session, assignment_id)


async def list_non_terminal_assignments(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    active_on: date | None = None,
    limit: int = 100,
) -> list[AddressAssignment]:
    """List a user's non-terminal assignments for history and account views.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        active_on: When set, only rows still in effect after this day
            (open-ended, or ending later) are returned.
        limit: Maximum rows.

    Returns:
        Assignments ordered by start date, addresses joined.
    """
    query = select(AddressAssignment).where(
        AddressAssignment.user_id == user_id,
        repo.non_terminal(),
    )
    if active_on is not None:
        query = query.where(
            or_(AddressAssignment.end_date.is_(None), AddressAssignment.end_date > active_on),
        )
    query = (
        query.options(selectinload(AddressAssignment.address))
        .order_by(AddressAssignment.start_date, AddressAssignment.created_at)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    async with transaction(session):
        result = await session.execute(query)
        assignments = list(result.scalars().all())
    logger.debug(f"Listed {len(assignments)} non-terminal assignments for user {user_id}")
    return assignments


async def list_assignment_history(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    limit: int = 100,
) -> list[AddressAssignment]:
    """List every assignment a user has had, newest first, except deleted ones.

    Expired rows are included; they are part of the user's address history.
    """
    async with transaction(session):
        result = await session.execute(
            select(AddressAssignment)
            .where(
                AddressAssignment.user_id == user_id,
                AddressAssignment.status != AssignmentStatus.DELETED.value,
            )
            .options(selectinload(AddressAssignment.address))
            .order_by(AddressAssignment.start_date.desc(), AddressAssignment.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        assignments = list(result.scalars().all())
    logger.debug(f"Listed {len(assignments)} historical assignments for user {user_id}")
    return assignments


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_assignment(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    address_id: uuid.UUID,
    status: str | None,
    start_date: date | None,
    end_date: date | None = None,
) -> WriteOutcome:
    """Assign an address to a user.

    A temporary-class assignment must not overlap another temporary-class
    assignment of the same user.  A permanent-class assignment closes the
    user's current open-ended permanent row, setting its end date to the day
    before the new start date; the closed row keeps its status.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        address_id: The address to assign.
        status: Assignment status (non-terminal).
        start_date: First day of the assignment.
        end_date: Last day; required for temporary-class statuses.

    Returns:
        WriteOutcome with the new assignment and the closed predecessor.

    Raises:
        AssignmentValidationError: On missing or malformed fields.
        AssignmentNotFoundError: If the user or address does not exist.
        AssignmentConflictError: On an overlapping temporary range, or a new
            permanent start that does not follow the current one's start.
        TimelineIntegrityError: If the user already has several open
            permanent-class rows.
    """
    draft = validate_assignment_fields(status, start_date, end_date)

    try:
        async with transaction(session):
            if not await repo.lock_user(session, user_id):
                msg = f"User {user_id} not found"
                raise AssignmentNotFoundError(msg)
            if not await repo.address_exists(session, address_id):
                msg = f"Address {address_id} not found"
                raise AssignmentNotFoundError(msg)

            predecessor: AddressAssignment | None = None
            if draft.is_temporary:
                await check_conflict(session, user_id, draft.start_date, draft.end_date)
            else:
                open_rows = await repo.find_open_permanent(session, user_id)
                if len(open_rows) > 1:
                    raise _integrity_failure(
                        f"User {user_id} has {len(open_rows)} open permanent assignments; expected at most one",
                        user_id=str(user_id),
                        assignment_ids=[str(r.id) for r in open_rows],
                    )
                if open_rows:
                    predecessor = open_rows[0]
                    if predecessor.start_date >= draft.start_date:
                        msg = (
                            f"New permanent assignment must start after the current one "
                            f"(which starts {predecessor.start_date.isoformat()})"
                        )
                        raise AssignmentConflictError(msg, conflicting_id=predecessor.id)
                    await repo.update_end_date(session, predecessor.id, day_before(draft.start_date))

            created = await repo.insert(
                session,
                AddressAssignment(
                    user_id=user_id,
                    address_id=address_id,
                    status=str(draft.status),
                    start_date=draft.start_date,
                    end_date=draft.end_date,
                ),
            )
            assignment = await _reload(session, created.id)
            if predecessor is not None:
                predecessor = await _reload(session, predecessor.id)
    except IntegrityError as e:
        raise _integrity_failure(
            "Concurrent write violated the one-open-permanent-assignment rule",
            user_id=str(user_id),
        ) from e

    if predecessor is not None:
        logger.info(
            f"Closed permanent assignment {predecessor.id} at {predecessor.end_date} "
            f"for user {user_id}"
        )
    logger.info(f"Created {draft.status} assignment {assignment.id} for user {user_id}")
    return WriteOutcome(assignment=assignment, predecessor=predecessor)


async def correct_assignment_dates(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    *,
    start_date: date | None,
    end_date: date | None,
) -> WriteOutcome:
    """Correct the dates of an existing assignment.

    The address itself is never changed; a different address is a new
    assignment.  Moving the start of a permanent-class row also moves the
    end of its predecessor (the row ending the day before the original
    start) so the permanent timeline stays contiguous.

    Args:
        session: Database session.
        assignment_id: The assignment UUID.
        start_date: Corrected first day.
        end_date: Corrected last day (required for temporary-class rows).

    Returns:
        WriteOutcome with the corrected assignment and the repaired predecessor.

    Raises:
        AssignmentNotFoundError: If the assignment is missing or deleted.
        AssignmentValidationError: On malformed dates, an expired row, or an
            end-date change on a permanent row that already has a successor.
        AssignmentConflictError: On an overlapping temporary range, or
            reopening a permanent row while another one is open.
        TimelineIntegrityError: If the predecessor is missing but expected,
            or the new start would not follow the predecessor's start.
    """
    try:
        async with transaction(session):
            row = await _load_locked(session, assignment_id)
            if row.status == AssignmentStatus.EXPIRED:
                msg = f"Address assignment {assignment_id} has expired and cannot be corrected"
                raise AssignmentValidationError(msg)

            start, end = validate_dates(row.status, start_date, end_date)
            original_start, original_end = row.start_date, row.end_date
            predecessor: AddressAssignment | None = None

            if is_temporary_class(row.status):
                await check_conflict(session, row.user_id, start, end, exclude_id=row.id)
            elif is_permanent_class(row.status):
                if end != original_end:
                    await _check_permanent_end_change(session, row, end)
                if start != original_start:
                    predecessor = await repo.find_open_permanent_predecessor(
                        session, row.user_id, day_before(original_start)
                    )
                    if predecessor is not None and start <= predecessor.start_date:
                        raise _integrity_failure(
                            f"Corrected start {start.isoformat()} does not follow predecessor "
                            f"{predecessor.id} starting {predecessor.start_date.isoformat()}",
                            assignment_id=str(row.id),
                            predecessor_id=str(predecessor.id),
                        )
                    if predecessor is None and await repo.has_earlier_permanent(
                        session, row.user_id, original_start, exclude_id=row.id
                    ):
                        raise _integrity_failure(
                            f"No permanent assignment ends on {day_before(original_start).isoformat()} "
                            f"although earlier permanent assignments exist",
                            assignment_id=str(row.id),
                            user_id=str(row.user_id),
                        )

            if predecessor is not None:
                await repo.update_end_date(session, predecessor.id, day_before(start))
            await repo.update_dates(session, row.id, start, end)
            assignment = await _reload(session, row.id)
            if predecessor is not None:
                predecessor = await _reload(session, predecessor.id)
    except IntegrityError as e:
        raise _integrity_failure(
            "Date correction violated a timeline constraint",
            assignment_id=str(assignment_id),
        ) from e

    logger.info(
        f"Corrected assignment {assignment_id}: {original_start}..{original_end} -> {start}..{end}"
    )
    return WriteOutcome(assignment=assignment, predecessor=predecessor)


async def _check_permanent_end_change(
    session: AsyncSession,
    row: AddressAssignment,
    new_end: date | None,
) -> None:
    """Refuse end-date edits that would break the permanent timeline."""
    if row.end_date is not None:
        successor = await repo.find_successor(session, row.user_id, day_after(row.end_date), exclude_id=row.id)
        if successor is not None:
            msg = (
                f"End date of assignment {row.id} follows the start of assignment {successor.id}; "
                "correct the later assignment's start date instead"
            )
            raise AssignmentValidationError(msg)
    if new_end is None:
        others = [r for r in await repo.find_open_permanent(session, row.user_id) if r.id != row.id]
        if others:
            msg = f"Assignment {others[0].id} is already the current permanent address"
            raise AssignmentConflictError(msg, conflicting_id=others[0].id)


async def delete_assignment(session: AsyncSession, assignment_id: uuid.UUID) -> WriteOutcome:
    """Soft-delete an assignment and repair the permanent timeline around it.

    When a permanent-class row is deleted its predecessor (the row ending the
    day before the deleted row's start) takes over the deleted row's end
    date, reopening it if the deleted row was the current address.  Deleted
    temporary-class ranges are immediately free for new assignments.

    Args:
        session: Database session.
        assignment_id: The assignment UUID.

    Returns:
        WriteOutcome with the deleted assignment and the repaired predecessor.

    Raises:
        AssignmentNotFoundError: If the assignment is missing or already deleted.
    """
    try:
        async with transaction(session):
            row = await _load_locked(session, assignment_id)
            predecessor: AddressAssignment | None = None
            if is_permanent_class(row.status):
                predecessor = await repo.find_open_permanent_predecessor(
                    session, row.user_id, day_before(row.start_date)
                )

            await repo.update_status(session, row.id, AssignmentStatus.DELETED)
            if predecessor is not None:
                await repo.update_end_date(session, predecessor.id, row.end_date)
            assignment = await _reload(session, row.id)
            if predecessor is not None:
                predecessor = await _reload(session, predecessor.id)
    except IntegrityError as e:
        raise _integrity_failure(
            "Deletion repair violated a timeline constraint",
            assignment_id=str(assignment_id),
        ) from e

    if predecessor is not None:
        logger.info(f"Extended permanent assignment {predecessor.id} to {predecessor.end_date or 'open-ended'}")
    logger.info(f"Soft-deleted assignment {assignment_id}")
    return WriteOutcome(assignment=assignment, predecessor=predecessor)


async def purge_assignment(session: AsyncSession, assignment_id: uuid.UUID) -> None:
    """Physically remove an erroneous, already soft-deleted assignment.

    Args:
        session: Database session.
        assignment_id: The assignment UUID.

    Raises:
        AssignmentNotFoundError: If the assignment does not exist.
        AssignmentValidationError: If the assignment has not been soft-deleted.
    """
    async with transaction(session):
        row = await repo.get_by_id(session, assignment_id, for_update=True)
        if row is None:
            msg = f"Address assignment {assignment_id} not found"
            raise AssignmentNotFoundError(msg)
        if row.status != AssignmentStatus.DELETED:
            msg = f"Address assignment {assignment_id} must be deleted before it can be purged"
            raise AssignmentValidationError(msg)
        await session.execute(delete(AddressAssignment).where(AddressAssignment.id == assignment_id))
    logger.info(f"Purged assignment {assignment_id}")


async def expire_lapsed_assignments(session: AsyncSession, user_id: uuid.UUID, as_of: date) -> int:
    """Mark a user's bounded permanent-class rows that ended before ``as_of`` as expired.

    Optional bookkeeping.  Expired rows are terminal: they no longer resolve
    for past dates and no longer act as predecessors in delete or correction
    repair.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        as_of: Rows with ``end_date < as_of`` are expired.

    Returns:
        Number of rows marked expired.
    """
    async with transaction(session):
        if not await repo.lock_user(session, user_id):
            msg = f"User {user_id} not found"
            raise AssignmentNotFoundError(msg)
        result = await session.execute(
            update(AddressAssignment)
            .where(
                AddressAssignment.user_id == user_id,
                AddressAssignment.status.in_(repo.status_values(PERMANENT_STATUSES)),
                AddressAssignment.end_date.is_not(None),
                AddressAssignment.end_date < as_of,
            )
            .values(status=AssignmentStatus.EXPIRED.value, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
    expired = result.rowcount or 0
    logger.info(f"Expired {expired} lapsed permanent assignments for user {user_id} as of {as_of}")
    return expired
