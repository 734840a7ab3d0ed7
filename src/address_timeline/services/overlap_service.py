"""Overlap service: rejects temporary assignments that collide with existing ones."""

import uuid
from datetime import date

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from address_timeline.lib.timeline.errors import AssignmentConflictError, AssignmentValidationError
from address_timeline.lib.timeline.overlap import first_overlapping
from address_timeline.lib.timeline.taxonomy import TEMPORARY_STATUSES
from address_timeline.services.assignment_repository import find_overlapping


async def check_conflict(
    session: AsyncSession,
    user_id: uuid.UUID,
    proposed_start: date,
    proposed_end: date | None,
    *,
    exclude_id: uuid.UUID | None = None,
) -> None:
    """Ensure ``[proposed_start, proposed_end]`` is free of other temporary assignments.

    Only temporary-class proposals are checked here; permanent-class rows are
    open-ended and are sequenced by closing their predecessor instead.
    Terminal rows never conflict, so a deleted range is reusable at once.

    Args:
        session: Database session.
        user_id: The owning user's UUID.
        proposed_start: First day of the proposed range.
        proposed_end: Last day of the proposed range.
        exclude_id: Assignment being re-dated, ignored during the check.

    Raises:
        AssignmentValidationError: If ``proposed_end`` is missing.
        AssignmentConflictError: If any non-terminal temporary-class row
            overlaps the range (inclusive); carries the first such row's ID.
    """
    if proposed_end is None:
        msg = "End date required for temporary address"
        raise AssignmentValidationError(msg)

    candidates = await find_overlapping(
        session,
        user_id,
        TEMPORARY_STATUSES,
        proposed_start,
        proposed_end,
        exclude_id=exclude_id,
    )
    conflict = first_overlapping(candidates, proposed_start, proposed_end)
    if conflict is None:
        return

    logger.info(
        f"Temporary range {proposed_start.isoformat()}..{proposed_end.isoformat()} for user {user_id} "
        f"conflicts with assignment {conflict.id}"
    )
    msg = (
        f"There is a conflict with temporary assignment {conflict.id} "
        f"({conflict.start_date.isoformat()} to {conflict.end_date.isoformat()}); "  # type: ignore[union-attr]
        "please make sure that the dates for temporary addresses don't overlap"
    )
    raise AssignmentConflictError(msg, conflicting_id=conflict.id)
