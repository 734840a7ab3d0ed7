"""Pure validation of assignment fields.

Produces a typed ``AssignmentDraft`` before any database work happens, so the
write path only ever sees inputs that already satisfy the per-row rules.
"""

from dataclasses import dataclass
from datetime import date, datetime

from address_timeline.lib.timeline.errors import AssignmentValidationError
from address_timeline.lib.timeline.taxonomy import (
    AssignmentStatus,
    is_permanent_class,
    is_temporary_class,
    is_terminal,
)


@dataclass(frozen=True)
class AssignmentDraft:
    """Validated status and date range for a new or corrected assignment.

    Attributes:
        status: A non-terminal assignment status.
        start_date: First day of the assignment.
        end_date: Last day, or None for an open-ended permanent assignment.
    """

    status: AssignmentStatus
    start_date: date
    end_date: date | None

    @property
    def is_temporary(self) -> bool:
        return is_temporary_class(self.status)

    @property
    def is_permanent(self) -> bool:
        return is_permanent_class(self.status)


def _as_date(value: date | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_status(status: str | None) -> AssignmentStatus:
    """Coerce a raw status string into an ``AssignmentStatus``.

    Raises:
        AssignmentValidationError: If the status is missing or unknown.
    """
    if not status:
        msg = "Status required"
        raise AssignmentValidationError(msg)
    try:
        return AssignmentStatus(status)
    except ValueError:
        msg = f"Unknown assignment status '{status}'"
        raise AssignmentValidationError(msg) from None


def validate_dates(status: str, start_date: date | None, end_date: date | None) -> tuple[date, date | None]:
    """Check a date range against the rules for ``status``.

    Args:
        status: The assignment's status.
        start_date: Proposed start date.
        end_date: Proposed end date.

    Returns:
        The normalized ``(start_date, end_date)`` pair.

    Raises:
        AssignmentValidationError: If the start date is missing, a
            temporary-class assignment has no end date, or the end date
            precedes the start date.
    """
    start_date = _as_date(start_date)
    end_date = _as_date(end_date)
    if start_date is None:
        msg = "Start date required"
        raise AssignmentValidationError(msg)
    if is_temporary_class(status) and end_date is None:
        msg = "End date required for temporary address"
        raise AssignmentValidationError(msg)
    if end_date is not None and end_date < start_date:
        msg = f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}"
        raise AssignmentValidationError(msg)
    return start_date, end_date


def validate_assignment_fields(
    status: str | None,
    start_date: date | None,
    end_date: date | None = None,
) -> AssignmentDraft:
    """Validate the fields of a new assignment.

    Raises:
        AssignmentValidationError: On any missing or malformed field, or when
            asked to create an assignment directly in a terminal status.
    """
    parsed = parse_status(status)
    if is_terminal(parsed):
        msg = f"Cannot create an assignment with terminal status '{parsed}'"
        raise AssignmentValidationError(msg)
    start, end = validate_dates(parsed, start_date, end_date)
    return AssignmentDraft(status=parsed, start_date=start, end_date=end)
