"""Timeline library: pure rules shared by the writer and the resolver.

Public API:
    - AssignmentStatus / Channel: Closed status and channel enums
    - PERMANENT_STATUSES / TEMPORARY_STATUSES / TERMINAL_STATUSES: Status groups
    - is_permanent_class / is_temporary_class / is_terminal: Membership predicates
    - valid_statuses_for / temporary_statuses_for: Channel-appropriate status sets
    - AssignmentDraft / validate_assignment_fields / validate_dates: Pure validation
    - ranges_overlap / first_overlapping / day_before / day_after: Date arithmetic
    - normalize_smart_id: Carrier-facing identifier normalization
    - TimelineError and subclasses: Error taxonomy
"""

from address_timeline.lib.timeline.errors import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    TimelineError,
    TimelineIntegrityError,
)
from address_timeline.lib.timeline.overlap import day_after, day_before, first_overlapping, ranges_overlap
from address_timeline.lib.timeline.smart_id import normalize_smart_id
from address_timeline.lib.timeline.taxonomy import (
    PERMANENT_STATUSES,
    TEMPORARY_STATUSES,
    TERMINAL_STATUSES,
    AssignmentStatus,
    Channel,
    is_permanent_class,
    is_temporary_class,
    is_terminal,
    temporary_statuses_for,
    valid_statuses_for,
)
from address_timeline.lib.timeline.validation import (
    AssignmentDraft,
    parse_status,
    validate_assignment_fields,
    validate_dates,
)

__all__ = [
    "PERMANENT_STATUSES",
    "TEMPORARY_STATUSES",
    "TERMINAL_STATUSES",
    "AssignmentConflictError",
    "AssignmentDraft",
    "AssignmentNotFoundError",
    "AssignmentStatus",
    "AssignmentValidationError",
    "Channel",
    "TimelineError",
    "TimelineIntegrityError",
    "day_after",
    "day_before",
    "first_overlapping",
    "is_permanent_class",
    "is_temporary_class",
    "is_terminal",
    "normalize_smart_id",
    "parse_status",
    "ranges_overlap",
    "temporary_statuses_for",
    "valid_statuses_for",
    "validate_assignment_fields",
    "validate_dates",
]
