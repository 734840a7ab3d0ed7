"""Exception hierarchy for timeline operations.

Validation and conflict errors describe caller mistakes and subclass
``ValueError``.  Integrity errors signal that the stored timeline no longer
satisfies its invariants and must never be patched over by guessing.
"""

import uuid


class TimelineError(Exception):
    """Base class for every timeline engine error."""


class AssignmentValidationError(TimelineError, ValueError):
    """Raised when a required assignment field is missing or malformed."""


class AssignmentConflictError(TimelineError, ValueError):
    """Raised when a proposed date range collides with an existing assignment.

    Attributes:
        conflicting_id: ID of the first existing assignment in the way, if any.
    """

    def __init__(self, message: str, conflicting_id: uuid.UUID | None = None) -> None:
        super().__init__(message)
        self.conflicting_id = conflicting_id


class AssignmentNotFoundError(TimelineError, LookupError):
    """Raised when a referenced assignment, user, or address does not exist."""


class TimelineIntegrityError(TimelineError):
    """Raised when a predecessor is missing or duplicated, or a lookup is ambiguous."""
