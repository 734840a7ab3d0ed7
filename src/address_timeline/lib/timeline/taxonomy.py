"""Assignment status taxonomy.

Every status group used anywhere in the project is derived here.  Statuses
classify along two axes: duration (permanent vs temporary) and channel
restriction (full, mail-only, package-only).  ``expired`` and ``deleted``
are terminal and excluded from every active-timeline query.
"""

from enum import StrEnum


class AssignmentStatus(StrEnum):
    """Lifecycle status of an address assignment."""

    PERMANENT = "permanent"
    MAIL_ONLY_PERMANENT = "mail_only_permanent"
    PACKAGE_ONLY_PERMANENT = "package_only_permanent"
    TEMPORARY = "temporary"
    MAIL_ONLY_TEMPORARY = "mail_only_temporary"
    PACKAGE_ONLY_TEMPORARY = "package_only_temporary"
    EXPIRED = "expired"
    DELETED = "deleted"


class Channel(StrEnum):
    """Delivery channel an assignment can apply to."""

    MAIL = "mail"
    PACKAGE = "package"


PERMANENT_STATUSES: frozenset[AssignmentStatus] = frozenset(
    {
        AssignmentStatus.PERMANENT,
        AssignmentStatus.MAIL_ONLY_PERMANENT,
        AssignmentStatus.PACKAGE_ONLY_PERMANENT,
    }
)

TEMPORARY_STATUSES: frozenset[AssignmentStatus] = frozenset(
    {
        AssignmentStatus.TEMPORARY,
        AssignmentStatus.MAIL_ONLY_TEMPORARY,
        AssignmentStatus.PACKAGE_ONLY_TEMPORARY,
    }
)

TERMINAL_STATUSES: frozenset[AssignmentStatus] = frozenset(
    {
        AssignmentStatus.EXPIRED,
        AssignmentStatus.DELETED,
    }
)

_CHANNEL_TEMPORARY: dict[Channel, frozenset[AssignmentStatus]] = {
    Channel.MAIL: frozenset({AssignmentStatus.TEMPORARY, AssignmentStatus.MAIL_ONLY_TEMPORARY}),
    Channel.PACKAGE: frozenset({AssignmentStatus.TEMPORARY, AssignmentStatus.PACKAGE_ONLY_TEMPORARY}),
}

_CHANNEL_VALID: dict[Channel, frozenset[AssignmentStatus]] = {
    Channel.MAIL: _CHANNEL_TEMPORARY[Channel.MAIL]
    | {AssignmentStatus.PERMANENT, AssignmentStatus.MAIL_ONLY_PERMANENT},
    Channel.PACKAGE: _CHANNEL_TEMPORARY[Channel.PACKAGE]
    | {AssignmentStatus.PERMANENT, AssignmentStatus.PACKAGE_ONLY_PERMANENT},
}


def is_temporary_class(status: str) -> bool:
    """Return True for statuses that require a bounded end date."""
    return status in TEMPORARY_STATUSES


def is_permanent_class(status: str) -> bool:
    """Return True for open-ended statuses that stay in effect until superseded."""
    return status in PERMANENT_STATUSES


def is_terminal(status: str) -> bool:
    """Return True for ``expired`` and ``deleted``."""
    return status in TERMINAL_STATUSES


def valid_statuses_for(channel: str) -> frozenset[AssignmentStatus]:
    """Statuses whose assignments may deliver on the given channel.

    Args:
        channel: ``mail`` or ``package``.

    Returns:
        The full and channel-only statuses of both durations.

    Raises:
        ValueError: If ``channel`` is not a known channel.
    """
    return _CHANNEL_VALID[Channel(channel)]


def temporary_statuses_for(channel: str) -> frozenset[AssignmentStatus]:
    """Temporary-class statuses that may deliver on the given channel.

    Args:
        channel: ``mail`` or ``package``.

    Returns:
        ``temporary`` plus the channel-only temporary status.

    Raises:
        ValueError: If ``channel`` is not a known channel.
    """
    return _CHANNEL_TEMPORARY[Channel(channel)]
