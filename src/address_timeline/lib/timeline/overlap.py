"""Date-range arithmetic for assignment timelines."""

from collections.abc import Iterable
from datetime import date, timedelta
from typing import Protocol, TypeVar

ONE_DAY = timedelta(days=1)


class DatedRow(Protocol):
    """Anything carrying an inclusive ``[start_date, end_date]`` range."""

    start_date: date
    end_date: date | None


RowT = TypeVar("RowT", bound=DatedRow)


def day_before(value: date) -> date:
    """Return the calendar day preceding ``value``."""
    return value - ONE_DAY


def day_after(value: date) -> date:
    """Return the calendar day following ``value``."""
    return value + ONE_DAY


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive overlap test: ``[s1, e1]`` and ``[s2, e2]`` share at least one day.

    Ranges touching on a single day (``e1 == s2``) overlap.
    """
    return start_a <= end_b and start_b <= end_a


def first_overlapping(rows: Iterable[RowT], start: date, end: date) -> RowT | None:
    """Return the earliest-starting bounded row overlapping ``[start, end]``.

    Rows without an end date are ignored; temporary ranges are always bounded.
    """
    hits = [
        row for row in rows if row.end_date is not None and ranges_overlap(row.start_date, row.end_date, start, end)
    ]
    if not hits:
        return None
    return min(hits, key=lambda row: row.start_date)
