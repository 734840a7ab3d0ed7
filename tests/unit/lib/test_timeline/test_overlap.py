"""Unit tests for date-range arithmetic."""

from dataclasses import dataclass
from datetime import date

from address_timeline.lib.timeline.overlap import day_after, day_before, first_overlapping, ranges_overlap


@dataclass
class _Row:
    name: str
    start_date: date
    end_date: date | None


class TestDayArithmetic:
    """Tests for day_before and day_after."""

    def test_day_before_crosses_month(self) -> None:
        assert day_before(date(2024, 3, 1)) == date(2024, 2, 29)

    def test_day_after_crosses_year(self) -> None:
        assert day_after(date(2024, 12, 31)) == date(2025, 1, 1)


class TestRangesOverlap:
    """Tests for the inclusive overlap predicate."""

    def test_disjoint_ranges(self) -> None:
        assert not ranges_overlap(date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 9))

    def test_touching_on_one_day_overlaps(self) -> None:
        """A range ending on the day another starts shares that day."""
        assert ranges_overlap(date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 5), date(2024, 1, 9))
        assert ranges_overlap(date(2024, 1, 5), date(2024, 1, 9), date(2024, 1, 1), date(2024, 1, 5))

    def test_containment(self) -> None:
        assert ranges_overlap(date(2024, 1, 1), date(2024, 1, 31), date(2024, 1, 10), date(2024, 1, 12))

    def test_single_day_ranges(self) -> None:
        day = date(2024, 6, 1)
        assert ranges_overlap(day, day, day, day)
        assert not ranges_overlap(day, day, day_after(day), day_after(day))


class TestFirstOverlapping:
    """Tests for picking the conflicting row."""

    def test_returns_none_without_hits(self) -> None:
        rows = [_Row("a", date(2024, 1, 1), date(2024, 1, 5))]
        assert first_overlapping(rows, date(2024, 2, 1), date(2024, 2, 5)) is None

    def test_returns_earliest_starting_hit(self) -> None:
        rows = [
            _Row("late", date(2024, 1, 20), date(2024, 1, 25)),
            _Row("early", date(2024, 1, 3), date(2024, 1, 8)),
            _Row("miss", date(2024, 3, 1), date(2024, 3, 2)),
        ]
        hit = first_overlapping(rows, date(2024, 1, 1), date(2024, 1, 31))
        assert hit is not None
        assert hit.name == "early"

    def test_ignores_open_ended_rows(self) -> None:
        rows = [_Row("open", date(2023, 1, 1), None)]
        assert first_overlapping(rows, date(2024, 1, 1), date(2024, 1, 31)) is None
