"""Tests for conflict detection and placement suggestions."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from planico.core.time_grid import TimeGridMapper
from planico.models.schedule import TimeRange
from planico.services.conflict_service import (
    check_conflicts,
    generate_suggestions,
    overlaps,
    review_placement,
)
from planico.utils.exceptions import InvalidIntervalError

DAY = datetime(2024, 1, 10)


def at(hour: int, minute: int = 0, day: datetime = DAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


def candidate(start: datetime, end: datetime) -> TimeRange:
    return TimeRange(startTime=start, endTime=end)


class TestCheckConflicts:
    """Tests for check_conflicts."""

    def test_overlapping_block_is_reported(self, grid, block_factory):
        meeting = block_factory("1", at(9, 30), at(10, 30), title="Meeting")

        result = check_conflicts(candidate(at(9), at(10)), [meeting], grid=grid)

        assert result.hasConflict is True
        assert result.conflictingBlocks == [meeting]
        assert result.suggestions == []

    def test_touching_blocks_do_not_conflict(self, grid, block_factory):
        before = block_factory("1", at(8), at(9))
        after = block_factory("2", at(10), at(11))

        result = check_conflicts(candidate(at(9), at(10)), [before, after], grid=grid)

        assert result.hasConflict is False
        assert result.conflictingBlocks == []

    def test_excluded_block_is_ignored(self, grid, block_factory):
        editing = block_factory("1", at(9), at(10))

        result = check_conflicts(candidate(at(9), at(11)), [editing], exclude_id="1", grid=grid)

        assert result.hasConflict is False

    def test_conflicts_keep_input_order(self, grid, block_factory):
        late = block_factory("late", at(11), at(12))
        early = block_factory("early", at(9), at(10))

        result = check_conflicts(candidate(at(8), at(13)), [late, early], grid=grid)

        assert [b.id for b in result.conflictingBlocks] == ["late", "early"]

    def test_blocks_on_other_days_are_never_compared(self, grid, block_factory):
        # starts the previous evening and runs past midnight into the candidate
        overnight = block_factory("1", at(23, day=DAY - timedelta(days=1)), at(1))

        result = check_conflicts(candidate(at(0), at(2)), [overnight], grid=grid)

        assert result.hasConflict is False

    def test_same_day_is_judged_in_the_display_timezone(self, block_factory):
        tz = ZoneInfo("America/Mexico_City")
        mexico_grid = TimeGridMapper(tz=tz)
        # 02:00-03:00 UTC on Jan 11 is 20:00-21:00 on Jan 10 in Mexico City
        existing = block_factory(
            "1",
            datetime(2024, 1, 11, 2, 0, tzinfo=UTC),
            datetime(2024, 1, 11, 3, 0, tzinfo=UTC),
        )
        evening = candidate(
            datetime(2024, 1, 10, 20, 30, tzinfo=tz),
            datetime(2024, 1, 10, 21, 30, tzinfo=tz),
        )

        result = check_conflicts(evening, [existing], grid=mexico_grid)

        assert result.hasConflict is True

    @pytest.mark.parametrize("end_hour", [9, 8])
    def test_invalid_candidate_raises(self, grid, end_hour):
        with pytest.raises(InvalidIntervalError) as exc_info:
            check_conflicts(candidate(at(9), at(end_hour)), [], grid=grid)

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.code == "INVALID_INTERVAL"
        assert exc_info.value.status_code == 400

    def test_overlap_rule(self, block_factory):
        """Same-day pairs conflict exactly when each starts before the other ends."""
        times = [at(h, m) for h in range(8, 12) for m in (0, 30)]
        for a_start in times:
            for a_end in (t for t in times if t > a_start):
                for b_start in times:
                    for b_end in (t for t in times if t > b_start):
                        a = candidate(a_start, a_end)
                        b = block_factory("b", b_start, b_end)
                        expected = a_start < b_end and a_end > b_start
                        assert overlaps(a, b) is expected


class TestGenerateSuggestions:
    """Tests for generate_suggestions."""

    def test_block_starting_later_suggests_before_only(self, grid, block_factory):
        meeting = block_factory("1", at(9, 30), at(10, 30), title="Meeting")

        suggestions = generate_suggestions(candidate(at(9), at(10)), [meeting], grid=grid)

        assert suggestions == ["place before Meeting, ending by 09:30"]

    def test_block_ending_earlier_suggests_after_only(self, grid, block_factory):
        standup = block_factory("1", at(8, 30), at(9, 30), title="Standup")

        suggestions = generate_suggestions(candidate(at(9), at(10)), [standup], grid=grid)

        assert suggestions == ["place after Standup, starting at 09:30"]

    def test_contained_block_suggests_both(self, grid, block_factory):
        call = block_factory("1", at(10), at(10, 30), title="Call")

        suggestions = generate_suggestions(candidate(at(9), at(12)), [call], grid=grid)

        assert suggestions == [
            "place before Call, ending by 10:00",
            "place after Call, starting at 10:30",
        ]

    def test_identical_span_suggests_nothing(self, grid, block_factory):
        same = block_factory("1", at(9), at(10), title="Same")

        assert generate_suggestions(candidate(at(9), at(10)), [same], grid=grid) == []

    def test_duplicates_are_collapsed_in_first_occurrence_order(self, grid, block_factory):
        first = block_factory("1", at(10), at(11), title="Review")
        second = block_factory("2", at(10), at(10, 30), title="Review")

        suggestions = generate_suggestions(candidate(at(9), at(12)), [first, second], grid=grid)

        assert suggestions == [
            "place before Review, ending by 10:00",
            "place after Review, starting at 11:00",
            "place after Review, starting at 10:30",
        ]


class TestReviewPlacement:
    """Tests for review_placement."""

    def test_suggestions_attached_on_conflict(self, grid, block_factory):
        meeting = block_factory("1", at(9, 30), at(10, 30), title="Meeting")

        result = review_placement(candidate(at(9), at(10)), [meeting], grid=grid)

        assert result.hasConflict is True
        assert result.conflictingBlocks == [meeting]
        assert result.suggestions == ["place before Meeting, ending by 09:30"]

    def test_no_suggestions_without_conflict(self, grid, block_factory):
        lunch = block_factory("1", at(12), at(13), title="Lunch")

        result = review_placement(candidate(at(9), at(10)), [lunch], grid=grid)

        assert result.hasConflict is False
        assert result.suggestions == []


class TestMixedAwareness:
    """Naive instants are display-zone wall clock when compared with aware ones."""

    @pytest.fixture
    def mexico_grid(self):
        return TimeGridMapper(tz=ZoneInfo("America/Mexico_City"))

    def test_naive_candidate_against_aware_blocks(self, mexico_grid, block_factory):
        # 15:30-16:30 UTC is 09:30-10:30 in Mexico City
        meeting = block_factory(
            "1",
            datetime(2024, 1, 10, 15, 30, tzinfo=UTC),
            datetime(2024, 1, 10, 16, 30, tzinfo=UTC),
            title="Meeting",
        )

        result = review_placement(candidate(at(9), at(10)), [meeting], grid=mexico_grid)

        assert result.hasConflict is True
        assert result.suggestions == ["place before Meeting, ending by 09:30"]

    def test_aware_blocks_outside_the_naive_candidate(self, mexico_grid, block_factory):
        # 14:00-15:00 UTC is 08:00-09:00 in Mexico City, touching the candidate
        earlier = block_factory(
            "1",
            datetime(2024, 1, 10, 14, 0, tzinfo=UTC),
            datetime(2024, 1, 10, 15, 0, tzinfo=UTC),
        )

        result = check_conflicts(candidate(at(9), at(10)), [earlier], grid=mexico_grid)

        assert result.hasConflict is False

    def test_mixed_candidate_bounds(self, mexico_grid):
        mixed = candidate(at(9), datetime(2024, 1, 10, 15, 0, tzinfo=UTC))

        with pytest.raises(InvalidIntervalError):
            check_conflicts(mixed, [], grid=mexico_grid)
