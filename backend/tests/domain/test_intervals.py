from datetime import datetime, timedelta, timezone

import pytest

from clinicops.core.exceptions import InvalidRangeException
from clinicops.domain.intervals import intervals_overlap, validate_range

T0 = datetime(2030, 1, 7, 10, 0, tzinfo=timezone.utc)


def _at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class TestIntervalsOverlap:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ((0, 60), (30, 90), True),
            ((0, 60), (60, 120), False),
            ((60, 120), (0, 60), False),
            ((0, 120), (30, 60), True),
            ((0, 30), (45, 90), False),
        ],
    )
    def test_overlap_is_symmetric(self, a, b, expected):
        a_start, a_end = _at(a[0]), _at(a[1])
        b_start, b_end = _at(b[0]), _at(b[1])
        assert intervals_overlap(a_start, a_end, b_start, b_end) is expected
        assert intervals_overlap(b_start, b_end, a_start, a_end) is expected

    def test_interval_overlaps_itself(self):
        assert intervals_overlap(_at(0), _at(15), _at(0), _at(15))

    def test_touching_intervals_do_not_overlap(self):
        """Half-open intervals: back-to-back slots are both allowed."""
        assert not intervals_overlap(_at(0), _at(60), _at(60), _at(61))


class TestValidateRange:
    def test_accepts_positive_duration(self):
        validate_range(_at(0), _at(1))

    @pytest.mark.parametrize("end_offset", [0, -30])
    def test_rejects_empty_or_inverted_range(self, end_offset):
        with pytest.raises(InvalidRangeException) as exc_info:
            validate_range(_at(0), _at(end_offset))
        assert exc_info.value.code == "INVALID_RANGE"
