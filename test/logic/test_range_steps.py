import math

import pytest

from digview.util import nearest_ranges
from digview.util.defaults import RANGE_STEPS


def _is_nice(value):
    return any(
        math.isclose(value / 10.0**k, step) for k in range(-12, 12) for step in RANGE_STEPS
    )


class TestNearestRanges:
    @pytest.mark.parametrize(
        "number, expected",
        [
            (3, (2, 5)),
            (42, (20, 50)),
            (7.5, (5, 10)),
            (0.003, (0.002, 0.005)),
        ],
    )
    def test_bracketing(self, number, expected):
        step = nearest_ranges(number)
        assert step.prev == pytest.approx(expected[0])
        assert step.next == pytest.approx(expected[1])

    @pytest.mark.parametrize(
        "number, expected",
        [
            (2, (1, 5)),
            (2.01, (1, 5)),
            (10, (5, 20)),
            (999, (500, 2000)),
            (1e6, (5e5, 2e6)),
        ],
    )
    def test_snaps_to_nice_value(self, number, expected):
        """A span already on a nice value steps one notch either way."""
        step = nearest_ranges(number)
        assert step.prev == pytest.approx(expected[0])
        assert step.next == pytest.approx(expected[1])

    @pytest.mark.parametrize("number", [0.0007, 0.013, 0.7, 1.5, 3.3, 64, 777, 12345])
    def test_results_are_nice_and_bracket(self, number):
        step = nearest_ranges(number)
        assert _is_nice(step.prev)
        assert _is_nice(step.next)
        assert step.prev <= number * 1.01
        assert step.next >= number * 0.99

    @pytest.mark.parametrize("number", [0, -1, float("nan"), float("inf")])
    def test_rejects_non_positive(self, number):
        with pytest.raises(ValueError):
            nearest_ranges(number)
