"""
Geometric validator tests.

Frame is 400x144: width band [60, 200] px, reference row y = 108.

Run:
    pytest tests/test_geometric_filter.py -v
"""

import pytest

from lanestream.lane.geometric_filter import GeometricValidator
from lanestream.lane.result import Point, interpolate_x_at_y

from conftest import straight_lane


def make_validator(**kwargs) -> GeometricValidator:
    return GeometricValidator(frame_width=400, frame_height=144, **kwargs)


class TestInterpolation:
    """Test x interpolation at a reference row."""

    def test_between_points(self):
        points = [Point(100.0, 100.0), Point(120.0, 110.0)]

        assert interpolate_x_at_y(points, 105.0) == pytest.approx(110.0)

    def test_exact_point(self):
        points = [Point(100.0, 100.0), Point(120.0, 110.0)]

        assert interpolate_x_at_y(points, 110.0) == pytest.approx(120.0)

    def test_outside_range(self):
        """Rows the curve does not reach are not comparable."""
        points = [Point(100.0, 100.0), Point(120.0, 110.0)]

        assert interpolate_x_at_y(points, 50.0) is None
        assert interpolate_x_at_y(points, 120.0) is None
        assert interpolate_x_at_y([], 100.0) is None


class TestGeometricValidator:
    """Test lane pair selection."""

    def test_reference_geometry(self):
        validator = make_validator()

        assert validator.width_band == (pytest.approx(60.0), pytest.approx(200.0))
        assert validator.reference_y == pytest.approx(108.0)

    def test_left_lane_goes_to_slot_zero(self):
        """Output is ordered left to right regardless of input order."""
        left, right = straight_lane(100), straight_lane(180)

        lanes = make_validator().validate([right, left, [], []])

        assert len(lanes) == 2
        assert lanes[0] == left
        assert lanes[1] == right

    def test_picks_pair_inside_band(self):
        """A pair narrower than the band is skipped."""
        lanes = make_validator().validate(
            [straight_lane(50), straight_lane(100), straight_lane(300)]
        )

        assert lanes[0][0].x == 100.0
        assert lanes[1][0].x == 300.0

    def test_picks_pair_closest_to_band_middle(self):
        """Between two valid pairs the one nearest 130 px wins."""
        validator = make_validator()

        lanes = validator.validate(
            [straight_lane(100), straight_lane(180), straight_lane(300)]
        )

        assert lanes[0][0].x == 180.0
        assert lanes[1][0].x == 300.0
        assert validator.last_pair_width == pytest.approx(120.0)

    def test_fallback_prefers_longest_lanes(self):
        """Without a valid pair, the lanes with most points are kept."""
        short = straight_lane(40, y_start=100)
        long_a = straight_lane(10)
        long_b = straight_lane(30)
        validator = make_validator()

        lanes = validator.validate([short, long_b, long_a])

        assert validator.last_pair_width is None
        assert lanes[0] == long_a
        assert lanes[1] == long_b

    def test_pair_not_reaching_reference_row(self):
        """Lanes that end above the reference row cannot form a pair."""
        validator = make_validator()
        upper_left = straight_lane(100, y_start=20, y_end=80)
        upper_right = straight_lane(200, y_start=20, y_end=80)

        lanes = validator.validate([upper_left, upper_right])

        assert validator.last_pair_width is None
        assert lanes[0] == upper_left
        assert lanes[1] == upper_right

    def test_single_lane_on_right(self):
        """A lone lane right of centre goes to the right slot."""
        lane = straight_lane(300)

        lanes = make_validator().validate([[], lane, [], []])

        assert lanes[0] == []
        assert lanes[1] == lane

    def test_single_lane_on_left(self):
        lane = straight_lane(120)

        lanes = make_validator().validate([lane, [], [], []])

        assert lanes[0] == lane
        assert lanes[1] == []

    def test_short_curves_ignored(self):
        """Curves with fewer than min_points never appear in the output."""
        lanes = make_validator().validate([straight_lane(100)[:4], straight_lane(200)[:3]])

        assert lanes == [[], []]

    def test_always_expected_count(self):
        for curves in ([], [[]] * 4, [straight_lane(100)] * 4):
            assert len(make_validator().validate(curves)) == 2
