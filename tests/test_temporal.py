"""
Temporal tracker tests.

Run:
    pytest tests/test_temporal.py -v
"""

import pytest

from lanestream.lane.result import LaneCandidate, Point
from lanestream.lane.temporal import TemporalTracker


def lane_at(x, channel=0, rows=range(64, 144, 4)):
    return LaneCandidate(points=[Point(float(x), float(y)) for y in rows], channel=channel)


def frame(*lanes, num_lanes=4):
    selected = list(lanes)
    while len(selected) < num_lanes:
        selected.append(LaneCandidate())
    return selected


class TestHistory:
    """Test bounded history handling."""

    def test_history_is_bounded(self):
        """Each slot keeps at most max_history_frames frames."""
        tracker = TemporalTracker(num_lanes=4, max_history_frames=5)

        for _ in range(12):
            tracker.advance(frame(lane_at(100)))

        for slot in range(4):
            assert tracker.history_length(slot) == 5

    def test_oldest_frame_evicted(self):
        """After H more frames the first frame no longer contributes."""
        tracker = TemporalTracker(num_lanes=4, max_history_frames=3, slot_assignment="rank")

        tracker.advance(frame(lane_at(0)))
        for _ in range(3):
            smoothed = tracker.advance(frame(lane_at(90)))

        assert all(p.x == pytest.approx(90.0) for p in smoothed[0])

    def test_converges_to_constant_input(self):
        """Identical frames produce exactly that lane."""
        tracker = TemporalTracker(num_lanes=4, max_history_frames=5)
        lane = lane_at(123.5)

        for _ in range(5):
            smoothed = tracker.advance(frame(lane))

        assert [p.y for p in smoothed[0]] == [p.y for p in lane.points]
        assert all(p.x == pytest.approx(123.5) for p in smoothed[0])

    def test_averages_recent_frames(self):
        """Rows are averaged across the history."""
        tracker = TemporalTracker(num_lanes=4, max_history_frames=5, slot_assignment="rank")

        tracker.advance(frame(lane_at(100)))
        smoothed = tracker.advance(frame(lane_at(110)))

        assert all(p.x == pytest.approx(105.0) for p in smoothed[0])

    def test_empty_slot(self):
        """A slot that never saw a lane returns no points."""
        tracker = TemporalTracker(num_lanes=4)

        smoothed = tracker.advance(frame(lane_at(100)))

        assert len(smoothed) == 4
        assert smoothed[3] == []

    def test_reset_clears_history(self):
        """After reset() only new frames contribute."""
        tracker = TemporalTracker(num_lanes=4, max_history_frames=5)
        for _ in range(4):
            tracker.advance(frame(lane_at(10)))

        tracker.reset()

        assert tracker.is_empty
        smoothed = tracker.advance(frame(lane_at(200)))
        assert all(p.x == pytest.approx(200.0) for p in smoothed[0])

    def test_invalid_history_length(self):
        with pytest.raises(ValueError):
            TemporalTracker(num_lanes=4, max_history_frames=0)

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            TemporalTracker(num_lanes=4, slot_assignment="random")


class TestRowTolerance:
    """Test row-wise averaging tolerance."""

    def test_rows_within_tolerance_are_merged(self):
        """Rows less than 2px apart share their x values."""
        tracker = TemporalTracker(num_lanes=1, y_tolerance=2.0)
        lane = LaneCandidate(points=[Point(100.0, 10.0), Point(110.0, 11.0)])

        smoothed = tracker.advance([lane])

        assert [p.y for p in smoothed[0]] == [10.0, 11.0]
        assert all(p.x == pytest.approx(105.0) for p in smoothed[0])

    def test_rows_at_tolerance_stay_separate(self):
        """Rows exactly 2px apart are not merged."""
        tracker = TemporalTracker(num_lanes=1, y_tolerance=2.0)
        lane = LaneCandidate(points=[Point(100.0, 10.0), Point(110.0, 12.0)])

        smoothed = tracker.advance([lane])

        assert [p.x for p in smoothed[0]] == [100.0, 110.0]

    def test_output_sorted_by_y(self):
        tracker = TemporalTracker(num_lanes=1)
        lane = LaneCandidate(points=[Point(1.0, 30.0), Point(2.0, 10.0), Point(3.0, 20.0)])

        smoothed = tracker.advance([lane])

        assert [p.y for p in smoothed[0]] == [10.0, 20.0, 30.0]


class TestSlotAssignment:
    """Test slot identity across frames."""

    def test_proximity_keeps_lane_identity(self):
        """A lane stays in its slot when the selector swaps rank order."""
        tracker = TemporalTracker(num_lanes=4, slot_assignment="proximity")

        tracker.advance(frame(lane_at(100, channel=0), lane_at(300, channel=1)))
        smoothed = tracker.advance(frame(lane_at(302, channel=1), lane_at(98, channel=0)))

        assert all(p.x == pytest.approx(99.0) for p in smoothed[0])
        assert all(p.x == pytest.approx(301.0) for p in smoothed[1])

    def test_rank_policy_follows_selection_order(self):
        """With rank assignment the slot is the selection rank."""
        tracker = TemporalTracker(num_lanes=4, slot_assignment="rank")

        tracker.advance(frame(lane_at(100), lane_at(300)))
        smoothed = tracker.advance(frame(lane_at(302), lane_at(98)))

        assert all(p.x == pytest.approx(201.0) for p in smoothed[0])

    def test_new_lane_takes_fresh_slot(self):
        """An unmatched lane avoids slots that still track another lane."""
        tracker = TemporalTracker(num_lanes=4, max_match_distance=40.0)

        tracker.advance(frame(lane_at(100)))
        tracker.advance(frame(lane_at(300)))

        assert tracker.slot_anchor(0) == pytest.approx(100.0)
        assert tracker.slot_anchor(1) == pytest.approx(300.0)

    def test_match_distance_limit(self):
        """Lanes further than max_match_distance are not matched."""
        tracker = TemporalTracker(num_lanes=2, max_match_distance=40.0)

        tracker.advance([lane_at(100), LaneCandidate()])
        smoothed = tracker.advance([lane_at(200), LaneCandidate()])

        assert all(p.x == pytest.approx(100.0) for p in smoothed[0])
        assert all(p.x == pytest.approx(200.0) for p in smoothed[1])
