"""
Temporal smoothing for lane detection.

Keeps a bounded history of recent point sets per lane slot and averages
points on the same row across that history to damp frame-to-frame jitter.

Slot identity is kept stable across frames by matching each new lane to
the slot whose last detection is nearest in x, so a lane keeps averaging
against its own history even when the selector ranks it differently.
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Sequence

import numpy as np

from lanestream.lane.result import LaneCandidate, Point, mean_x

logger = logging.getLogger(__name__)

SLOT_ASSIGNMENT_POLICIES = ("proximity", "rank")


class TemporalTracker:
    """
    Per-slot rolling history with row-wise averaging.

    One instance lives for the whole video stream. The histories are the
    only state carried across frames and are not safe to mutate from more
    than one frame at a time.
    """

    def __init__(
        self,
        num_lanes: int,
        max_history_frames: int = 5,
        y_tolerance: float = 2.0,
        slot_assignment: str = "proximity",
        max_match_distance: Optional[float] = None,
    ):
        """
        Initialize temporal tracker.

        Args:
            num_lanes: Number of lane slots
            max_history_frames: Frames kept per slot (oldest evicted first)
            y_tolerance: Rows closer than this are averaged together
            slot_assignment: "proximity" (match to nearest previous lane) or
                "rank" (slot = selection rank)
            max_match_distance: Max mean-x distance in pixels for a
                proximity match; None disables the limit
        """
        if max_history_frames < 1:
            raise ValueError("max_history_frames must be at least 1")
        if slot_assignment not in SLOT_ASSIGNMENT_POLICIES:
            raise ValueError(f"Unknown slot assignment policy: {slot_assignment}")

        self._num_lanes = num_lanes
        self._max_history_frames = max_history_frames
        self._y_tolerance = y_tolerance
        self._slot_assignment = slot_assignment
        self._max_match_distance = max_match_distance

        self._history: List[Deque[List[Point]]] = [
            deque(maxlen=max_history_frames) for _ in range(num_lanes)
        ]

    def advance(self, selected: Sequence[LaneCandidate]) -> List[List[Point]]:
        """
        Add one frame of selected lanes and return the smoothed lanes.

        Args:
            selected: num_lanes candidates from the selector (possibly empty)

        Returns:
            One averaged point list per slot, sorted by ascending y
        """
        if self._slot_assignment == "proximity":
            assigned = self._assign_by_proximity(selected)
        else:
            assigned = [c.points for c in selected]

        for slot in range(self._num_lanes):
            points = assigned[slot] if slot < len(assigned) else []
            self._history[slot].append(list(points))

        return [self._smooth_slot(slot) for slot in range(self._num_lanes)]

    def _assign_by_proximity(
        self,
        selected: Sequence[LaneCandidate],
    ) -> List[List[Point]]:
        """
        Map selected lanes to slots by nearest previous mean x.

        Lanes with no match within range take a slot without recent
        detections first, then the lowest free slot.
        """
        assigned: List[List[Point]] = [[] for _ in range(self._num_lanes)]
        lanes = [c for c in selected if not c.is_empty]
        if not lanes:
            return assigned

        anchors = [self.slot_anchor(slot) for slot in range(self._num_lanes)]

        pairs = []
        for lane_idx, lane in enumerate(lanes):
            lane_x = lane.mean_x
            for slot, anchor in enumerate(anchors):
                if anchor is None:
                    continue
                distance = abs(lane_x - anchor)
                if self._max_match_distance is None or distance <= self._max_match_distance:
                    pairs.append((distance, lane_idx, slot))

        used_lanes = set()
        used_slots = set()
        for _, lane_idx, slot in sorted(pairs):
            if lane_idx in used_lanes or slot in used_slots:
                continue
            assigned[slot] = lanes[lane_idx].points
            used_lanes.add(lane_idx)
            used_slots.add(slot)

        for lane_idx, lane in enumerate(lanes):
            if lane_idx in used_lanes:
                continue
            free = [s for s in range(self._num_lanes) if s not in used_slots]
            if not free:
                logger.warning("No free lane slot for lane %d", lane_idx)
                break
            fresh = [s for s in free if anchors[s] is None]
            slot = fresh[0] if fresh else free[0]
            assigned[slot] = lane.points
            used_slots.add(slot)

        return assigned

    def _smooth_slot(self, slot: int) -> List[Point]:
        """Average x per distinct row across the slot's history."""
        frames = [frame for frame in self._history[slot] if frame]
        if not frames:
            return []

        xs = np.array([p.x for frame in frames for p in frame])
        ys = np.array([p.y for frame in frames for p in frame])

        rows = np.unique(ys)
        # rows x history-points membership within tolerance
        near = np.abs(ys[np.newaxis, :] - rows[:, np.newaxis]) < self._y_tolerance
        sums = near @ xs
        counts = near.sum(axis=1)

        return [
            Point(float(sums[i] / counts[i]), float(rows[i]))
            for i in range(len(rows))
            if counts[i] > 0
        ]

    def slot_anchor(self, slot: int) -> Optional[float]:
        """Mean x of the slot's most recent non-empty frame, if any."""
        for frame in reversed(self._history[slot]):
            if frame:
                return mean_x(frame)
        return None

    def history_length(self, slot: int) -> int:
        """Number of frames currently held for a slot."""
        return len(self._history[slot])

    def reset(self) -> None:
        """Clear all slot histories."""
        for history in self._history:
            history.clear()
        logger.debug("Temporal tracker reset")

    @property
    def num_lanes(self) -> int:
        return self._num_lanes

    @property
    def max_history_frames(self) -> int:
        return self._max_history_frames

    @property
    def is_empty(self) -> bool:
        """True if no slot holds any detection."""
        return all(not frame for history in self._history for frame in history)
