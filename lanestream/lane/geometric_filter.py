"""
Geometric validation of tracked lanes.

Picks the adjacent lane pair whose width at a reference row best matches
the expected lane width, and assigns it to the left/right output slots.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from lanestream.lane.result import Point, interpolate_x_at_y, mean_x

logger = logging.getLogger(__name__)


@dataclass
class PairSelection:
    """Adjacent lane pair chosen by the validator."""
    left: List[Point]
    right: List[Point]
    width: float


class GeometricValidator:
    """
    Validates lane curves against expected road geometry.

    Rejects lane pairs that are:
    - Not comparable at the reference row (either curve does not reach it)
    - Narrower than min_lane_width or wider than max_lane_width
    """

    def __init__(
        self,
        frame_width: int,
        frame_height: int,
        expected_lanes_count: int = 2,
        min_lane_width_ratio: float = 0.15,
        max_lane_width_ratio: float = 0.5,
        reference_row_ratio: float = 0.75,
        min_points: int = 5,
    ):
        """
        Initialize geometric validator.

        Args:
            frame_width: Target frame width in pixels
            frame_height: Target frame height in pixels
            expected_lanes_count: Number of output slots
            min_lane_width_ratio: Minimum lane width as fraction of frame width
            max_lane_width_ratio: Maximum lane width as fraction of frame width
            reference_row_ratio: Row used for width checks, as fraction of height
            min_points: Minimum points for a curve to take part
        """
        self._frame_width = frame_width
        self._expected_lanes_count = expected_lanes_count
        self._min_lane_width = min_lane_width_ratio * frame_width
        self._max_lane_width = max_lane_width_ratio * frame_width
        self._reference_y = reference_row_ratio * frame_height
        self._min_points = min_points

        self._last_pair: Optional[PairSelection] = None

    @property
    def width_band(self) -> Tuple[float, float]:
        """(min, max) accepted lane width in pixels."""
        return self._min_lane_width, self._max_lane_width

    @property
    def reference_y(self) -> float:
        return self._reference_y

    @property
    def last_pair_width(self) -> Optional[float]:
        """Width of the pair chosen on the last call, None if no pair."""
        return self._last_pair.width if self._last_pair else None

    def validate(self, curves: Sequence[List[Point]]) -> List[List[Point]]:
        """
        Select and order the output lanes.

        Args:
            curves: Smoothed lane curves, one per slot, possibly empty

        Returns:
            expected_lanes_count curves (slot 0 = left, slot 1 = right)
        """
        self._last_pair = None
        result: List[List[Point]] = [[] for _ in range(self._expected_lanes_count)]

        usable = [list(c) for c in curves if len(c) >= self._min_points]

        if len(usable) < 2:
            if usable:
                self._place_single(usable[0], result)
            return result

        # Left-to-right by mean x
        usable.sort(key=mean_x)

        pair = self._best_pair(usable)
        if pair is not None:
            self._last_pair = pair
            result[0] = pair.left
            if self._expected_lanes_count > 1:
                result[1] = pair.right
            return result

        logger.debug("No lane pair within width band, falling back")
        fallback = sorted(usable, key=len, reverse=True)[:self._expected_lanes_count]
        fallback.sort(key=mean_x)
        for slot, curve in enumerate(fallback):
            result[slot] = curve

        return result

    def _best_pair(self, ordered: List[List[Point]]) -> Optional[PairSelection]:
        """Adjacent pair with width closest to the middle of the band."""
        ideal_width = (self._min_lane_width + self._max_lane_width) / 2

        best: Optional[PairSelection] = None
        for left, right in zip(ordered, ordered[1:]):
            left_x = interpolate_x_at_y(left, self._reference_y)
            right_x = interpolate_x_at_y(right, self._reference_y)
            if left_x is None or right_x is None:
                continue

            width = right_x - left_x
            if not self._min_lane_width <= width <= self._max_lane_width:
                continue

            if best is None or abs(width - ideal_width) < abs(best.width - ideal_width):
                best = PairSelection(left=left, right=right, width=width)

        return best

    def _place_single(self, curve: List[Point], result: List[List[Point]]) -> None:
        """Put a lone lane on the side of the frame it lies on."""
        if len(result) < 2 or mean_x(curve) < self._frame_width / 2:
            result[0] = curve
        else:
            result[1] = curve
