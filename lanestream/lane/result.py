"""
Lane detection result data structures.

Defines the point and lane types passed between pipeline stages and the
per-frame output handed to the renderer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Any

import numpy as np


class Point(NamedTuple):
    """A point in image pixel coordinates."""
    x: float
    y: float


@dataclass
class LaneCandidate:
    """
    One lane detected in the current frame.

    Attributes:
        points: Points ordered by row anchor (top to bottom)
        channel: Model lane channel the points were decoded from
        score: Quality score assigned by the selector (higher is better)
    """
    points: List[Point] = field(default_factory=list)
    channel: int = -1
    score: float = 0.0

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def mean_x(self) -> Optional[float]:
        """Mean x coordinate, or None for an empty candidate."""
        return mean_x(self.points)


def mean_x(points: Sequence[Point]) -> Optional[float]:
    """Mean x coordinate of a point sequence, None if it is empty."""
    if not points:
        return None
    return float(np.mean([p.x for p in points]))


def interpolate_x_at_y(points: Sequence[Point], target_y: float) -> Optional[float]:
    """
    Linearly interpolate a curve's x coordinate at a given row.

    Args:
        points: Curve points in any order
        target_y: Row to evaluate

    Returns:
        Interpolated x, or None if target_y lies outside the curve's y range
    """
    if not points:
        return None

    ordered = sorted(points, key=lambda p: p.y)
    if target_y < ordered[0].y or target_y > ordered[-1].y:
        return None

    below = ordered[0]
    above = ordered[-1]
    for current, following in zip(ordered, ordered[1:]):
        if current.y <= target_y <= following.y:
            below, above = current, following
            break

    if below.y == target_y:
        return below.x
    if above.y == target_y:
        return above.x

    ratio = (target_y - below.y) / (above.y - below.y)
    return below.x + ratio * (above.x - below.x)


@dataclass
class LaneResult:
    """
    Validated lanes for a single frame.

    Attributes:
        lanes: Exactly expected_lanes_count point lists (slot 0 = left,
            slot 1 = right), each possibly empty
        valid: True if both the left and right slots hold a lane
        partial: True if exactly one of them does
        timestamp: Monotonic timestamp of the frame
        latency_ms: Post-processing latency in milliseconds
        dropped: True if the frame was skipped (inference failure or
            malformed tensor)
    """
    lanes: List[List[Point]]
    valid: bool
    partial: bool
    timestamp: float
    latency_ms: float = 0.0
    dropped: bool = False

    @classmethod
    def from_lanes(
        cls,
        lanes: List[List[Point]],
        timestamp: float,
        latency_ms: float = 0.0,
    ) -> "LaneResult":
        """Build a result, deriving valid/partial from the first two slots."""
        found = [bool(lane) for lane in lanes[:2]]
        valid = len(found) == 2 and all(found)
        partial = sum(found) == 1
        return cls(
            lanes=lanes,
            valid=valid,
            partial=partial,
            timestamp=timestamp,
            latency_ms=latency_ms,
        )

    @staticmethod
    def create_invalid(
        expected_lanes_count: int,
        timestamp: float,
        latency_ms: float = 0.0,
        dropped: bool = False,
    ) -> "LaneResult":
        """Create an all-empty lane result."""
        return LaneResult(
            lanes=[[] for _ in range(expected_lanes_count)],
            valid=False,
            partial=False,
            timestamp=timestamp,
            latency_ms=latency_ms,
            dropped=dropped,
        )

    @property
    def left_lane(self) -> List[Point]:
        return self.lanes[0] if self.lanes else []

    @property
    def right_lane(self) -> List[Point]:
        return self.lanes[1] if len(self.lanes) > 1 else []

    @property
    def lane_count(self) -> int:
        """Number of non-empty output slots."""
        return sum(1 for lane in self.lanes if lane)

    @property
    def is_empty(self) -> bool:
        return self.lane_count == 0

    def get_lane_center(self, y: float) -> Optional[float]:
        """
        Calculate the lane center at a given row.

        Returns:
            X coordinate of lane center, or None if not calculable
        """
        if not self.valid:
            return None

        left_x = interpolate_x_at_y(self.left_lane, y)
        right_x = interpolate_x_at_y(self.right_lane, y)
        if left_x is None or right_x is None:
            return None

        return (left_x + right_x) / 2

    def get_lane_width(self, y: float) -> Optional[float]:
        """
        Calculate the lane width at a given row.

        Returns:
            Lane width in pixels, or None if not calculable
        """
        if not self.valid:
            return None

        left_x = interpolate_x_at_y(self.left_lane, y)
        right_x = interpolate_x_at_y(self.right_lane, y)
        if left_x is None or right_x is None:
            return None

        return abs(right_x - left_x)

    def scaled(self, scale_x: float, scale_y: float) -> "LaneResult":
        """
        Return a copy with every point linearly rescaled.

        Used at the renderer boundary to map pipeline resolution to display
        resolution.
        """
        return LaneResult(
            lanes=[
                [Point(p.x * scale_x, p.y * scale_y) for p in lane]
                for lane in self.lanes
            ],
            valid=self.valid,
            partial=self.partial,
            timestamp=self.timestamp,
            latency_ms=self.latency_ms,
            dropped=self.dropped,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "latency_ms": round(self.latency_ms, 2),
            "valid": self.valid,
            "partial": self.partial,
            "dropped": self.dropped,
            "lanes": [
                [[round(p.x, 2), round(p.y, 2)] for p in lane]
                for lane in self.lanes
            ],
        }
