"""
Lane quality scoring and selection.

Scores raw lane candidates by point count and straightness and keeps the
best few above a confidence threshold.
"""

from typing import List, Sequence

import numpy as np

from lanestream.lane.result import LaneCandidate, Point


def score_lane(
    points: Sequence[Point],
    variance_threshold: float,
    min_points: int = 5,
    full_point_count: int = 15,
) -> float:
    """
    Compute a quality score for one lane candidate.

    Based on:
    - Number of points (saturates at full_point_count)
    - Straightness (population variance of x)

    Returns:
        Score in [0.0, 1.0], 0.0 for lanes with too few points
    """
    if len(points) < min_points:
        return 0.0

    point_score = min(1.0, len(points) / full_point_count)

    x_variance = float(np.var([p.x for p in points]))
    straightness_score = 1.0 - min(1.0, x_variance / variance_threshold)

    return 0.4 * point_score + 0.6 * straightness_score


class LaneSelector:
    """
    Keeps the top scoring lanes for a frame.

    The output always has num_lanes entries. Selected lanes fill the first
    slots in rank order; everything else is an empty candidate.
    """

    def __init__(
        self,
        num_lanes: int,
        expected_lanes_count: int = 2,
        confidence_threshold: float = 0.7,
        variance_base: float = 5000.0,
        resolution_ratio: float = 1.0,
        min_points: int = 5,
    ):
        """
        Initialize lane selector.

        Args:
            num_lanes: Number of lane slots to output
            expected_lanes_count: Maximum lanes to keep per frame
            confidence_threshold: Minimum score to keep a lane
            variance_base: X variance threshold at native resolution
            resolution_ratio: Target width / native width
            min_points: Minimum points for a non-zero score
        """
        self._num_lanes = num_lanes
        self._expected_lanes_count = expected_lanes_count
        self._confidence_threshold = confidence_threshold
        self._variance_threshold = variance_base * resolution_ratio ** 2
        self._min_points = min_points

    @property
    def variance_threshold(self) -> float:
        return self._variance_threshold

    def score(self, candidate: LaneCandidate) -> float:
        """Score a candidate and store the score on it."""
        candidate.score = score_lane(
            candidate.points,
            self._variance_threshold,
            min_points=self._min_points,
        )
        return candidate.score

    def select(self, candidates: Sequence[LaneCandidate]) -> List[LaneCandidate]:
        """
        Score candidates and keep the best ones.

        Args:
            candidates: Raw candidates in model channel order

        Returns:
            num_lanes candidates; the top ones by score first, rest empty
        """
        for candidate in candidates:
            self.score(candidate)

        # sorted() is stable, so equal scores keep channel order
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)

        selected = [
            c for c in ranked if c.score >= self._confidence_threshold
        ][:self._expected_lanes_count]

        result = list(selected)
        while len(result) < self._num_lanes:
            result.append(LaneCandidate())

        return result
