"""
Curve refinement for smoothed lanes.

Densifies a lane with quadratic Bezier samples so it renders as a smooth
curve instead of a polyline through the row anchors.
"""

from typing import List, Sequence

from lanestream.lane.result import Point


def quadratic_bezier(p0: Point, control: Point, p1: Point, t: float) -> Point:
    """Evaluate the quadratic Bezier p0 -> control -> p1 at parameter t."""
    u = 1.0 - t
    x = u * u * p0.x + 2 * u * t * control.x + t * t * p1.x
    y = u * u * p0.y + 2 * u * t * control.y + t * t * p1.y
    return Point(x, y)


def refine_curve(points: Sequence[Point], samples: int = 3) -> List[Point]:
    """
    Insert Bezier samples between consecutive lane points.

    For each triple (p0, p1, p2) the centroid of the three points is used as
    control point for the segment p0 -> p1. The final segment has no
    following point and is left straight. First and last points are kept
    exactly.

    Args:
        points: Lane points
        samples: Intermediate points per segment

    Returns:
        Refined points sorted by y; inputs with 3 or fewer points are
        returned unchanged
    """
    if len(points) <= 3:
        return list(points)

    ordered = sorted(points, key=lambda p: p.y)
    refined: List[Point] = []

    for i in range(len(ordered) - 1):
        p0 = ordered[i]
        p1 = ordered[i + 1]
        refined.append(p0)

        if i < len(ordered) - 2:
            p2 = ordered[i + 2]
            control = Point(
                (p0.x + p1.x + p2.x) / 3,
                (p0.y + p1.y + p2.y) / 3,
            )
            for step in range(1, samples + 1):
                refined.append(quadratic_bezier(p0, control, p1, step / (samples + 1)))

    refined.append(ordered[-1])
    return refined
