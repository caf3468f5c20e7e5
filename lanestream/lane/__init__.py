"""Lane post-processing module."""

from lanestream.lane.result import LaneResult, LaneCandidate, Point
from lanestream.lane.pipeline import LaneDetectionPipeline

__all__ = ["LaneResult", "LaneCandidate", "Point", "LaneDetectionPipeline"]
