"""
Complete lane post-processing pipeline.

Combines all lane stages into a single per-frame processing pipeline.
"""

import time
import logging
from typing import List, Optional

import numpy as np

from lanestream.config import ModelConfig, LaneDetectionConfig
from lanestream.inference.errors import MalformedTensorError
from lanestream.lane.result import LaneResult, Point
from lanestream.lane.decoder import GridDecoder
from lanestream.lane.scoring import LaneSelector
from lanestream.lane.temporal import TemporalTracker
from lanestream.lane.curve import refine_curve
from lanestream.lane.geometric_filter import GeometricValidator

logger = logging.getLogger(__name__)


class LaneDetectionPipeline:
    """
    Complete lane post-processing pipeline.

    Processing stages:
    1. Grid decoding (softmax + argmax per row anchor)
    2. Lane scoring and top-K selection
    3. Temporal smoothing over a bounded per-slot history
    4. Bezier curve refinement
    5. Geometric validation (lane width band)

    Only the temporal tracker keeps state between frames. Frames must be
    processed one at a time.
    """

    def __init__(self, model_config: ModelConfig, config: LaneDetectionConfig):
        """
        Initialize lane post-processing pipeline.

        Args:
            model_config: Lane model geometry
            config: Lane post-processing configuration
        """
        self._config = config

        self._decoder = GridDecoder(
            gridding_num=model_config.gridding_num,
            row_anchors=model_config.row_anchors,
            num_lanes=model_config.num_lanes,
            native_size=model_config.native_size,
            target_size=config.target_size,
            acceptance_threshold=config.acceptance_threshold,
        )

        self._selector = LaneSelector(
            num_lanes=model_config.num_lanes,
            expected_lanes_count=config.expected_lanes_count,
            confidence_threshold=config.lane_confidence_threshold,
            variance_base=config.variance_base,
            resolution_ratio=config.target_width / model_config.native_width,
            min_points=config.min_lane_points,
        )

        self._tracker = TemporalTracker(
            num_lanes=model_config.num_lanes,
            max_history_frames=config.max_history_frames,
            y_tolerance=config.y_tolerance,
            slot_assignment=config.slot_assignment,
            max_match_distance=config.max_match_distance_ratio * config.target_width,
        )

        self._validator = GeometricValidator(
            frame_width=config.target_width,
            frame_height=config.target_height,
            expected_lanes_count=config.expected_lanes_count,
            min_lane_width_ratio=config.min_lane_width_ratio,
            max_lane_width_ratio=config.max_lane_width_ratio,
            reference_row_ratio=config.reference_row_ratio,
            min_points=config.min_lane_points,
        )

        self._frames_processed = 0
        self._last_result: Optional[LaneResult] = None

    def process(self, output: np.ndarray, timestamp: Optional[float] = None) -> LaneResult:
        """
        Process one frame of model output through the complete pipeline.

        Args:
            output: Model output tensor [gridding_num + 1, row_anchors, lanes]
            timestamp: Frame timestamp (defaults to now)

        Returns:
            LaneResult with exactly expected_lanes_count lanes
        """
        start_time = time.monotonic()
        if timestamp is None:
            timestamp = start_time

        try:
            # Stage 1: Grid decoding
            candidates = self._decoder.decode(output)
        except MalformedTensorError as e:
            logger.warning(f"Skipping frame: {e}")
            latency_ms = (time.monotonic() - start_time) * 1000
            return LaneResult.create_invalid(
                self._config.expected_lanes_count, timestamp, latency_ms, dropped=True
            )

        # Stage 2: Scoring and selection
        selected = self._selector.select(candidates)

        # Stage 3: Temporal smoothing
        smoothed = self._tracker.advance(selected)

        # Stage 4: Curve refinement
        refined: List[List[Point]] = [refine_curve(lane) for lane in smoothed]

        # Stage 5: Geometric validation
        lanes = self._validator.validate(refined)

        latency_ms = (time.monotonic() - start_time) * 1000
        self._frames_processed += 1

        result = LaneResult.from_lanes(lanes, timestamp, latency_ms)
        self._last_result = result

        logger.debug(
            f"Frame {self._frames_processed}: "
            f"scores={[round(c.score, 2) for c in candidates]}, "
            f"lanes={result.lane_count}, latency={latency_ms:.2f}ms"
        )
        return result

    def reset(self) -> None:
        """Reset the pipeline state (clears temporal history)."""
        self._tracker.reset()
        self._last_result = None
        logger.debug("Lane pipeline reset")

    @property
    def tracker(self) -> TemporalTracker:
        return self._tracker

    @property
    def expected_shape(self) -> tuple:
        """Model output shape the pipeline accepts."""
        return self._decoder.expected_shape

    @property
    def expected_lanes_count(self) -> int:
        return self._config.expected_lanes_count

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    @property
    def is_stable(self) -> bool:
        """Check if the last processed frame had both lanes."""
        return self._last_result is not None and self._last_result.valid
