"""
Lane detector: frame in, validated lanes out.

Wraps preprocessing, the inference engine and the post-processing pipeline
behind a single per-frame call. Inference failures never reach the caller;
they produce an empty result for that frame.
"""

import time
import logging
from typing import Optional

from lanestream.config import Config
from lanestream.capture.frame import Frame
from lanestream.inference.engine import InferenceEngine
from lanestream.inference.errors import InferenceError
from lanestream.inference.preprocessing import preprocess_frame
from lanestream.lane.pipeline import LaneDetectionPipeline
from lanestream.lane.result import LaneResult

logger = logging.getLogger(__name__)


class LaneDetector:
    """
    Per-frame lane detection with start/stop control.

    Usage:
        detector = LaneDetector(config, OnnxLaneModel(config.model.model_path))
        detector.start()
        result = detector.detect(frame)
        for lane in result.lanes:
            ...
        detector.stop()  # clears temporal history
    """

    def __init__(
        self,
        config: Config,
        engine: Optional[InferenceEngine],
        bgr_input: Optional[bool] = None,
    ):
        """
        Initialize lane detector.

        Args:
            config: System configuration
            engine: Inference engine, None if not loaded yet
            bgr_input: Frames are BGR (defaults to config.capture.bgr_input)
        """
        self._config = config
        self._engine = engine
        self._bgr_input = config.capture.bgr_input if bgr_input is None else bgr_input
        self._pipeline = LaneDetectionPipeline(config.model, config.lane_detection)

        self._running = False
        self._dropped_frames = 0
        self._last_inference_ms = 0.0

    def start(self) -> None:
        """Start detection."""
        self._running = True
        logger.info("Lane detection started")

    def stop(self) -> None:
        """Stop detection and clear all temporal history."""
        self._running = False
        self._pipeline.reset()
        logger.info("Lane detection stopped")

    def toggle(self) -> bool:
        """
        Toggle detection on or off.

        Returns:
            New running state
        """
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    def detect(self, frame: Frame) -> LaneResult:
        """
        Detect lanes in a frame.

        Args:
            frame: Input frame

        Returns:
            LaneResult; all-empty if detection is stopped or the frame
            could not be processed
        """
        expected = self._config.lane_detection.expected_lanes_count

        if not self._running:
            return LaneResult.create_invalid(expected, frame.timestamp)

        start_time = time.monotonic()

        try:
            output = self._infer(frame)
        except InferenceError as e:
            self._dropped_frames += 1
            logger.warning(f"Frame {frame.sequence} dropped: {e}")
            latency_ms = (time.monotonic() - start_time) * 1000
            return LaneResult.create_invalid(
                expected, frame.timestamp, latency_ms, dropped=True
            )

        self._last_inference_ms = (time.monotonic() - start_time) * 1000

        result = self._pipeline.process(output, frame.timestamp)
        if result.dropped:
            self._dropped_frames += 1
        return result

    def process_output(self, output, timestamp: Optional[float] = None) -> LaneResult:
        """
        Run post-processing on an already computed model output.

        Bypasses preprocessing and inference; honours the running state.
        """
        if not self._running:
            return LaneResult.create_invalid(
                self._config.lane_detection.expected_lanes_count,
                time.monotonic() if timestamp is None else timestamp,
            )

        result = self._pipeline.process(output, timestamp)
        if result.dropped:
            self._dropped_frames += 1
        return result

    def _infer(self, frame: Frame):
        """Preprocess a frame and run the model on it."""
        if self._engine is None or not self._engine.is_ready:
            raise InferenceError("Inference engine not ready")

        if not frame.validate():
            raise InferenceError(f"Invalid frame: {frame!r}")

        model = self._config.model
        input_tensor = preprocess_frame(
            frame.data,
            native_size=model.native_size,
            apply_roi=model.apply_roi_mask,
            bgr=self._bgr_input,
        )
        return self._engine.run(input_tensor)

    def close(self) -> None:
        """Stop detection and release the engine."""
        self.stop()
        if self._engine is not None:
            self._engine.close()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def dropped_frames(self) -> int:
        """Frames that produced no result because of an error."""
        return self._dropped_frames

    @property
    def last_inference_ms(self) -> float:
        """Preprocessing + inference time of the last successful frame."""
        return self._last_inference_ms

    @property
    def pipeline(self) -> LaneDetectionPipeline:
        return self._pipeline
