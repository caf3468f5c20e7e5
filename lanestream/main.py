#!/usr/bin/env python3
"""
Lane Stream - command line entry point

Runs the lane post-processor over a recorded video (with an ONNX lane model)
or over recorded model outputs, and writes one JSON line of validated lanes
per processed frame.

Usage:
    # Video file through the ONNX model
    python -m lanestream.main --video drive.mp4 --model models/lane_tusimple.onnx

    # Same, paced at the video frame rate with stale frames dropped
    python -m lanestream.main --video drive.mp4 --realtime --output lanes.jsonl

    # Replay recorded model outputs (.npy, shape [101, 56, 4])
    python -m lanestream.main --tensors recordings/ --output lanes.jsonl
"""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, TextIO

from lanestream.config import Config, load_config
from lanestream.capture import LatestFrameGate, TensorFileSource, VideoFileSource
from lanestream.capture.frame import Frame
from lanestream.detector import LaneDetector
from lanestream.inference import OnnxLaneModel
from lanestream.lane.result import LaneResult
from lanestream.telemetry import FrameMetrics, FPSCounter, LatencyTracker, SystemMetrics, TelemetryLogger

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


class LaneStreamApp:
    """
    Single-threaded lane processing loop.

    Each frame is decoded, tracked and validated completely before the next
    one is taken. In realtime mode a capture thread feeds a LatestFrameGate
    so frames that arrive while the loop is busy are dropped.
    """

    def __init__(
        self,
        config: Config,
        video_path: Optional[str] = None,
        tensor_dir: Optional[str] = None,
        output_path: Optional[str] = None,
        realtime: bool = False,
    ):
        self._config = config
        self._video_path = video_path
        self._tensor_dir = tensor_dir
        self._output_path = output_path
        self._realtime = realtime

        self._running = False
        self._frame_count = 0
        self._lanes_valid_count = 0

        self._detector: Optional[LaneDetector] = None
        self._telemetry: Optional[TelemetryLogger] = None
        self._output: Optional[TextIO] = None

        self._gate: LatestFrameGate[Frame] = LatestFrameGate()
        self._capture_done = threading.Event()

        self._fps_counter = FPSCounter(window_size=30)
        self._latency = LatencyTracker(window_size=500)
        self._system_metrics = SystemMetrics()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def setup(self) -> bool:
        """
        Initialize detector, output and telemetry.

        Returns:
            True if everything needed for the run is available
        """
        engine = None
        if self._video_path is not None:
            try:
                engine = OnnxLaneModel(
                    self._config.model.model_path,
                    num_threads=self._config.model.num_threads,
                )
            except (ImportError, FileNotFoundError) as e:
                logger.critical(f"Lane model unavailable: {e}")
                return False

        self._detector = LaneDetector(self._config, engine)
        self._detector.start()

        if self._output_path:
            self._output = open(self._output_path, "w", encoding="utf-8")
            logger.info(f"Writing lane results to: {self._output_path}")

        if self._config.system.log_file:
            self._telemetry = TelemetryLogger(
                log_file=self._config.system.log_file,
                flush_interval=self._config.system.telemetry_flush_interval_s,
            )
            self._telemetry.start()

        return True

    def run(self) -> None:
        """Run the processing loop until the source is exhausted or stopped."""
        self._running = True
        logger.info("Starting lane processing loop...")

        try:
            if self._tensor_dir is not None:
                self._run_tensors()
            elif self._realtime:
                self._run_video_realtime()
            else:
                self._run_video()
        finally:
            self._log_summary()

    def _run_tensors(self) -> None:
        for sequence, tensor in TensorFileSource(self._tensor_dir):
            if not self._running:
                break
            result = self._detector.process_output(tensor, time.monotonic())
            self._handle_result(sequence, result, inference_ms=None)

    def _run_video(self) -> None:
        source = VideoFileSource(
            self._video_path,
            every_nth=self._config.capture.every_nth,
            loop=self._config.capture.loop,
        )
        if not source.initialize():
            return

        try:
            for frame in source:
                if not self._running:
                    break
                self._process_frame(frame)
        finally:
            source.release()

    def _run_video_realtime(self) -> None:
        source = VideoFileSource(
            self._video_path,
            every_nth=self._config.capture.every_nth,
            loop=self._config.capture.loop,
        )
        if not source.initialize():
            return

        capture_thread = threading.Thread(
            target=self._capture_loop,
            args=(source,),
            name="FrameCapture",
            daemon=True,
        )
        capture_thread.start()

        try:
            while self._running:
                frame = self._gate.take()
                if frame is None:
                    if self._capture_done.is_set():
                        break
                    time.sleep(0.001)
                    continue
                self._process_frame(frame)
        finally:
            self._running = False
            capture_thread.join(timeout=2.0)
            source.release()

    def _capture_loop(self, source: VideoFileSource) -> None:
        """Read frames at the video's own pace and offer them to the gate."""
        fps = source.video_fps or 30.0
        interval = self._config.capture.every_nth / fps
        try:
            while self._running:
                frame = source.capture()
                if frame is None:
                    break
                self._gate.offer(frame)
                time.sleep(interval)
        finally:
            self._capture_done.set()

    def _process_frame(self, frame: Frame) -> None:
        result = self._detector.detect(frame)
        inference_ms = None if result.dropped else self._detector.last_inference_ms
        self._handle_result(frame.sequence, result, inference_ms)

    def _handle_result(
        self,
        sequence: int,
        result: LaneResult,
        inference_ms: Optional[float],
    ) -> None:
        self._frame_count += 1
        if result.valid:
            self._lanes_valid_count += 1
        self._latency.record(result.latency_ms)
        fps = self._fps_counter.tick()

        if self._output is not None:
            record = {"frame_seq": sequence}
            record.update(result.to_dict())
            self._output.write(json.dumps(record, separators=(",", ":")) + "\n")

        if self._telemetry is not None:
            self._system_metrics.update_if_needed()
            lane_config = self._config.lane_detection
            metrics = FrameMetrics.from_result(
                sequence,
                result,
                reference_y=lane_config.reference_row_ratio * lane_config.target_height,
                inference_latency_ms=inference_ms,
                dropped_frames=self._detector.dropped_frames + self._gate.dropped_count,
            )
            self._telemetry.log_frame(metrics, fps, self._system_metrics)

    def _log_summary(self) -> None:
        dropped = self._detector.dropped_frames if self._detector else 0
        logger.info(
            f"Processed {self._frame_count} frames, "
            f"{self._lanes_valid_count} with both lanes, "
            f"{dropped} failed, {self._gate.dropped_count} skipped as stale"
        )
        logger.info(f"Post-processing latency: {self._latency.to_dict()}")

    def cleanup(self) -> None:
        """Clean up all resources."""
        self._running = False

        if self._detector is not None:
            self._detector.close()
            self._detector = None

        if self._telemetry is not None:
            self._telemetry.stop()
            self._telemetry = None

        if self._output is not None:
            self._output.close()
            self._output = None

        logger.info("Cleanup complete")

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self._running = False


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Lane Stream - temporally smoothed lane curves from a lane model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    source_group = parser.add_argument_group("Input Source")
    source_mutex = source_group.add_mutually_exclusive_group(required=True)
    source_mutex.add_argument(
        "--video",
        type=str,
        help="Video file to run through the lane model",
    )
    source_mutex.add_argument(
        "--tensors",
        type=str,
        help="Directory of recorded model outputs (.npy)",
    )
    source_group.add_argument(
        "--every-nth",
        type=int,
        default=None,
        help="Process only every N-th video frame",
    )
    source_group.add_argument(
        "--realtime",
        action="store_true",
        help="Pace the video at its frame rate and drop stale frames",
    )

    model_group = parser.add_argument_group("Model")
    model_group.add_argument(
        "--model",
        type=str,
        default=None,
        help="Path to the ONNX lane model",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml",
    )
    config_group.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )
    config_group.add_argument(
        "--telemetry-file",
        type=str,
        default=None,
        help="Write per-frame telemetry JSONL to this file",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write lane results JSONL to this file",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    # Apply CLI overrides
    if args.model:
        config.model.model_path = args.model
    if args.telemetry_file:
        config.system.log_file = args.telemetry_file
    if args.every_nth:
        config.capture.every_nth = args.every_nth

    log_level = args.log_level or config.system.log_level
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if args.video and not Path(args.video).exists():
        logger.error(f"Video file not found: {args.video}")
        return 1

    app = LaneStreamApp(
        config=config,
        video_path=args.video,
        tensor_dir=args.tensors,
        output_path=args.output,
        realtime=args.realtime,
    )

    try:
        if not app.setup():
            logger.critical("Setup failed - aborting")
            return 1

        app.run()
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    finally:
        app.cleanup()


if __name__ == "__main__":
    sys.exit(main())
