"""
Performance metrics data structures.

Defines metrics collected for each frame and system-level telemetry.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional

import numpy as np
import psutil

from lanestream.lane.result import LaneResult


@dataclass
class FrameMetrics:
    """
    Metrics collected for a single frame processing cycle.

    All latency values are in milliseconds.
    """
    frame_seq: int = 0
    timestamp: float = 0.0

    # Inference metrics (None when inference was bypassed)
    inference_latency_ms: Optional[float] = None

    # Post-processing metrics
    lane_latency_ms: float = 0.0
    lanes_found: int = 0
    lane_valid: bool = False
    lane_partial: bool = False
    lane_width_px: Optional[float] = None

    # Frame drop tracking
    frame_dropped: bool = False
    dropped_frames: int = 0

    @classmethod
    def from_result(
        cls,
        frame_seq: int,
        result: LaneResult,
        reference_y: Optional[float] = None,
        inference_latency_ms: Optional[float] = None,
        dropped_frames: int = 0,
    ) -> "FrameMetrics":
        """Build frame metrics from a lane result."""
        width = None
        if reference_y is not None:
            width = result.get_lane_width(reference_y)

        return cls(
            frame_seq=frame_seq,
            timestamp=result.timestamp,
            inference_latency_ms=inference_latency_ms,
            lane_latency_ms=result.latency_ms,
            lanes_found=result.lane_count,
            lane_valid=result.valid,
            lane_partial=result.partial,
            lane_width_px=width,
            frame_dropped=result.dropped,
            dropped_frames=dropped_frames,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "frame_seq": self.frame_seq,
            "timestamp": self.timestamp,
            "lane_latency_ms": round(self.lane_latency_ms, 2),
            "lanes_found": self.lanes_found,
            "lane_valid": self.lane_valid,
            "lane_partial": self.lane_partial,
            "frame_dropped": self.frame_dropped,
            "dropped_frames": self.dropped_frames,
        }

        # Optional fields only if present
        if self.inference_latency_ms is not None:
            result["inference_latency_ms"] = round(self.inference_latency_ms, 2)
        if self.lane_width_px is not None:
            result["lane_width_px"] = round(self.lane_width_px, 1)

        return result


@dataclass
class SystemMetrics:
    """
    System-level metrics (CPU, memory).

    Updated periodically, not per-frame.
    """
    cpu_usage_percent: Optional[float] = None
    memory_used_mb: Optional[float] = None

    _last_update: float = field(default=0.0, repr=False)
    _update_interval: float = field(default=5.0, repr=False)

    def update_if_needed(self) -> None:
        """Update system metrics if enough time has passed."""
        current_time = time.monotonic()
        if self._last_update and current_time - self._last_update < self._update_interval:
            return

        self._last_update = current_time
        self.cpu_usage_percent = psutil.cpu_percent(interval=None)
        self.memory_used_mb = psutil.Process().memory_info().rss / (1024 * 1024)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "cpu_usage_percent": (
                round(self.cpu_usage_percent, 1) if self.cpu_usage_percent is not None else None
            ),
            "memory_used_mb": (
                round(self.memory_used_mb, 1) if self.memory_used_mb is not None else None
            ),
        }


class FPSCounter:
    """
    Calculates frames per second with rolling window.
    """

    def __init__(self, window_size: int = 30):
        self._timestamps: Deque[float] = deque(maxlen=window_size)

    def tick(self, timestamp: Optional[float] = None) -> float:
        """
        Record a frame and return current FPS.

        Args:
            timestamp: Frame time, defaults to now
        """
        self._timestamps.append(time.monotonic() if timestamp is None else timestamp)
        return self.fps

    @property
    def fps(self) -> float:
        """Calculate current FPS."""
        if len(self._timestamps) < 2:
            return 0.0

        elapsed = self._timestamps[-1] - self._timestamps[0]
        if elapsed <= 0:
            return 0.0

        return (len(self._timestamps) - 1) / elapsed

    def reset(self) -> None:
        self._timestamps.clear()


class LatencyTracker:
    """
    Tracks latency statistics for a single operation.
    """

    def __init__(self, window_size: int = 100):
        self._samples: Deque[float] = deque(maxlen=window_size)

    def record(self, latency_ms: float) -> None:
        """Record a latency sample."""
        self._samples.append(latency_ms)

    @property
    def count(self) -> int:
        return len(self._samples)

    @property
    def mean(self) -> float:
        return float(np.mean(self._samples)) if self._samples else 0.0

    @property
    def max(self) -> float:
        return float(np.max(self._samples)) if self._samples else 0.0

    @property
    def p95(self) -> float:
        """Get 95th percentile latency."""
        if not self._samples:
            return 0.0
        return float(np.percentile(self._samples, 95))

    def reset(self) -> None:
        self._samples.clear()

    def to_dict(self) -> Dict[str, float]:
        """Get statistics as dictionary."""
        return {
            "mean_ms": round(self.mean, 2),
            "max_ms": round(self.max, 2),
            "p95_ms": round(self.p95, 2),
        }
