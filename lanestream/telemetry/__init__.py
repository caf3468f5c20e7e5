"""
Telemetry module for the lane stream.

Provides JSON Lines logging for per-frame lane metrics and system state.
"""

from .logger import TelemetryLogger, TelemetryRecord
from .metrics import FrameMetrics, SystemMetrics, FPSCounter, LatencyTracker

__all__ = [
    "TelemetryLogger",
    "TelemetryRecord",
    "FrameMetrics",
    "SystemMetrics",
    "FPSCounter",
    "LatencyTracker",
]
