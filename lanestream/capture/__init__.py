"""Frame sources and frame dropping for the lane stream."""

from lanestream.capture.frame import Frame, FrameSource
from lanestream.capture.gate import LatestFrameGate
from lanestream.capture.video_file import VideoFileSource, TensorFileSource

__all__ = [
    "Frame",
    "FrameSource",
    "LatestFrameGate",
    "VideoFileSource",
    "TensorFileSource",
]
