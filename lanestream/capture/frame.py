"""
Frame data structure for the lane stream.

Defines the frame format handed to the lane detector.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class FrameSource(Enum):
    """Frame source type."""
    CAMERA = "camera"          # Live camera delivered by the host application
    VIDEO_FILE = "video"       # Video file playback
    TENSOR_FILE = "tensors"    # Recorded model outputs (inference bypassed)


@dataclass
class Frame:
    """
    Represents a captured video frame with metadata.

    Attributes:
        data: uint8 numpy array, shape (height, width, 3)
        timestamp: Monotonic time of capture in seconds
        sequence: Frame counter (0-indexed)
        source: The type of source this frame came from
    """
    data: np.ndarray
    timestamp: float
    sequence: int
    source: FrameSource = FrameSource.CAMERA

    @property
    def height(self) -> int:
        """Get frame height in pixels."""
        return self.data.shape[0]

    @property
    def width(self) -> int:
        """Get frame width in pixels."""
        return self.data.shape[1]

    def validate(self) -> bool:
        """
        Validate frame data integrity.

        Returns:
            True if frame is valid, False otherwise
        """
        if self.data.dtype != np.uint8:
            return False

        # Must be 3-channel color image
        if self.data.ndim != 3 or self.data.shape[2] != 3:
            return False

        if self.data.shape[0] < 1 or self.data.shape[1] < 1:
            return False

        return self.timestamp >= 0

    def __repr__(self) -> str:
        return (
            f"Frame(shape={self.data.shape}, seq={self.sequence}, "
            f"source={self.source.value}, ts={self.timestamp:.3f})"
        )
