"""
Offline frame sources for development and replay.

VideoFileSource plays back recorded video through the full detector;
TensorFileSource replays recorded model outputs straight into the
post-processing pipeline.
"""

import time
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

from lanestream.capture.frame import Frame, FrameSource

logger = logging.getLogger(__name__)


class VideoFileSource:
    """
    Frame source for video file playback.

    Supports common video formats via OpenCV (MP4, AVI, MKV, etc.).
    Frames are delivered in OpenCV BGR order.
    """

    def __init__(self, video_path: str, every_nth: int = 1, loop: bool = False):
        """
        Initialize the video file source.

        Args:
            video_path: Path to the video file
            every_nth: Deliver only every N-th decoded frame
            loop: Whether to loop the video when it ends
        """
        self._video_path = Path(video_path)
        self._every_nth = max(1, every_nth)
        self._loop = loop
        self._cap: Optional[cv2.VideoCapture] = None
        self._decoded = 0
        self._delivered = 0
        self._video_fps = 0.0

    def initialize(self) -> bool:
        """
        Open the video file.

        Returns:
            True if the file was opened
        """
        if not self._video_path.exists():
            logger.error(f"Video file not found: {self._video_path}")
            return False

        self._cap = cv2.VideoCapture(str(self._video_path))
        if not self._cap.isOpened():
            logger.error(f"Failed to open video file: {self._video_path}")
            self._cap = None
            return False

        self._video_fps = self._cap.get(cv2.CAP_PROP_FPS)
        width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        total = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))

        logger.info(
            f"Video opened: {self._video_path.name} ({width}x{height} @ "
            f"{self._video_fps:.1f} FPS, {total} frames, every {self._every_nth})"
        )
        return True

    def capture(self) -> Optional[Frame]:
        """
        Read the next frame to process, skipping frames per every_nth.

        Returns:
            Frame object, or None at end of video
        """
        if self._cap is None:
            logger.warning("Video not initialized")
            return None

        while True:
            ret, data = self._cap.read()
            if not ret or data is None:
                if not self._loop:
                    logger.info("Video playback complete")
                    return None
                self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
                ret, data = self._cap.read()
                if not ret or data is None:
                    logger.error("Failed to loop video")
                    return None
                logger.debug("Video looped to beginning")

            index = self._decoded
            self._decoded += 1
            if index % self._every_nth == 0:
                break

        frame = Frame(
            data=data,
            timestamp=time.monotonic(),
            sequence=self._delivered,
            source=FrameSource.VIDEO_FILE,
        )
        self._delivered += 1
        return frame

    def release(self) -> None:
        """Release the video file."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        logger.info("Video file released")

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.capture()
            if frame is None:
                return
            yield frame

    @property
    def skipped_frames(self) -> int:
        """Frames decoded but not delivered."""
        return self._decoded - self._delivered

    @property
    def video_fps(self) -> float:
        return self._video_fps


class TensorFileSource:
    """
    Replays recorded model outputs stored as .npy files.

    Files are delivered in sorted filename order.
    """

    def __init__(self, directory: str, pattern: str = "*.npy"):
        self._directory = Path(directory)
        self._pattern = pattern

    def files(self) -> List[Path]:
        """Sorted list of tensor files."""
        if not self._directory.is_dir():
            raise FileNotFoundError(f"Tensor directory not found: {self._directory}")
        return sorted(self._directory.glob(self._pattern))

    def __iter__(self) -> Iterator[Tuple[int, np.ndarray]]:
        for sequence, path in enumerate(self.files()):
            try:
                tensor = np.load(path, allow_pickle=False)
            except (OSError, ValueError) as e:
                logger.warning(f"Unreadable tensor file {path.name}: {e}")
                continue
            yield sequence, tensor
