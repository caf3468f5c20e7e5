"""
Frame source and latest-frame gate tests.

Run:
    pytest tests/test_capture.py -v
"""

import threading

import numpy as np
import pytest

from lanestream.capture import (
    Frame,
    FrameSource,
    LatestFrameGate,
    TensorFileSource,
    VideoFileSource,
)


class TestFrame:
    """Test frame validation."""

    def test_valid_frame(self):
        frame = Frame(np.zeros((144, 400, 3), dtype=np.uint8), timestamp=1.0, sequence=0)

        assert frame.validate()
        assert frame.width == 400
        assert frame.height == 144
        assert frame.source == FrameSource.CAMERA

    def test_grayscale_rejected(self):
        frame = Frame(np.zeros((144, 400), dtype=np.uint8), timestamp=1.0, sequence=0)

        assert not frame.validate()

    def test_negative_timestamp_rejected(self):
        frame = Frame(np.zeros((144, 400, 3), dtype=np.uint8), timestamp=-1.0, sequence=0)

        assert not frame.validate()


class TestLatestFrameGate:
    """Test dropping of stale frames."""

    def test_take_empty(self):
        gate = LatestFrameGate()

        assert gate.take() is None
        assert not gate.has_pending

    def test_newest_frame_wins(self):
        """Unprocessed frames are replaced and counted as dropped."""
        gate = LatestFrameGate()

        assert gate.offer(1) is False
        assert gate.offer(2) is True
        assert gate.offer(3) is True

        assert gate.take() == 3
        assert gate.take() is None
        assert gate.dropped_count == 2
        assert gate.accepted_count == 3

    def test_taken_frames_not_dropped(self):
        gate = LatestFrameGate()

        for i in range(5):
            gate.offer(i)
            assert gate.take() == i

        assert gate.dropped_count == 0

    def test_clear(self):
        gate = LatestFrameGate()
        gate.offer("frame")

        gate.clear()

        assert gate.take() is None
        assert gate.dropped_count == 0

    def test_concurrent_offer(self):
        """Every offered item is either taken or counted as dropped."""
        gate = LatestFrameGate()
        taken = []

        def producer():
            for i in range(1000):
                gate.offer(i)

        thread = threading.Thread(target=producer)
        thread.start()
        while thread.is_alive():
            item = gate.take()
            if item is not None:
                taken.append(item)
        thread.join()
        item = gate.take()
        if item is not None:
            taken.append(item)

        assert len(taken) + gate.dropped_count == 1000
        assert taken == sorted(taken)


class TestTensorFileSource:
    """Test replay of recorded model outputs."""

    def test_sorted_replay(self, tmp_path):
        for name, value in (("frame_002", 2.0), ("frame_000", 0.0), ("frame_001", 1.0)):
            np.save(tmp_path / f"{name}.npy", np.full((101, 56, 4), value, dtype=np.float32))

        items = list(TensorFileSource(str(tmp_path)))

        assert [seq for seq, _ in items] == [0, 1, 2]
        assert [float(t[0, 0, 0]) for _, t in items] == [0.0, 1.0, 2.0]

    def test_unreadable_file_skipped(self, tmp_path):
        np.save(tmp_path / "a.npy", np.zeros((101, 56, 4), dtype=np.float32))
        (tmp_path / "b.npy").write_bytes(b"not a numpy file")

        items = list(TensorFileSource(str(tmp_path)))

        assert len(items) == 1

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(TensorFileSource(str(tmp_path / "nope")))


class TestVideoFileSource:
    """Test video playback error handling."""

    def test_missing_file(self, tmp_path):
        source = VideoFileSource(str(tmp_path / "missing.mp4"))

        assert source.initialize() is False
        assert source.capture() is None
