"""
Grid decoder for row-anchor lane models.

Turns the raw [classes, row_anchors, lanes] output of the lane model into
per-lane point lists in target image coordinates.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from lanestream.inference.errors import MalformedTensorError
from lanestream.lane.result import LaneCandidate, Point

logger = logging.getLogger(__name__)


def softmax(logits: np.ndarray, axis: int = 0) -> np.ndarray:
    """
    Numerically stable softmax along one axis.

    Degenerate slices (NaN or infinite logits, or a non-positive sum) map to
    all zeros instead of NaN.

    Args:
        logits: Raw class scores
        axis: Class axis

    Returns:
        Probabilities with the same shape as logits
    """
    logits = np.asarray(logits, dtype=np.float64)
    if logits.size == 0:
        return np.zeros_like(logits)

    with np.errstate(invalid="ignore", over="ignore"):
        shifted = logits - np.max(logits, axis=axis, keepdims=True)
        exps = np.exp(shifted)
    exps = np.where(np.isfinite(exps), exps, 0.0)

    sums = np.sum(exps, axis=axis, keepdims=True)
    usable = np.isfinite(sums) & (sums > 0)
    safe_sums = np.where(usable, sums, 1.0)

    return np.where(usable, exps / safe_sums, 0.0)


class GridDecoder:
    """
    Decodes grid-classification output into lane candidates.

    For every lane channel and row anchor the most likely grid cell is taken
    after a softmax over the classes. The last class is reserved for
    "no lane at this row".
    """

    def __init__(
        self,
        gridding_num: int,
        row_anchors: Sequence[int],
        num_lanes: int,
        native_size: Tuple[int, int],
        target_size: Tuple[int, int],
        acceptance_threshold: float = 0.2,
    ):
        """
        Initialize grid decoder.

        Args:
            gridding_num: Number of horizontal grid cells (excluding "no lane")
            row_anchors: Row anchor y positions in native model resolution
            num_lanes: Number of lane channels in the model output
            native_size: Model native (width, height)
            target_size: Output (width, height)
            acceptance_threshold: Minimum argmax probability to emit a point
        """
        native_w, native_h = native_size
        for anchor in row_anchors:
            if not 0 <= anchor < native_h:
                raise ValueError(
                    f"Row anchor {anchor} outside native height {native_h}"
                )

        self._gridding_num = gridding_num
        self._row_anchors = np.asarray(row_anchors, dtype=np.float64)
        self._num_lanes = num_lanes
        self._native_size = native_size
        self._target_size = target_size
        self._acceptance_threshold = acceptance_threshold

        target_w, target_h = target_size
        self._scale_x = target_w / native_w
        self._scale_y = target_h / native_h

    @property
    def expected_shape(self) -> Tuple[int, int, int]:
        """Output tensor shape this decoder accepts."""
        return (self._gridding_num + 1, len(self._row_anchors), self._num_lanes)

    def decode(self, output: np.ndarray) -> List[LaneCandidate]:
        """
        Decode one frame of model output.

        Args:
            output: Tensor of shape [gridding_num + 1, row_anchors, lanes],
                optionally with a leading batch dimension of 1

        Returns:
            One LaneCandidate per lane channel (possibly empty)

        Raises:
            MalformedTensorError: If the tensor shape does not match
        """
        output = np.asarray(output)
        if output.ndim == 4 and output.shape[0] == 1:
            output = output[0]

        if output.shape != self.expected_shape:
            raise MalformedTensorError(self.expected_shape, tuple(output.shape))

        probs = softmax(output, axis=0)
        best_idx = np.argmax(probs, axis=0)
        best_prob = np.take_along_axis(probs, best_idx[np.newaxis], axis=0)[0]

        accepted = (
            (best_prob > self._acceptance_threshold)
            & (best_idx != self._gridding_num)
        )

        native_w = self._native_size[0]
        xs = best_idx * native_w / self._gridding_num * self._scale_x
        ys = self._row_anchors * self._scale_y

        candidates = []
        for lane_idx in range(self._num_lanes):
            rows = np.flatnonzero(accepted[:, lane_idx])
            points = [
                Point(float(xs[row, lane_idx]), float(ys[row]))
                for row in rows
            ]
            candidates.append(LaneCandidate(points=points, channel=lane_idx))

        logger.debug(
            "Decoded lane point counts: %s", [len(c) for c in candidates]
        )
        return candidates
