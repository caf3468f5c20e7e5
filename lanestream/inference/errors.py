"""
Exception types raised at the inference boundary.

None of these escape the lane detector: they are caught at the frame level
and turned into an empty lane result for that frame.
"""


class LaneStreamError(Exception):
    """Base class for all lane stream errors."""


class InferenceError(LaneStreamError):
    """Inference engine is not ready or failed to produce an output."""


class MalformedTensorError(LaneStreamError):
    """Model output does not have the expected shape."""

    def __init__(self, expected: tuple, actual: tuple):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected output tensor of shape {expected}, got {actual}"
        )
