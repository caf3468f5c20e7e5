"""
Inference boundary for the lane model.

Provides preprocessing, the engine interface and the error types used to
signal skipped frames.
"""

from lanestream.inference.errors import (
    LaneStreamError,
    InferenceError,
    MalformedTensorError,
)
from lanestream.inference.engine import InferenceEngine, OnnxLaneModel, CallableEngine
from lanestream.inference.preprocessing import preprocess_frame, apply_roi_mask

__all__ = [
    "LaneStreamError",
    "InferenceError",
    "MalformedTensorError",
    "InferenceEngine",
    "OnnxLaneModel",
    "CallableEngine",
    "preprocess_frame",
    "apply_roi_mask",
]
