"""
Lane model inference engines.

The post-processing pipeline only needs something that turns an input
tensor into the [classes, row_anchors, lanes] output tensor. OnnxLaneModel
is the default engine; CallableEngine adapts any other runtime.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import numpy as np

try:
    import onnxruntime as ort
except ImportError:
    ort = None

from lanestream.inference.errors import InferenceError

logger = logging.getLogger(__name__)


class InferenceEngine(ABC):
    """Abstract lane model runner."""

    @abstractmethod
    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        """
        Run the model on one preprocessed input.

        Raises:
            InferenceError: If the engine is not ready or inference fails
        """

    @property
    def is_ready(self) -> bool:
        return True

    def close(self) -> None:
        """Release engine resources."""


class OnnxLaneModel(InferenceEngine):
    """
    Lane model running on ONNX Runtime.

    Usage:
        engine = OnnxLaneModel("models/lane_tusimple.onnx")
        output = engine.run(preprocess_frame(image))
    """

    def __init__(self, model_path: str, num_threads: int = 4):
        """
        Initialize the ONNX lane model.

        Args:
            model_path: Path to ONNX model file
            num_threads: Intra-op thread count
        """
        if ort is None:
            raise ImportError(
                "onnxruntime is required for lane inference. "
                "Install with: pip install onnxruntime"
            )

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        self._num_threads = num_threads
        self._session: Optional["ort.InferenceSession"] = self._load_model()
        self._input_name = self._session.get_inputs()[0].name

        logger.info(f"Lane model loaded: {self.model_info}")

    def _load_model(self) -> "ort.InferenceSession":
        """Load ONNX model with CPU execution provider."""
        session_options = ort.SessionOptions()
        session_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        session_options.intra_op_num_threads = self._num_threads

        return ort.InferenceSession(
            str(self.model_path),
            sess_options=session_options,
            providers=["CPUExecutionProvider"],
        )

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        if self._session is None:
            raise InferenceError("Lane model session is closed")

        try:
            outputs = self._session.run(None, {self._input_name: input_tensor})
        except Exception as e:
            raise InferenceError(f"Lane model inference failed: {e}") from e

        return outputs[0]

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    def close(self) -> None:
        self._session = None

    @property
    def model_info(self) -> dict:
        """Get model information."""
        if self._session is None:
            return {"model_path": str(self.model_path), "closed": True}

        inputs = self._session.get_inputs()
        outputs = self._session.get_outputs()

        return {
            "model_path": str(self.model_path),
            "input_name": inputs[0].name,
            "input_shape": inputs[0].shape,
            "output_name": outputs[0].name,
            "output_shape": outputs[0].shape,
            "providers": self._session.get_providers(),
        }

    def __repr__(self) -> str:
        return f"OnnxLaneModel(model={self.model_path.name}, threads={self._num_threads})"


class CallableEngine(InferenceEngine):
    """Wraps a plain function as an inference engine."""

    def __init__(self, fn: Callable[[np.ndarray], np.ndarray]):
        self._fn = fn

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        try:
            return np.asarray(self._fn(input_tensor))
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference callable failed: {e}") from e
