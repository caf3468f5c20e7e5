"""Shared fixtures for lane stream tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lanestream.config import Config, LaneDetectionConfig, ModelConfig
from lanestream.lane.result import Point

GRIDDING_NUM = 100
NUM_ROW_ANCHORS = 56
NUM_LANES = 4


def logit_for_probability(probability: float, num_classes: int = GRIDDING_NUM + 1) -> float:
    """Logit that gives `probability` after softmax when all other logits are 0."""
    return float(np.log(probability * (num_classes - 1) / (1.0 - probability)))


class TensorBuilder:
    """Builds [classes, row_anchors, lanes] model outputs."""

    def __init__(self, gridding_num=GRIDDING_NUM, rows=NUM_ROW_ANCHORS, lanes=NUM_LANES):
        self.gridding_num = gridding_num
        self.rows = rows
        self.lanes = lanes

    def empty(self) -> np.ndarray:
        """Every row of every lane picks the reserved "no lane" class."""
        tensor = np.zeros((self.gridding_num + 1, self.rows, self.lanes), dtype=np.float32)
        tensor[self.gridding_num] = 10.0
        return tensor

    def with_lane(self, tensor, lane, grid_index, probability=0.9, rows=None):
        """Make `lane` pick `grid_index` with `probability` on the given rows."""
        rows = range(self.rows) if rows is None else rows
        logit = logit_for_probability(probability, self.gridding_num + 1)
        for row in rows:
            tensor[:, row, lane] = 0.0
            tensor[grid_index, row, lane] = logit
        return tensor


@pytest.fixture
def tensors() -> TensorBuilder:
    return TensorBuilder()


@pytest.fixture
def native_config() -> Config:
    """Config whose target resolution equals the model's 800x288."""
    config = Config()
    config.model = ModelConfig()
    config.lane_detection = LaneDetectionConfig(target_width=800, target_height=288)
    config.capture.bgr_input = False
    return config


def straight_lane(x: float, y_start: int = 60, y_end: int = 144, step: int = 4):
    """Vertical lane at a fixed x."""
    return [Point(float(x), float(y)) for y in range(y_start, y_end, step)]


@pytest.fixture
def make_lane():
    return straight_lane
