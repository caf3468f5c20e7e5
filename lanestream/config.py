"""
Configuration management for the lane stream post-processor.

Handles loading, validation, and access to system configuration.
"""

import yaml
from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Any, Dict
from pathlib import Path


# TuSimple row anchors used by the Ultra Fast Lane Detection model (800x288)
TUSIMPLE_ROW_ANCHORS: List[int] = list(range(64, 288, 4))


@dataclass
class ModelConfig:
    """Lane model geometry and inference settings."""
    model_path: str = "models/lane_tusimple.onnx"
    native_width: int = 800
    native_height: int = 288
    gridding_num: int = 100
    num_lanes: int = 4
    row_anchors: List[int] = field(default_factory=lambda: list(TUSIMPLE_ROW_ANCHORS))
    num_threads: int = 4
    apply_roi_mask: bool = True

    @property
    def native_size(self) -> Tuple[int, int]:
        return (self.native_width, self.native_height)

    @property
    def num_row_anchors(self) -> int:
        return len(self.row_anchors)


@dataclass
class LaneDetectionConfig:
    """Lane post-processing configuration."""
    target_width: int = 400
    target_height: int = 144
    acceptance_threshold: float = 0.2
    lane_confidence_threshold: float = 0.7
    expected_lanes_count: int = 2
    min_lane_width_ratio: float = 0.15
    max_lane_width_ratio: float = 0.5
    reference_row_ratio: float = 0.75
    max_history_frames: int = 5
    y_tolerance: float = 2.0
    variance_base: float = 5000.0
    min_lane_points: int = 5
    slot_assignment: str = "proximity"  # "proximity" or "rank"
    max_match_distance_ratio: float = 0.1  # Fraction of target width

    @property
    def target_size(self) -> Tuple[int, int]:
        return (self.target_width, self.target_height)


@dataclass
class CaptureConfig:
    """Frame source configuration."""
    every_nth: int = 1  # Process every N-th frame of a video
    loop: bool = False
    bgr_input: bool = True  # OpenCV frames arrive as BGR


@dataclass
class SystemConfig:
    """Top-level system configuration."""
    log_level: str = "INFO"
    log_file: Optional[str] = None  # Telemetry JSONL, disabled if None
    telemetry_flush_interval_s: float = 1.0


@dataclass
class Config:
    """Complete system configuration."""
    system: SystemConfig = field(default_factory=SystemConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    lane_detection: LaneDetectionConfig = field(default_factory=LaneDetectionConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)

    def validate(self) -> None:
        """
        Check cross-field constraints.

        Raises:
            ValueError: If the configuration is inconsistent
        """
        model = self.model
        lane = self.lane_detection

        if model.gridding_num < 1:
            raise ValueError("gridding_num must be positive")
        if not model.row_anchors:
            raise ValueError("row_anchors must not be empty")
        if lane.expected_lanes_count < 1:
            raise ValueError("expected_lanes_count must be at least 1")
        if model.num_lanes < lane.expected_lanes_count:
            raise ValueError(
                f"num_lanes ({model.num_lanes}) must be >= "
                f"expected_lanes_count ({lane.expected_lanes_count})"
            )
        if lane.max_history_frames < 1:
            raise ValueError("max_history_frames must be at least 1")
        if lane.min_lane_width_ratio > lane.max_lane_width_ratio:
            raise ValueError("min_lane_width_ratio must not exceed max_lane_width_ratio")
        if lane.slot_assignment not in ("proximity", "rank"):
            raise ValueError(f"Unknown slot_assignment: {lane.slot_assignment}")
        if lane.target_width <= 0 or lane.target_height <= 0:
            raise ValueError("Target resolution must be positive")
        if self.capture.every_nth < 1:
            raise ValueError("every_nth must be at least 1")


def _parse_model(data: Dict[str, Any]) -> ModelConfig:
    """Parse model config from config dict."""
    defaults = ModelConfig()
    return ModelConfig(
        model_path=data.get("model_path", defaults.model_path),
        native_width=data.get("native_width", defaults.native_width),
        native_height=data.get("native_height", defaults.native_height),
        gridding_num=data.get("gridding_num", defaults.gridding_num),
        num_lanes=data.get("num_lanes", defaults.num_lanes),
        row_anchors=list(data.get("row_anchors", defaults.row_anchors)),
        num_threads=data.get("num_threads", defaults.num_threads),
        apply_roi_mask=data.get("apply_roi_mask", defaults.apply_roi_mask),
    )


def _parse_lane_detection(data: Dict[str, Any]) -> LaneDetectionConfig:
    """Parse lane post-processing config from config dict."""
    defaults = LaneDetectionConfig()
    resolution = data.get("target_resolution", [defaults.target_width, defaults.target_height])
    return LaneDetectionConfig(
        target_width=resolution[0],
        target_height=resolution[1],
        acceptance_threshold=data.get("acceptance_threshold", defaults.acceptance_threshold),
        lane_confidence_threshold=data.get(
            "lane_confidence_threshold", defaults.lane_confidence_threshold
        ),
        expected_lanes_count=data.get("expected_lanes_count", defaults.expected_lanes_count),
        min_lane_width_ratio=data.get("min_lane_width_ratio", defaults.min_lane_width_ratio),
        max_lane_width_ratio=data.get("max_lane_width_ratio", defaults.max_lane_width_ratio),
        reference_row_ratio=data.get("reference_row_ratio", defaults.reference_row_ratio),
        max_history_frames=data.get("max_history_frames", defaults.max_history_frames),
        y_tolerance=data.get("y_tolerance", defaults.y_tolerance),
        variance_base=data.get("variance_base", defaults.variance_base),
        min_lane_points=data.get("min_lane_points", defaults.min_lane_points),
        slot_assignment=data.get("slot_assignment", defaults.slot_assignment),
        max_match_distance_ratio=data.get(
            "max_match_distance_ratio", defaults.max_match_distance_ratio
        ),
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Populated and validated Config object

    Raises:
        yaml.YAMLError: If config file is malformed
        ValueError: If the configuration is inconsistent
    """
    if config_path is None:
        # Look for config.yaml in project root
        config_path = Path(__file__).parent.parent / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        # Return default configuration
        return Config()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = Config()

    # Parse system config
    if "system" in data:
        sys_data = data["system"]
        config.system = SystemConfig(
            log_level=sys_data.get("log_level", "INFO"),
            log_file=sys_data.get("log_file"),
            telemetry_flush_interval_s=sys_data.get("telemetry_flush_interval_s", 1.0),
        )

    if "model" in data:
        config.model = _parse_model(data["model"] or {})

    if "lane_detection" in data:
        config.lane_detection = _parse_lane_detection(data["lane_detection"] or {})

    # Parse capture config
    if "capture" in data:
        cap_data = data["capture"]
        config.capture = CaptureConfig(
            every_nth=cap_data.get("every_nth", 1),
            loop=cap_data.get("loop", False),
            bgr_input=cap_data.get("bgr_input", True),
        )

    config.validate()
    return config
