"""
Lane model preprocessing: image preparation for inference.

Handles road ROI masking, resizing to the model's native resolution and
ImageNet normalization.
"""

from typing import Tuple

import cv2
import numpy as np

# ImageNet statistics the lane model was trained with
IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


def roi_vertices(width: int, height: int) -> np.ndarray:
    """
    Trapezoid covering the road area.

    Top edge at 60% of the height spanning 10%-90% of the width, bottom
    edge the full width of the frame.
    """
    return np.array([
        [int(width * 0.1), int(height * 0.6)],
        [int(width * 0.9), int(height * 0.6)],
        [width, height],
        [0, height],
    ], dtype=np.int32)


def apply_roi_mask(image: np.ndarray, alpha: int = 180) -> np.ndarray:
    """
    Darken everything outside the road trapezoid.

    Args:
        image: Input image (H, W, 3) uint8
        alpha: Opacity of the black overlay outside the ROI (0-255)

    Returns:
        New image with the outside region blended towards black
    """
    height, width = image.shape[:2]

    mask = np.zeros((height, width), dtype=np.uint8)
    cv2.fillPoly(mask, [roi_vertices(width, height)], 255)

    keep = 1.0 - alpha / 255.0
    darkened = (image.astype(np.float32) * keep).astype(np.uint8)

    result = image.copy()
    outside = mask == 0
    result[outside] = darkened[outside]
    return result


def preprocess_frame(
    image: np.ndarray,
    native_size: Tuple[int, int] = (800, 288),
    apply_roi: bool = True,
    bgr: bool = False,
) -> np.ndarray:
    """
    Full preprocessing pipeline for lane model inference.

    Args:
        image: Input image (H, W, 3) uint8, RGB unless bgr is set
        native_size: Model input size (width, height)
        apply_roi: Darken the area outside the road trapezoid first
        bgr: Input is in OpenCV BGR channel order

    Returns:
        Input tensor (1, 3, H, W) float32, ImageNet-normalized
    """
    if apply_roi:
        image = apply_roi_mask(image)

    resized = cv2.resize(image, native_size, interpolation=cv2.INTER_LINEAR)

    if bgr:
        resized = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)

    normalized = (resized.astype(np.float32) / 255.0 - IMAGENET_MEAN) / IMAGENET_STD

    # Transpose HWC -> CHW and add batch dimension
    tensor = normalized.transpose(2, 0, 1)[np.newaxis]

    return np.ascontiguousarray(tensor, dtype=np.float32)
