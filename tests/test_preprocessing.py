"""
Lane model preprocessing tests.

Run:
    pytest tests/test_preprocessing.py -v
"""

import numpy as np

from lanestream.inference.preprocessing import (
    IMAGENET_MEAN,
    IMAGENET_STD,
    apply_roi_mask,
    preprocess_frame,
)


class TestRoiMask:
    """Test road trapezoid masking."""

    def test_outside_darkened_inside_kept(self):
        image = np.full((288, 800, 3), 200, dtype=np.uint8)

        masked = apply_roi_mask(image)

        # Top-left corner is outside the trapezoid
        assert masked[5, 5, 0] < 200
        # Bottom centre is inside
        assert masked[280, 400, 0] == 200

    def test_input_not_modified(self):
        image = np.full((100, 100, 3), 50, dtype=np.uint8)

        apply_roi_mask(image)

        assert np.all(image == 50)


class TestPreprocessFrame:
    """Test model input tensor preparation."""

    def test_shape_and_dtype(self):
        image = np.zeros((720, 1280, 3), dtype=np.uint8)

        tensor = preprocess_frame(image, native_size=(800, 288))

        assert tensor.shape == (1, 3, 288, 800)
        assert tensor.dtype == np.float32
        assert tensor.flags["C_CONTIGUOUS"]

    def test_normalization(self):
        """A black frame maps to -mean/std per channel."""
        image = np.zeros((288, 800, 3), dtype=np.uint8)

        tensor = preprocess_frame(image, apply_roi=False)

        expected = -IMAGENET_MEAN / IMAGENET_STD
        np.testing.assert_allclose(tensor[0, :, 0, 0], expected, rtol=1e-5)

    def test_bgr_conversion(self):
        """BGR input is swapped to RGB."""
        image = np.zeros((288, 800, 3), dtype=np.uint8)
        image[..., 0] = 255  # blue in BGR

        tensor = preprocess_frame(image, apply_roi=False, bgr=True)

        blue = (1.0 - IMAGENET_MEAN[2]) / IMAGENET_STD[2]
        red = -IMAGENET_MEAN[0] / IMAGENET_STD[0]
        np.testing.assert_allclose(tensor[0, 2, 0, 0], blue, rtol=1e-5)
        np.testing.assert_allclose(tensor[0, 0, 0, 0], red, rtol=1e-5)
