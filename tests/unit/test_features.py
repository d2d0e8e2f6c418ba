"""
Unit tests for corner extraction
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from stereo_match.features import CornerExtractor, to_gray_u8


def checkerboard(rows: int = 4, cols: int = 5, square: int = 40, margin: int = 40) -> np.ndarray:
    h = rows * square + 2 * margin
    w = cols * square + 2 * margin
    img = np.zeros((h, w), dtype=np.uint8)
    for r in range(rows):
        for c in range(cols):
            if (r + c) % 2 == 0:
                y, x = margin + r * square, margin + c * square
                img[y:y + square, x:x + square] = 255
    return img


class TestCornerExtractor:
    """Test cases for CornerExtractor"""

    def test_detects_checkerboard_corners(self):
        """Corners land inside the image as homogeneous points"""
        img = checkerboard()
        ps = CornerExtractor(max_corners=50).extract(img, image_id="left")

        assert len(ps) > 0
        assert ps.image_id == "left"
        np.testing.assert_array_equal(ps.homogeneous[:, 2], 1.0)
        assert np.all(ps.xy[:, 0] >= 0) and np.all(ps.xy[:, 0] < img.shape[1])
        assert np.all(ps.xy[:, 1] >= 0) and np.all(ps.xy[:, 1] < img.shape[0])

    def test_respects_max_corners(self):
        """Output is truncated to max_corners"""
        ps = CornerExtractor(max_corners=3).extract(checkerboard())
        assert 0 < len(ps) <= 3

    def test_blank_image_gives_empty_set(self):
        """No texture, no corners, no error"""
        ps = CornerExtractor(max_corners=10).extract(np.zeros((100, 100), dtype=np.uint8))
        assert len(ps) == 0

    def test_color_input(self):
        """BGR input is converted to gray first"""
        bgr = cv2.cvtColor(checkerboard(), cv2.COLOR_GRAY2BGR)
        gray_ps = CornerExtractor(max_corners=20).extract(checkerboard())
        bgr_ps = CornerExtractor(max_corners=20).extract(bgr)
        np.testing.assert_allclose(bgr_ps.xy, gray_ps.xy)

    @pytest.mark.parametrize("kwargs", [
        {"max_corners": 0},
        {"max_corners": -5},
        {"quality_level": 0.0},
        {"min_distance": -1.0},
        {"block_size": 0},
    ])
    def test_invalid_parameters_raise(self, kwargs):
        """Parameter validation"""
        with pytest.raises(ValueError):
            CornerExtractor(**kwargs)


class TestToGray:
    """Test cases for to_gray_u8"""

    def test_float_image_clipped(self):
        """Float input is clipped to uint8"""
        g = to_gray_u8(np.full((4, 4), 300.0))
        assert g.dtype == np.uint8
        assert g.max() == 255

    def test_non_array_raises(self):
        """Only numpy images are accepted"""
        with pytest.raises(TypeError):
            to_gray_u8([[0, 1], [2, 3]])

    def test_bad_channel_count_raises(self):
        """2-channel images are rejected"""
        with pytest.raises(ValueError):
            to_gray_u8(np.zeros((4, 4, 2), dtype=np.uint8))
