from __future__ import annotations
"""
Interest-point extraction for the matcher.

- to_gray_u8: BGR/gray/float image -> single-channel uint8
- CornerExtractor(max_corners, ...).extract(img) -> PointSet (best corners first)
"""

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from common.logging_setup import get_logger
from common.types import PointSet


log = get_logger("stereo_match.features")


def to_gray_u8(img: np.ndarray) -> np.ndarray:
    if not isinstance(img, np.ndarray):
        raise TypeError("image must be a numpy ndarray")
    if img.ndim == 2:
        g = img
    elif img.ndim == 3 and img.shape[2] == 3:
        g = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    elif img.ndim == 3 and img.shape[2] == 1:
        g = img[:, :, 0]
    else:
        raise ValueError(f"image must be 2D (gray) or 3D (BGR), got shape {img.shape}")
    if g.dtype != np.uint8:
        g = np.clip(g, 0, 255).astype(np.uint8)
    return g


@dataclass
class CornerExtractor:
    """
    Shi-Tomasi corners (cv2.goodFeaturesToTrack), ranked by corner quality
    and truncated to max_corners.
    """
    max_corners: int = 200
    quality_level: float = 0.01
    min_distance: float = 10.0
    block_size: int = 3

    def __post_init__(self):
        if int(self.max_corners) <= 0:
            raise ValueError("max_corners must be > 0")
        if not (0.0 < float(self.quality_level) <= 1.0):
            raise ValueError("quality_level must be in (0, 1]")
        if float(self.min_distance) < 0.0:
            raise ValueError("min_distance must be >= 0")
        if int(self.block_size) <= 0:
            raise ValueError("block_size must be > 0")

    def extract(self, img: np.ndarray, image_id: str = "image", mask: Optional[np.ndarray] = None) -> PointSet:
        gray = to_gray_u8(img)
        corners = cv2.goodFeaturesToTrack(
            gray,
            maxCorners=int(self.max_corners),
            qualityLevel=float(self.quality_level),
            minDistance=float(self.min_distance),
            mask=mask,
            blockSize=int(self.block_size),
        )
        if corners is None or len(corners) == 0:
            log.info("No corners detected", extra={"extra": {"image_id": image_id}})
            return PointSet.empty(image_id=image_id)
        xy = corners.reshape(-1, 2).astype(np.float64)[: int(self.max_corners)]
        log.debug("Corners detected", extra={"extra": {"image_id": image_id, "count": int(xy.shape[0])}})
        return PointSet.from_pixels(xy, image_id=image_id)
