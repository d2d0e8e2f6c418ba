from __future__ import annotations
"""
YAML configuration (config/params.yaml):

    logging:  {level: INFO}
    corners:  {max_corners, quality_level, min_distance, block_size}
    matching: {max_distance, enforce_rank2}
    cameras:  {left: {intrinsic, extrinsic}, right: {intrinsic, extrinsic}}
    output:   {report_file}
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Tuple

import yaml

from common.types import CameraCalibration


DEFAULT_CONFIG_PATH = "config/params.yaml"


def load_params(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    with open(path, "r") as f:
        P = yaml.safe_load(f)
    if P is None:
        return {}
    if not isinstance(P, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return P


@dataclass
class MatchingParams:
    max_corners: int = 200
    quality_level: float = 0.01
    min_distance: float = 10.0
    block_size: int = 3
    max_distance: float = 5.0
    enforce_rank2: bool = False

    def __post_init__(self) -> None:
        self.max_corners = int(self.max_corners)
        self.quality_level = float(self.quality_level)
        self.min_distance = float(self.min_distance)
        self.block_size = int(self.block_size)
        self.max_distance = float(self.max_distance)
        self.enforce_rank2 = bool(self.enforce_rank2)
        if self.max_corners <= 0:
            raise ValueError("max_corners must be > 0")
        if not (self.max_distance >= 0.0) or self.max_distance == float("inf"):
            raise ValueError("max_distance must be finite and >= 0")

    @classmethod
    def from_dict(cls, P: Mapping[str, Any]) -> "MatchingParams":
        corners = P.get("corners", {}) or {}
        matching = P.get("matching", {}) or {}
        return cls(
            max_corners=corners.get("max_corners", cls.max_corners),
            quality_level=corners.get("quality_level", cls.quality_level),
            min_distance=corners.get("min_distance", cls.min_distance),
            block_size=corners.get("block_size", cls.block_size),
            max_distance=matching.get("max_distance", cls.max_distance),
            enforce_rank2=matching.get("enforce_rank2", cls.enforce_rank2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calibrations_from_params(P: Mapping[str, Any]) -> Tuple[CameraCalibration, CameraCalibration]:
    cams = P.get("cameras")
    if not isinstance(cams, Mapping) or "left" not in cams or "right" not in cams:
        raise ValueError("config needs cameras.left and cameras.right")
    for side in ("left", "right"):
        if not isinstance(cams[side], Mapping):
            raise ValueError(f"cameras.{side} must be a mapping")
    return (
        CameraCalibration.from_dict(cams["left"], camera_id="left"),
        CameraCalibration.from_dict(cams["right"], camera_id="right"),
    )
