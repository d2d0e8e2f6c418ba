from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import cv2
import numpy as np
import yaml

from common.logging_setup import get_logger, setup_logging
from common.types import CameraCalibration, CorrespondenceSet, PointSet
from common.utils import timer_ms
from stereo_match.associate import resolve
from stereo_match.config import DEFAULT_CONFIG_PATH, MatchingParams, calibrations_from_params, load_params
from stereo_match.epipolar import compute_distances
from stereo_match.features import CornerExtractor
from stereo_match.geometry import fundamental_from_calibrations


log = get_logger("stereo_match")


@dataclass
class MatchReport:
    left_points: PointSet
    right_points: PointSet
    fundamental: np.ndarray = field(repr=False)
    distances: np.ndarray = field(repr=False)
    correspondences: CorrespondenceSet
    latency_ms: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "left_points": self.left_points.xy.tolist(),
            "right_points": self.right_points.xy.tolist(),
            "fundamental": self.fundamental.tolist(),
            "correspondences": self.correspondences.to_dict(),
            "latency_ms": {k: round(v, 3) for k, v in self.latency_ms.items()},
        }


_fundamental = timer_ms(fundamental_from_calibrations)
_distances = timer_ms(compute_distances)
_resolve = timer_ms(resolve)


def match_point_sets(
    left_points: PointSet,
    right_points: PointSet,
    left_calib: CameraCalibration,
    right_calib: CameraCalibration,
    params: Optional[MatchingParams] = None,
) -> MatchReport:
    """
    Calibration -> F -> distance matrix -> correspondences for two detected
    point sets.
    """
    params = params or MatchingParams()

    F, t_f = _fundamental(left_calib, right_calib, enforce_rank2_constraint=params.enforce_rank2)
    D, t_d = _distances(left_points, right_points, F)
    cs, t_r = _resolve(D, params.max_distance)

    report = MatchReport(
        left_points=left_points,
        right_points=right_points,
        fundamental=F,
        distances=D,
        correspondences=cs,
        latency_ms={"fundamental": t_f, "distances": t_d, "resolve": t_r},
    )
    log.info("Homologous points matched", extra={"extra": {
        "left": len(left_points),
        "right": len(right_points),
        "matched": len(cs),
        "max_distance": params.max_distance,
        "latency_ms": report.latency_ms,
    }})
    return report


def match_images(
    left_image: np.ndarray,
    right_image: np.ndarray,
    left_calib: CameraCalibration,
    right_calib: CameraCalibration,
    params: Optional[MatchingParams] = None,
) -> MatchReport:
    """Detect corners in both images, then `match_point_sets`."""
    params = params or MatchingParams()
    extractor = CornerExtractor(
        max_corners=params.max_corners,
        quality_level=params.quality_level,
        min_distance=params.min_distance,
        block_size=params.block_size,
    )
    extract = timer_ms(extractor.extract)
    left_points, t_l = extract(left_image, image_id="left")
    right_points, t_r = extract(right_image, image_id="right")

    report = match_point_sets(left_points, right_points, left_calib, right_calib, params)
    report.latency_ms["corners"] = t_l + t_r
    return report


def _read_gray(path: str) -> np.ndarray:
    img = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise RuntimeError(f"Failed to read image: {path}")
    return img


def _write_report(path: Path, report: MatchReport) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2))


def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(description="Epipolar matching of interest points between two calibrated views")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    ap.add_argument("--left", required=True, help="Left image path")
    ap.add_argument("--right", required=True, help="Right image path")
    ap.add_argument("--max-distance", type=float, default=None, help="Override matching.max_distance (px)")
    ap.add_argument("--max-corners", type=int, default=None, help="Override corners.max_corners")
    ap.add_argument("--out", default=None, help="JSON report path (default: output.report_file)")
    args = ap.parse_args(argv)

    try:
        P = load_params(args.config)
    except (OSError, yaml.YAMLError, ValueError):
        setup_logging(force=True)
        log.exception("Failed to load config", extra={"extra": {"path": args.config}})
        return 1
    setup_logging((P.get("logging") or {}).get("level", "INFO"), force=True)

    try:
        params = MatchingParams.from_dict(P)
        overrides = {"max_distance": args.max_distance, "max_corners": args.max_corners}
        params = replace(params, **{k: v for k, v in overrides.items() if v is not None})
        left_calib, right_calib = calibrations_from_params(P)
        report = match_images(_read_gray(args.left), _read_gray(args.right), left_calib, right_calib, params)
    except (ValueError, RuntimeError):
        log.exception("Matching failed")
        return 1

    out = args.out or (P.get("output") or {}).get("report_file", "logs/correspondences.json")
    _write_report(Path(out), report)
    log.info("Report written", extra={"extra": {"path": str(out), "matched": len(report.correspondences)}})
    return 0


if __name__ == "__main__":
    sys.exit(main())
