from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np
import yaml

from common.utils import as_matrix, to_homogeneous_4x4, to_numpy_3x3


UNMATCHED = -1


@dataclass(frozen=True, slots=True)
class PointSet:
    """
    Ordered set of detected 2D points of one image, in homogeneous pixel
    coordinates (x, y, 1). Row i is the point with index i.

    Attributes:
        points: (N, 3) float64 array, read-only, third column == 1.
        image_id: logical ID of the source image ("left" / "right").

    (N, 2) pixel input is lifted to homogeneous; (N, 3) input is normalised
    by its third coordinate, which must be non-zero.
    """
    points: np.ndarray = field(repr=False)
    image_id: str = "image"

    def __post_init__(self) -> None:
        a = np.array(self.points, dtype=float)
        if a.size == 0:
            a = np.zeros((0, 3), dtype=float)
        if a.ndim != 2 or a.shape[1] not in (2, 3):
            raise ValueError(f"points must be (N,2) or (N,3), got shape {a.shape}")
        if not np.all(np.isfinite(a)):
            raise ValueError("points contain NaN or infinite values")
        if a.shape[1] == 2:
            a = np.hstack([a, np.ones((a.shape[0], 1))])
        else:
            w = a[:, 2:3]
            if np.any(w == 0.0):
                raise ValueError("homogeneous points with w == 0 are not pixel locations")
            a = a / w
        a.setflags(write=False)
        object.__setattr__(self, "points", a)

    @classmethod
    def from_pixels(cls, xy: Any, image_id: str = "image") -> "PointSet":
        return cls(np.asarray(xy, dtype=float).reshape(-1, 2), image_id=image_id)

    @classmethod
    def empty(cls, image_id: str = "image") -> "PointSet":
        return cls(np.zeros((0, 3)), image_id=image_id)

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @property
    def homogeneous(self) -> np.ndarray:
        return self.points

    @property
    def xy(self) -> np.ndarray:
        return self.points[:, :2]

    @property
    def columns(self) -> np.ndarray:
        """3xN layout, one homogeneous point per column."""
        return self.points.T

    def truncated(self, n: int) -> "PointSet":
        """Keep the first n points (detector order is best-first)."""
        if n < 0:
            raise ValueError("n must be >= 0")
        return PointSet(self.points[:n], image_id=self.image_id)


def _intrinsic_from_value(value: Any) -> np.ndarray:
    if isinstance(value, Mapping):
        fx = float(value["fx"])
        fy = float(value.get("fy", fx))
        cx = float(value.get("cx", 0.0))
        cy = float(value.get("cy", 0.0))
        skew = float(value.get("skew", 0.0))
        return np.array([[fx, skew, cx],
                         [0.0, fy, cy],
                         [0.0, 0.0, 1.0]], dtype=float)
    return to_numpy_3x3(value, "intrinsic")


def _extrinsic_from_value(value: Any) -> np.ndarray:
    if isinstance(value, Mapping):
        R = as_matrix(value.get("R", np.eye(3)), (3, 3), "R")
        t = np.asarray(value.get("t", [0.0, 0.0, 0.0]), dtype=float).reshape(3, 1)
        return to_homogeneous_4x4(np.hstack([R, t]))
    return to_homogeneous_4x4(value)


@dataclass(frozen=True, slots=True)
class CameraCalibration:
    """
    Calibration of one camera.

    Attributes:
        intrinsic: 3x3 K (focal lengths, skew, principal point).
        extrinsic: 4x4 world->camera rigid transform; a 3x4 [R|t] is extended
            with [0, 0, 0, 1].
        camera_id: logical ID ("left" / "right").
    """
    intrinsic: np.ndarray
    extrinsic: np.ndarray
    camera_id: str = "cam0"

    def __post_init__(self) -> None:
        K = to_numpy_3x3(self.intrinsic, "intrinsic")
        E = to_homogeneous_4x4(self.extrinsic)
        if np.linalg.matrix_rank(E) < 4:
            raise ValueError(f"extrinsic matrix of camera '{self.camera_id}' is not invertible")
        K.setflags(write=False)
        E.setflags(write=False)
        object.__setattr__(self, "intrinsic", K)
        object.__setattr__(self, "extrinsic", E)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], camera_id: str = "cam0") -> "CameraCalibration":
        """
        Build from a mapping, e.g. one camera block of config/params.yaml:

            intrinsic: [[fx, s, cx], [0, fy, cy], [0, 0, 1]]   # or {fx, fy, cx, cy, skew}
            extrinsic: [[...4 rows...]]                         # or 3 rows, or {R, t}
        """
        if "intrinsic" not in d or "extrinsic" not in d:
            raise ValueError(f"camera '{camera_id}' needs both 'intrinsic' and 'extrinsic'")
        return cls(
            intrinsic=_intrinsic_from_value(d["intrinsic"]),
            extrinsic=_extrinsic_from_value(d["extrinsic"]),
            camera_id=str(d.get("camera_id", camera_id)),
        )

    @classmethod
    def from_yaml(cls, path: str, key: Optional[str] = None) -> "CameraCalibration":
        """Load one camera from a YAML file; `key` selects a nested block."""
        with open(path, "r") as f:
            D = yaml.safe_load(f) or {}
        if key is not None:
            D = D[key]
        return cls.from_dict(D, camera_id=key or "cam0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "camera_id": self.camera_id,
            "intrinsic": self.intrinsic.tolist(),
            "extrinsic": self.extrinsic.tolist(),
        }


@dataclass(frozen=True, slots=True)
class Correspondence:
    """A homologous pair: left point index, right point index, epipolar distance."""
    left: int
    right: int
    distance: float


@dataclass(frozen=True, slots=True)
class CorrespondenceSet:
    """
    Injective matching between left and right point indices.

    Attributes:
        right_of_left: int array, one entry per left point; the matched right
            index or UNMATCHED (-1).
        left_of_right: int array, one entry per right point; the matched left
            index or UNMATCHED (-1).
        pairs: accepted pairs in acceptance order (ascending distance).
        max_distance: acceptance threshold used to build the set.
    """
    right_of_left: np.ndarray
    left_of_right: np.ndarray
    pairs: Tuple[Correspondence, ...]
    max_distance: float

    def __post_init__(self) -> None:
        rl = np.asarray(self.right_of_left, dtype=int).copy()
        lr = np.asarray(self.left_of_right, dtype=int).copy()
        for c in self.pairs:
            if c.distance > self.max_distance:
                raise ValueError(f"pair {c.left}<->{c.right} exceeds max_distance")
            if rl[c.left] != c.right or lr[c.right] != c.left:
                raise ValueError(f"pair {c.left}<->{c.right} not mirrored in index arrays")
        if int(np.count_nonzero(rl != UNMATCHED)) != len(self.pairs) or \
                int(np.count_nonzero(lr != UNMATCHED)) != len(self.pairs):
            raise ValueError("index arrays hold entries without a pair")
        rl.setflags(write=False)
        lr.setflags(write=False)
        object.__setattr__(self, "right_of_left", rl)
        object.__setattr__(self, "left_of_right", lr)

    @classmethod
    def empty(cls, n_left: int, n_right: int, max_distance: float) -> "CorrespondenceSet":
        return cls(
            right_of_left=np.full(n_left, UNMATCHED, dtype=int),
            left_of_right=np.full(n_right, UNMATCHED, dtype=int),
            pairs=(),
            max_distance=float(max_distance),
        )

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[Correspondence]:
        return iter(self.pairs)

    def right_for(self, left_index: int) -> Optional[int]:
        j = int(self.right_of_left[left_index])
        return None if j == UNMATCHED else j

    def left_for(self, right_index: int) -> Optional[int]:
        i = int(self.left_of_right[right_index])
        return None if i == UNMATCHED else i

    def unmatched_left(self) -> List[int]:
        return np.flatnonzero(self.right_of_left == UNMATCHED).tolist()

    def unmatched_right(self) -> List[int]:
        return np.flatnonzero(self.left_of_right == UNMATCHED).tolist()

    def as_index_pairs(self) -> List[Tuple[int, int]]:
        return [(c.left, c.right) for c in self.pairs]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form (no numpy types)."""
        return {
            "max_distance": float(self.max_distance),
            "pairs": [
                {"left": int(c.left), "right": int(c.right), "distance": float(c.distance)}
                for c in self.pairs
            ],
            "right_of_left": self.right_of_left.tolist(),
            "left_of_right": self.left_of_right.tolist(),
        }
