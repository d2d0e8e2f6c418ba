from __future__ import annotations
"""
Symmetric epipolar distance between every left/right candidate pair.

For left point p_l (index i), right point p_r (index j) and F with
p_r^T F p_l = 0:

    r      = p_r^T F p_l
    d(i,j) = |r| / ||(F p_l)[:2]|| + |r| / ||(F^T p_r)[:2]||

i.e. the distance of p_r to the epipolar line of p_l plus the distance of p_l
to the epipolar line of p_r. Swapping the roles of the two images (and
transposing F) transposes the matrix. A zero-norm line gives +inf.
"""

from typing import Any, Union

import numpy as np

from common.logging_setup import get_logger
from common.types import PointSet
from common.utils import as_matrix


log = get_logger("stereo_match.epipolar")

PointsLike = Union[PointSet, np.ndarray]


def _as_point_set(points: Any, image_id: str) -> PointSet:
    if isinstance(points, PointSet):
        return points
    return PointSet(points, image_id=image_id)


def epipolar_lines(points: PointsLike, F: Any) -> np.ndarray:
    """
    Lines F @ p for every point p, as an (N, 3) array of (a, b, c) with
    a*x + b*y + c = 0. Pass F.T to get lines in the other image.
    """
    F = as_matrix(F, (3, 3), "F")
    ps = _as_point_set(points, "image")
    return ps.homogeneous @ F.T


def point_line_distances(points: PointsLike, lines: Any) -> np.ndarray:
    """
    Row-wise distance of point k to line k; +inf where a == b == 0.
    """
    ps = _as_point_set(points, "image")
    L = np.asarray(lines, dtype=float).reshape(-1, 3)
    if L.shape[0] != len(ps):
        raise ValueError(f"got {len(ps)} points but {L.shape[0]} lines")
    num = np.abs(np.sum(ps.homogeneous * L, axis=1))
    norm = np.hypot(L[:, 0], L[:, 1])
    with np.errstate(divide="ignore", invalid="ignore"):
        d = num / norm
    return np.where(norm > 0.0, d, np.inf)


def compute_distances(left_points: PointsLike, right_points: PointsLike, F: Any) -> np.ndarray:
    """
    Dense (len(left), len(right)) matrix of symmetric epipolar distances.

    Args:
        left_points: PointSet (or array accepted by PointSet) of the left image
        right_points: PointSet (or array) of the right image
        F: 3x3 fundamental matrix, l_right = F @ p_left

    Returns:
        float64 array, entries >= 0; +inf where either epipolar line of the
        pair is degenerate. Empty input on either side yields a (n, 0) or
        (0, m) array.
    """
    F = as_matrix(F, (3, 3), "F")
    left = _as_point_set(left_points, "left")
    right = _as_point_set(right_points, "right")
    n, m = len(left), len(right)
    if n == 0 or m == 0:
        return np.zeros((n, m), dtype=float)

    lines_in_right = left.homogeneous @ F.T   # row i: F @ p_l_i
    lines_in_left = right.homogeneous @ F     # row j: F^T @ p_r_j

    # residual[i, j] = p_r_j . (F @ p_l_i) = p_r_j^T F p_l_i
    residual = np.abs(lines_in_right @ right.homogeneous.T)

    norm_right = np.hypot(lines_in_right[:, 0], lines_in_right[:, 1])[:, None]
    norm_left = np.hypot(lines_in_left[:, 0], lines_in_left[:, 1])[None, :]

    with np.errstate(divide="ignore", invalid="ignore"):
        D = residual / norm_right + residual / norm_left
    degenerate = (norm_right == 0.0) | (norm_left == 0.0)
    D = np.where(degenerate, np.inf, D)

    log.debug("Distance matrix computed",
              extra={"extra": {"shape": [n, m], "degenerate_pairs": int(np.count_nonzero(degenerate))}})
    return D
