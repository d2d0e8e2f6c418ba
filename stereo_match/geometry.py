from __future__ import annotations
"""
Projective geometry for a calibrated camera pair.

- vector_product_matrix: [v]x such that [v]x @ w == cross(v, w)
- derive_projection: P = K @ [I|0] @ E
- compute_fundamental: F = [P_r o_l]x @ P_r @ pinv(P_l), with p_r^T F p_l = 0
- epipoles / enforce_rank2 helpers
"""

import logging
from typing import Any, Tuple

import numpy as np

from common.logging_setup import get_logger
from common.types import CameraCalibration
from common.utils import as_matrix, to_homogeneous_4x4, to_numpy_3x3


log = get_logger("stereo_match.geometry")

# [I3 | 0]: drops the homogeneous coordinate of a camera-frame point
_REDUCTION = np.hstack([np.eye(3), np.zeros((3, 1))])


def vector_product_matrix(v: Any) -> np.ndarray:
    """
    Skew-symmetric cross-product matrix of a 3-vector.
    """
    a = np.asarray(v, dtype=float).reshape(-1)
    if a.shape != (3,):
        raise ValueError(f"vector_product_matrix expects 3 elements, got {a.size}")
    vx, vy, vz = a
    return np.array([[0.0, -vz, vy],
                     [vz, 0.0, -vx],
                     [-vy, vx, 0.0]])


def derive_projection(intrinsic: Any, extrinsic: Any) -> np.ndarray:
    """
    Build the 3x4 projection matrix of one camera.

    Args:
        intrinsic: 3x3 K
        extrinsic: 4x4 world->camera transform (3x4 [R|t] is extended)

    Returns:
        (3, 4) float64 array K @ [I|0] @ E
    """
    K = to_numpy_3x3(intrinsic, "intrinsic")
    E = to_homogeneous_4x4(extrinsic)
    return K @ _REDUCTION @ E


def camera_center(extrinsic: Any) -> np.ndarray:
    """
    Optical center in world coordinates as a homogeneous 4-vector: the last
    column of the inverted extrinsic matrix.
    """
    E = to_homogeneous_4x4(extrinsic)
    try:
        E_inv = np.linalg.inv(E)
    except np.linalg.LinAlgError as e:
        raise ValueError("extrinsic matrix is not invertible") from e
    return E_inv[:, 3]


def _require_invertible(extrinsic: Any, side: str) -> None:
    E = to_homogeneous_4x4(extrinsic, f"{side} extrinsic")
    if np.linalg.matrix_rank(E) < 4:
        raise ValueError(f"{side} extrinsic matrix is not invertible")


def enforce_rank2(F: Any) -> np.ndarray:
    """Closest rank-2 matrix (Frobenius norm): zero the smallest singular value."""
    F = to_numpy_3x3(F, "F")
    U, s, Vt = np.linalg.svd(F)
    s[2] = 0.0
    return U @ np.diag(s) @ Vt


def compute_fundamental(
    left_intrinsic: Any,
    left_extrinsic: Any,
    right_intrinsic: Any,
    right_extrinsic: Any,
    *,
    enforce_rank2_constraint: bool = False,
) -> np.ndarray:
    """
    Fundamental matrix of a calibrated pair, mapping left points to right
    epipolar lines (l_r = F @ p_l).

    The left projection matrix is 3x4, so it is inverted with the SVD
    pseudo-inverse. A near-singular result is returned as-is; pass
    enforce_rank2_constraint=True to project it onto rank 2.

    Raises:
        ValueError: wrong matrix shapes or a non-invertible extrinsic.
    """
    _require_invertible(left_extrinsic, "left")
    _require_invertible(right_extrinsic, "right")

    P_left = derive_projection(left_intrinsic, left_extrinsic)
    P_right = derive_projection(right_intrinsic, right_extrinsic)

    P_left_pinv = np.linalg.pinv(P_left)
    o_left = camera_center(left_extrinsic)

    epipole_right = P_right @ o_left
    F = vector_product_matrix(epipole_right) @ P_right @ P_left_pinv

    if enforce_rank2_constraint:
        F = enforce_rank2(F)

    if log.isEnabledFor(logging.DEBUG):
        s = np.linalg.svd(F, compute_uv=False)
        log.debug("Fundamental matrix computed",
                  extra={"extra": {"singular_values": s.tolist(), "rank2": enforce_rank2_constraint}})
    return F


def fundamental_from_calibrations(
    left: CameraCalibration,
    right: CameraCalibration,
    *,
    enforce_rank2_constraint: bool = False,
) -> np.ndarray:
    return compute_fundamental(
        left.intrinsic, left.extrinsic,
        right.intrinsic, right.extrinsic,
        enforce_rank2_constraint=enforce_rank2_constraint,
    )


def epipoles(F: Any, eps: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
    """
    Epipoles of F as homogeneous 3-vectors (e_left, e_right):
    F @ e_left ~ 0 and F.T @ e_right ~ 0.

    Normalised to w == 1 unless the epipole is at infinity (|w| <= eps).
    """
    F = as_matrix(F, (3, 3), "F")
    U, _, Vt = np.linalg.svd(F)
    e_left = Vt[-1, :].copy()
    e_right = U[:, -1].copy()
    for e in (e_left, e_right):
        if abs(e[2]) > eps:
            e /= e[2]
    return e_left, e_right
