"""
Shared fixtures: a calibrated two-camera rig and a small 3D scene whose
projections have well separated image rows.
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from common.types import CameraCalibration


K = np.array([[800.0, 0.0, 320.0],
              [0.0, 800.0, 240.0],
              [0.0, 0.0, 1.0]])


def rot_y(a: float) -> np.ndarray:
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rigid(R: np.ndarray, t) -> np.ndarray:
    E = np.eye(4)
    E[:3, :3] = R
    E[:3, 3] = np.asarray(t, dtype=float)
    return E


def project(intrinsic: np.ndarray, extrinsic: np.ndarray, X: np.ndarray) -> np.ndarray:
    """World points (N,3) -> pixel coordinates (N,2)."""
    Xh = np.hstack([X, np.ones((X.shape[0], 1))])
    cam = (extrinsic @ Xh.T)[:3]
    uvw = intrinsic @ cam
    return (uvw[:2] / uvw[2]).T


@pytest.fixture
def left_calib() -> CameraCalibration:
    return CameraCalibration(intrinsic=K, extrinsic=np.eye(4), camera_id="left")


@pytest.fixture
def right_calib() -> CameraCalibration:
    return CameraCalibration(
        intrinsic=K,
        extrinsic=rigid(rot_y(np.radians(-5.0)), [-0.12, 0.0, 0.0]),
        camera_id="right",
    )


@pytest.fixture
def scene() -> np.ndarray:
    # y projections are >= 25 px apart in both views
    return np.array([
        [-0.6, -0.9, 4.0],
        [0.4, -0.6, 5.0],
        [-0.2, -0.3, 4.5],
        [0.7, 0.0, 6.0],
        [-0.5, 0.3, 5.5],
        [0.1, 0.6, 4.2],
        [0.5, 0.9, 5.0],
    ])
