from __future__ import annotations

import functools
import time
from typing import Any, Callable, Tuple, TypeVar

import numpy as np


T = TypeVar("T")


def as_matrix(x: Any, shape: Tuple[int, ...], name: str = "matrix") -> np.ndarray:
    """
    Return `x` as a float64 numpy array of exactly `shape` (always a copy).

    Raises ValueError on a shape mismatch or non-finite entries.
    """
    a = np.array(x, dtype=float)
    if a.shape != tuple(shape):
        raise ValueError(f"{name} must be {'x'.join(map(str, shape))}, got shape {a.shape}")
    if not np.all(np.isfinite(a)):
        raise ValueError(f"{name} contains NaN or infinite values")
    return a


def to_numpy_3x3(x: Any, name: str = "matrix") -> np.ndarray:
    """Ensure input is a 3x3 float64 numpy array (copy)."""
    return as_matrix(x, (3, 3), name)


def to_homogeneous_4x4(x: Any, name: str = "extrinsic") -> np.ndarray:
    """
    Accept a 4x4 rigid transform or a 3x4 [R|t] block and return a 4x4 copy.
    A 3x4 input gets the bottom row [0, 0, 0, 1].
    """
    a = np.array(x, dtype=float)
    if a.shape == (3, 4):
        a = np.vstack([a, [0.0, 0.0, 0.0, 1.0]])
    return as_matrix(a, (4, 4), name)


def timer_ms(func: Callable[..., T]) -> Callable[..., Tuple[T, float]]:
    """
    Decorator that returns (result, elapsed_ms); the pipeline uses it for
    per-stage latency.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        t0 = time.perf_counter()
        out = func(*args, **kwargs)
        dt_ms = (time.perf_counter() - t0) * 1e3
        return out, dt_ms
    return wrapper
