# FILE: stereo_match/__init__.py
"""
Stereo Match — homologous interest points between two calibrated views

This package provides:
- Fundamental matrix from per-camera intrinsic/extrinsic calibration
- Symmetric epipolar distance between every left/right candidate pair
- Greedy one-to-one association under a maximum-distance threshold
- Shi-Tomasi corner extraction and a small CLI pipeline writing a JSON report

Entry point:
    python -m stereo_match.pipeline --config config/params.yaml --left L.png --right R.png
"""
from .associate import mark_associations, resolve
from .epipolar import compute_distances
from .geometry import compute_fundamental, derive_projection, vector_product_matrix

__all__ = [
    "compute_distances",
    "compute_fundamental",
    "derive_projection",
    "mark_associations",
    "resolve",
    "vector_product_matrix",
]
