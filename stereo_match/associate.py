from __future__ import annotations
"""
Greedy one-to-one association of a left/right distance matrix.
"""

from typing import Any, List, Tuple

import numpy as np

from common.logging_setup import get_logger
from common.types import UNMATCHED, Correspondence, CorrespondenceSet


log = get_logger("stereo_match.associate")


def _check_inputs(distances: Any, max_distance: float) -> Tuple[np.ndarray, float]:
    D = np.asarray(distances, dtype=float)
    if D.ndim != 2:
        raise ValueError(f"distances must be a 2D matrix, got shape {D.shape}")
    with np.errstate(invalid="ignore"):
        if np.any(D < 0.0):
            raise ValueError("distances must be non-negative")
    try:
        thr = float(max_distance)
    except (TypeError, ValueError) as e:
        raise ValueError(f"max_distance must be a number, got {max_distance!r}") from e
    if not np.isfinite(thr) or thr < 0.0:
        raise ValueError(f"max_distance must be finite and >= 0, got {thr}")
    return D, thr


def resolve(distances: Any, max_distance: float) -> CorrespondenceSet:
    """
    Turn a distance matrix into homologous pairs.

    Pairs with distance <= max_distance are eligible. They are visited by
    ascending (distance, left index, right index); a pair is accepted when
    neither of its points is taken yet. Points left without a partner are
    reported as UNMATCHED.

    The input matrix is not modified.
    """
    D, thr = _check_inputs(distances, max_distance)
    n_left, n_right = D.shape

    # NaN and inf compare False / above any finite threshold
    with np.errstate(invalid="ignore"):
        eligible = D <= thr
    ii, jj = np.nonzero(eligible)
    dd = D[ii, jj]
    # lexsort: last key is primary
    order = np.lexsort((jj, ii, dd))

    right_of_left = np.full(n_left, UNMATCHED, dtype=int)
    left_of_right = np.full(n_right, UNMATCHED, dtype=int)
    pairs: List[Correspondence] = []
    for k in order:
        i, j = int(ii[k]), int(jj[k])
        if right_of_left[i] != UNMATCHED or left_of_right[j] != UNMATCHED:
            continue
        right_of_left[i] = j
        left_of_right[j] = i
        pairs.append(Correspondence(left=i, right=j, distance=float(dd[k])))
        if len(pairs) == min(n_left, n_right):
            break

    log.debug("Associations resolved",
              extra={"extra": {"shape": [n_left, n_right], "eligible": int(ii.size),
                               "accepted": len(pairs), "max_distance": thr}})
    return CorrespondenceSet(
        right_of_left=right_of_left,
        left_of_right=left_of_right,
        pairs=tuple(pairs),
        max_distance=thr,
    )


def mark_associations(distances: Any, max_distance: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two-array form of `resolve`: (right_homologous, left_homologous).

    right_homologous[i] is the right index matched to left point i and
    left_homologous[j] the left index matched to right point j; -1 if none.
    """
    cs = resolve(distances, max_distance)
    return cs.right_of_left.copy(), cs.left_of_right.copy()
