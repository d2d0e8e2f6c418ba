"""
Unit tests for the greedy correspondence resolver
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import UNMATCHED
from stereo_match.associate import mark_associations, resolve


class TestResolve:
    """Test cases for resolve()"""

    def test_two_point_example(self):
        """Low-cost diagonal wins; cross pairs exceed the threshold"""
        D = np.array([[0.5, 40.0], [41.0, 0.7]])
        cs = resolve(D, 5.0)

        assert cs.as_index_pairs() == [(0, 0), (1, 1)]
        assert cs.right_of_left.tolist() == [0, 1]
        assert cs.left_of_right.tolist() == [0, 1]
        assert [c.distance for c in cs] == [0.5, 0.7]

    def test_threshold_is_inclusive(self):
        """distance == max_distance is still eligible"""
        cs = resolve(np.array([[5.0]]), 5.0)
        assert len(cs) == 1

    def test_nothing_eligible(self):
        """All distances above threshold -> empty, not an error"""
        cs = resolve(np.full((2, 3), 10.0), 1.0)
        assert len(cs) == 0
        assert cs.unmatched_left() == [0, 1]
        assert cs.unmatched_right() == [0, 1, 2]

    def test_injective(self):
        """No index is used twice even when it is everyone's best partner"""
        D = np.array([[0.1, 3.0], [0.2, 4.0], [0.3, 0.4]])
        cs = resolve(D, 5.0)

        lefts = [c.left for c in cs]
        rights = [c.right for c in cs]
        assert len(set(lefts)) == len(lefts)
        assert len(set(rights)) == len(rights)
        assert cs.as_index_pairs() == [(0, 0), (2, 1)]
        assert cs.right_for(1) is None

    def test_greedy_order_not_optimal_sum(self):
        """Greedy takes the globally smallest pair first"""
        D = np.array([[1.0, 2.0], [2.0, 100.0]])
        cs = resolve(D, 200.0)
        assert cs.as_index_pairs() == [(0, 0), (1, 1)]

    def test_ties_broken_by_left_then_right_index(self):
        """Equal distances: lowest left index, then lowest right index"""
        cs = resolve(np.ones((2, 2)), 2.0)
        assert cs.as_index_pairs() == [(0, 0), (1, 1)]

        cs = resolve(np.array([[2.0, 1.0], [1.0, 5.0]]), 10.0)
        assert cs.as_index_pairs() == [(0, 1), (1, 0)]

        cs = resolve(np.array([[1.0, 1.0], [5.0, 5.0]]), 10.0)
        assert cs.as_index_pairs() == [(0, 0), (1, 1)]

    def test_inf_and_nan_never_eligible(self):
        """Degenerate (+inf) and NaN scores are skipped"""
        D = np.array([[np.inf, 1.0], [np.nan, np.inf]])
        cs = resolve(D, 1e9)
        assert cs.as_index_pairs() == [(0, 1)]
        assert cs.left_for(0) is None

    def test_every_pair_within_threshold(self):
        """Random matrices: accepted pairs respect threshold and injectivity"""
        rng = np.random.default_rng(3)
        for _ in range(20):
            D = rng.uniform(0.0, 10.0, size=(rng.integers(1, 8), rng.integers(1, 8)))
            thr = float(rng.uniform(0.0, 10.0))
            cs = resolve(D, thr)
            for c in cs:
                assert c.distance <= thr
                assert D[c.left, c.right] == c.distance
                assert cs.right_of_left[c.left] == c.right
                assert cs.left_of_right[c.right] == c.left
            assert len({c.left for c in cs}) == len(cs)
            assert len({c.right for c in cs}) == len(cs)

    def test_matching_is_maximal(self):
        """No eligible pair is left with both endpoints free"""
        rng = np.random.default_rng(4)
        D = rng.uniform(0.0, 10.0, size=(6, 5))
        cs = resolve(D, 6.0)
        for i in cs.unmatched_left():
            for j in cs.unmatched_right():
                assert D[i, j] > 6.0

    @pytest.mark.parametrize("shape", [(0, 0), (0, 4), (3, 0)])
    def test_empty_matrix(self, shape):
        """Empty distance matrix yields an empty set"""
        cs = resolve(np.zeros(shape), 5.0)
        assert len(cs) == 0
        assert cs.right_of_left.shape == (shape[0],)
        assert cs.left_of_right.shape == (shape[1],)

    def test_input_not_modified(self):
        """resolve() is a pure function of its inputs"""
        D = np.array([[0.5, 40.0], [41.0, 0.7]])
        D_copy = D.copy()
        resolve(D, 5.0)
        np.testing.assert_array_equal(D, D_copy)

    def test_deterministic(self):
        """Same input, same output"""
        D = np.random.default_rng(5).uniform(0, 3, size=(5, 5))
        assert resolve(D, 2.0).to_dict() == resolve(D, 2.0).to_dict()

    @pytest.mark.parametrize("max_distance", [-1.0, float("nan"), float("inf"), "far"])
    def test_bad_threshold_raises(self, max_distance):
        """max_distance must be a finite non-negative number"""
        with pytest.raises(ValueError):
            resolve(np.zeros((1, 1)), max_distance)

    @pytest.mark.parametrize("bad", [-0.5, -np.inf])
    def test_negative_distance_raises(self, bad):
        """Distance matrices are non-negative"""
        D = np.array([[0.2, bad], [1.0, 0.3]])
        with pytest.raises(ValueError, match="non-negative"):
            resolve(D, 1.0)
        with pytest.raises(ValueError):
            mark_associations(D, 1.0)

    def test_non_matrix_raises(self):
        """distances must be 2D"""
        with pytest.raises(ValueError):
            resolve(np.zeros(3), 1.0)

    def test_to_dict_is_json_safe(self):
        """to_dict() holds plain Python types"""
        import json

        d = resolve(np.array([[0.5, 40.0], [41.0, 0.7]]), 5.0).to_dict()
        assert json.loads(json.dumps(d)) == d
        assert d["pairs"][0] == {"left": 0, "right": 0, "distance": 0.5}


class TestMarkAssociations:
    """Test cases for the two-array form"""

    def test_returns_both_directions(self):
        """right_homologous per left point, left_homologous per right point"""
        D = np.array([[9.0, 0.2, 8.0], [0.1, 9.0, 9.0]])
        right_h, left_h = mark_associations(D, 1.0)
        assert right_h.tolist() == [1, 0]
        assert left_h.tolist() == [1, 0, UNMATCHED]

    def test_arrays_are_writable_copies(self):
        """Callers may modify the returned arrays"""
        right_h, _ = mark_associations(np.zeros((1, 1)), 1.0)
        right_h[0] = 7
        assert right_h[0] == 7
