# test_correlation.py

"""
Tests for component correlation and the stability threshold sweep.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import unittest

import numpy as np

from dimred_stability import (DEFAULT_THRESHOLDS, Embedding, InsufficientSamples, NoOverlap,
                              compare_sets, correlate_components, count_stable)
from dimred_stability.correlation import stability_statistic


class TestCompareSets(unittest.TestCase):
    """Tests for comparing two embeddings component by component."""

    def setUp(self):
        rng = np.random.RandomState(1)
        self.coords1 = rng.randn(5, 3)
        self.set1 = Embedding(["A", "B", "C", "D", "E"], self.coords1, "PCA")
        coords2 = np.vstack([self.coords1[2:], rng.randn(1, 3)])
        self.set2 = Embedding(["C", "D", "E", "F"], coords2, "PCA")

    def test_shared_samples_with_identical_values(self):
        """Identical values on the shared samples give a unit diagonal."""
        result = compare_sets(self.set1, self.set2)

        self.assertEqual(result.correlation.shape, (3, 3))
        self.assertEqual(list(result.correlation.index), ["DR1", "DR2", "DR3"])
        self.assertEqual(list(result.aligned.ids), ["C", "D", "E"])
        np.testing.assert_allclose(np.diag(result.correlation.to_numpy()), 1.0, atol=1e-12)
        self.assertIsNone(result.procrustes_disparity)

        # off-diagonal entries are the correlations among set1's own components
        expected = np.corrcoef(self.coords1[2:], rowvar=False)
        np.testing.assert_allclose(result.correlation.to_numpy(), expected, atol=1e-12)

    def test_with_procrustes(self):
        """A rotated copy is recovered by Procrustes alignment."""
        rng = np.random.RandomState(3)
        coords = rng.randn(30, 3)
        rotation, _ = np.linalg.qr(rng.randn(3, 3))
        ids = [f"s{i}" for i in range(30)]
        set1 = Embedding(ids, coords, "PCA")
        set2 = Embedding(ids[::-1], (coords @ rotation)[::-1], "PCA")

        result = compare_sets(set1, set2, use_procrustes=True)

        self.assertAlmostEqual(result.procrustes_disparity, 0.0, places=10)
        np.testing.assert_allclose(np.diag(result.correlation.to_numpy()), 1.0, atol=1e-8)

    def test_different_component_counts(self):
        """Correlation matrices are D1 x D2."""
        set2 = Embedding(["A", "B", "C", "D", "E"], self.coords1[:, :2], "ICA")
        result = compare_sets(self.set1, set2)
        self.assertEqual(result.correlation.shape, (3, 2))

    def test_too_few_shared_samples(self):
        """Two shared samples are not enough for a correlation."""
        set2 = Embedding(["D", "E", "X"], np.random.RandomState(0).randn(3, 3), "PCA")
        with self.assertRaises(InsufficientSamples):
            compare_sets(self.set1, set2)

    def test_no_shared_samples(self):
        """Disjoint embeddings raise NoOverlap."""
        set2 = Embedding(["X", "Y", "Z"], np.zeros((3, 3)), "PCA")
        with self.assertRaises(NoOverlap):
            compare_sets(self.set1, set2)


class TestCorrelateComponents(unittest.TestCase):
    """Tests for the column-wise Pearson correlation."""

    def test_matches_numpy(self):
        """Entries agree with numpy's correlation coefficients."""
        rng = np.random.RandomState(5)
        first, second = rng.randn(40, 3), rng.randn(40, 4)
        expected = np.corrcoef(first, second, rowvar=False)[:3, 3:]
        np.testing.assert_allclose(correlate_components(first, second), expected, atol=1e-12)

    def test_sign_flip(self):
        """A sign-flipped component correlates at -1."""
        first = np.random.RandomState(6).randn(10, 2)
        corr = correlate_components(first, -first)
        np.testing.assert_allclose(np.diag(corr), -1.0, atol=1e-12)

    def test_zero_variance_component(self):
        """A constant component correlates at 0 with everything."""
        first = np.random.RandomState(8).randn(10, 2)
        second = np.column_stack([first[:, 0], np.ones(10)])
        corr = correlate_components(first, second)
        np.testing.assert_array_equal(corr[:, 1], 0.0)
        self.assertAlmostEqual(corr[0, 0], 1.0)

    def test_insufficient_samples(self):
        """Fewer than three rows raise InsufficientSamples."""
        with self.assertRaises(InsufficientSamples):
            correlate_components(np.ones((2, 2)), np.ones((2, 2)))


class TestCountStable(unittest.TestCase):
    """Tests for the threshold sweep."""

    def setUp(self):
        self.correlation = np.array([
            [0.10, -0.95, 0.20],
            [0.85, 0.05, 0.10],
            [0.30, 0.20, 0.40],
        ])

    def test_best_match_statistic(self):
        """The statistic is the largest absolute correlation of each row."""
        np.testing.assert_allclose(stability_statistic(self.correlation), [0.95, 0.85, 0.40])

    def test_counts(self):
        """Counts of components at or above each threshold."""
        counts = count_stable(self.correlation, [0.0, 0.4, 0.5, 0.85, 0.9, 0.96])
        np.testing.assert_array_equal(counts, [3, 3, 2, 2, 1, 0])

    def test_caller_order_is_kept(self):
        """Unsorted thresholds give counts in the caller's order."""
        counts = count_stable(self.correlation, [0.9, 0.0, 0.5])
        np.testing.assert_array_equal(counts, [1, 3, 2])

    def test_monotone(self):
        """Counts do not increase along ascending thresholds."""
        rng = np.random.RandomState(11)
        for _ in range(20):
            correlation = rng.uniform(-1, 1, size=(5, 4))
            counts = count_stable(correlation, DEFAULT_THRESHOLDS)
            self.assertTrue(np.all(np.diff(counts) <= 0))

    def test_trivial_thresholds(self):
        """Threshold -1 passes every component, 1.0001 none."""
        counts = count_stable(self.correlation, [-1.0, 1.0001, 5.0, -3.0])
        np.testing.assert_array_equal(counts, [3, 0, 0, 3])

    def test_empty_matrix(self):
        """An empty correlation matrix gives all-zero counts."""
        counts = count_stable(np.zeros((0, 0)), [0.0, 0.5, 1.0])
        np.testing.assert_array_equal(counts, [0, 0, 0])

    def test_diagonal_statistic(self):
        """The diagonal statistic uses same-rank correlations only."""
        counts = count_stable(self.correlation, [0.0, 0.3], statistic="diagonal")
        np.testing.assert_array_equal(counts, [3, 1])
        with self.assertRaises(ValueError):
            count_stable(self.correlation[:, :2], [0.5], statistic="diagonal")
        with self.assertRaises(ValueError):
            count_stable(self.correlation, [0.5], statistic="median")


if __name__ == "__main__":
    unittest.main()
