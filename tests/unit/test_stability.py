# test_stability.py

"""
Tests for the DimRedStability class and the pairwise stability estimate.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import unittest

import numpy as np

from dimred_stability import DimRedStability, Embedding, estimate_stability, generate_subsets
from dimred_stability.embedding import SubsetRecord


class TestDimRedStability(unittest.TestCase):
    """Tests for the stability assessment of PCA on low-rank data."""

    def setUp(self):
        self.n_samples = 60
        self.n_features = 10
        self.random_state = 42
        rng = np.random.RandomState(self.random_state)
        # two dominant directions with well separated variances, then isotropic noise
        latent = rng.randn(self.n_samples, 2) * np.array([10.0, 3.0])
        basis, _ = np.linalg.qr(rng.randn(self.n_features, 2))
        self.X = latent @ basis.T + 0.1 * rng.randn(self.n_samples, self.n_features)
        self.thresholds = [0.0, 0.5, 0.9, 1.0001]

    def make_stability(self, **kwargs):
        return DimRedStability(
            method="PCA",
            n_components=3,
            size=0.8,
            nr_subsets=5,
            seed=self.random_state,
            thresholds=self.thresholds,
            verbose=False,
            **kwargs,
        )

    def test_init(self):
        """Constructor stores the configuration."""
        stab = self.make_stability()
        self.assertEqual(stab.method.value, "PCA")
        self.assertEqual(stab.nr_subsets, 5)
        self.assertIsNone(stab.records_)

    def test_fit(self):
        """All subset pairs are compared and the leading components are stable."""
        stab = self.make_stability().fit(self.X)

        curves = stab.stability_.curves
        self.assertEqual(curves.shape, (10, 4))
        self.assertEqual(list(curves.index.names), ["subset_i", "subset_j"])
        np.testing.assert_array_equal(curves[0.0], 3)
        np.testing.assert_array_equal(curves[1.0001], 0)
        self.assertTrue(np.all(curves[0.9] >= 2))

        summary = stab.stability_curve()
        self.assertEqual(list(summary.columns), ["mean", "std"])
        self.assertEqual(summary.loc[0.0, "mean"], 3)
        self.assertTrue(np.all(np.diff(summary["mean"].to_numpy()) <= 0))

    def test_quality(self):
        """Quality of every subset is available per neighbourhood size."""
        stab = self.make_stability(neighbourhood_sizes=[3, 5]).fit(self.X)
        quality = stab.quality()
        self.assertEqual(quality.shape, (10, 2))
        self.assertTrue(np.all(quality["trustworthiness"] > 0.9))

    def test_procrustes(self):
        """With Procrustes alignment a disparity is reported for every pair."""
        stab = self.make_stability(use_procrustes=True).fit(self.X)
        disparities = stab.stability_.disparities()
        self.assertEqual(len(disparities), 10)
        self.assertTrue(np.all(disparities >= 0.0))

    def test_reproducible(self):
        """Two fits with the same seed agree."""
        first = self.make_stability().fit(self.X).stability_.curves
        second = self.make_stability().fit(self.X).stability_.curves
        np.testing.assert_array_equal(first.to_numpy(), second.to_numpy())

    def test_not_fitted(self):
        """Results are not available before fit."""
        with self.assertRaises(ValueError):
            self.make_stability().stability_curve()


class TestEstimateStability(unittest.TestCase):
    """Tests for estimate_stability on hand-made records."""

    def make_record(self, index, ids, coords):
        return SubsetRecord(index, ids, Embedding(ids, coords, "PCA"))

    def test_needs_two_records(self):
        """At least two successful records are required."""
        record = self.make_record(1, ["a", "b", "c"], np.eye(3))
        with self.assertRaises(ValueError):
            estimate_stability([record])

    def test_pairs_without_overlap_are_skipped(self):
        """Pairs that cannot be compared are left out of the curves."""
        rng = np.random.RandomState(0)
        coords = rng.randn(5, 2)
        records = [
            self.make_record(1, list("abcde"), coords),
            self.make_record(2, list("abcde"), -coords),
            self.make_record(3, list("vwxyz"), coords),
        ]
        estimate = estimate_stability(records, thresholds=[0.99])
        self.assertEqual(list(estimate.curves.index), [(1, 2)])
        self.assertEqual(estimate.curves.iloc[0, 0], 2)

    def test_failed_records_are_ignored(self):
        """Records carrying an error take no part in the comparison."""
        data = np.random.RandomState(1).randn(20, 4)
        records = generate_subsets(data, 0, 0.9, 3, "PCA", {"target_dim": 2})
        records.append(SubsetRecord(4, records[0].sample_ids, error=RuntimeError("boom")))
        estimate = estimate_stability(records)
        self.assertEqual(len(estimate.curves), 3)


if __name__ == "__main__":
    unittest.main()
