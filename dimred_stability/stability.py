# stability.py

"""
Provides the main class for stability assessment of dimensionality reductions.

A reduction is recomputed on random subsets of the samples; every pair of
subset embeddings is aligned on the shared samples, their components are
correlated, and the number of components whose best-matching correlation
reaches a threshold is recorded for a sweep of thresholds. Components that
stay correlated across subsets are the reproducible ones.
"""

#
# Imports
#

import itertools
import os
import sys

import numpy as np
import pandas as pd
from loguru import logger
from tqdm import tqdm

from .backend import ReductionMethod, SklearnBackend
from .correlation import DEFAULT_THRESHOLDS, compare_sets, count_stable
from .errors import InsufficientSamples, NoOverlap
from .subsets import DEFAULT_NR_SUBSETS, DEFAULT_SIZE, generate_subsets


#
# Pairwise comparison of subset embeddings
#
class StabilityEstimate:
    """
    Stable-component counts for every compared pair of subsets.

    Attributes
    ----------
    curves: pandas.DataFrame
        One row per subset pair (MultiIndex `subset_i`, `subset_j`), one column per threshold.
    comparisons: dict
        ComparisonResult of every pair, keyed by (subset_i, subset_j).
    thresholds: numpy.ndarray
        The thresholds, in the order given by the caller.
    """

    def __init__(self, curves, comparisons, thresholds):
        self.curves = curves
        self.comparisons = comparisons
        self.thresholds = thresholds

    def summary(self):
        """
        Mean and standard deviation of the stable-component count per threshold.

        Returns
        -------
        pandas.DataFrame: Indexed by threshold, columns 'mean' and 'std'.
        """
        summary = pd.DataFrame({
            "mean": self.curves.mean(axis=0),
            "std": self.curves.std(axis=0, ddof=0),
        })
        summary.index.name = "threshold"
        return summary

    def disparities(self):
        """
        Procrustes disparity of every pair (empty if Procrustes was not used).
        """
        return pd.Series(
            {pair: result.procrustes_disparity
             for pair, result in self.comparisons.items()
             if result.procrustes_disparity is not None},
            dtype=np.float64,
        )


def estimate_stability(records, thresholds=DEFAULT_THRESHOLDS, use_procrustes=False):
    """
    Compare all pairs of subset embeddings and sweep the thresholds.

    Parameters
    ----------
    records: (sequence of SubsetRecord) Output of `generate_subsets`; failed records are skipped.
    thresholds: (sequence of float) Correlation thresholds.
    use_procrustes: (bool) Superimpose each second embedding onto the first, default False.

    Returns
    -------
    StabilityEstimate: Curves of all pairs that could be compared.

    Raises
    ------
    ValueError: If fewer than two successful records are given.
    NoOverlap, InsufficientSamples: If no pair at all could be compared.
    """
    thresholds = np.asarray(thresholds, dtype=np.float64).ravel()
    usable = [record for record in records if record.ok]
    if len(usable) < 2:
        raise ValueError(f"Need at least two successful subsets, got {len(usable)}")

    pairs = list(itertools.combinations(usable, 2))
    logger.info(f"Comparing {len(pairs)} pairs of subset embeddings")

    rows, index, comparisons = [], [], {}
    last_error = None
    for first, second in tqdm(pairs, desc="pairs"):
        try:
            result = compare_sets(first.embedding, second.embedding, use_procrustes)
        except (NoOverlap, InsufficientSamples) as e:
            logger.warning(f"Skipping subsets {first.index} and {second.index}: {e}")
            last_error = e
            continue
        key = (first.index, second.index)
        comparisons[key] = result
        rows.append(count_stable(result.correlation, thresholds))
        index.append(key)

    if not rows:
        raise last_error

    curves = pd.DataFrame(
        np.vstack(rows),
        index=pd.MultiIndex.from_tuples(index, names=["subset_i", "subset_j"]),
        columns=pd.Index(thresholds, name="threshold"),
    )
    return StabilityEstimate(curves, comparisons, thresholds)


#
# Main class for stability assessment
#
class DimRedStability:
    """
    Stability assessment of a dimensionality reduction under resampling of the samples.

    Parameters
    ----------
    method: (str or ReductionMethod) Reduction method, default 'PCA'.
    n_components: (int or None) Number of components; min(subset size, n_features) if None.
    n_neighbors: (int or None) Neighbourhood size handed to neighbour-based methods.
    params: (dict or None) Method-specific parameters.
    size: (float) Fraction of samples per subset, default 0.8.
    nr_subsets: (int) Number of subsets, default 10.
    seed: (int) Seed of the subset draw (and of the default backend), default 1234.
    thresholds: (sequence of float) Correlation thresholds, default 0.00, 0.05, ..., 1.00.
    use_procrustes: (bool) Procrustes-align embeddings before correlating, default False.
    neighbourhood_sizes: (sequence of int or None) Sizes for trustworthiness and continuity.
    backend: (ReductionBackend or None) Defaults to `SklearnBackend(random_state=seed)`.
    n_jobs: (int) Parallel workers for the subset reductions, default 1.
    parallel_backend: (str) joblib backend, default 'loky'.
    my_logger: (logger.Logger or `None`)
        Custom logger; if None, the loguru logger is set up to print to stdout, default `None`.
    verbose: (bool) Logger output flag, default `True`.

    Attributes
    ----------
    records_: list of SubsetRecord
        Subset reductions of the last `fit`.
    stability_: StabilityEstimate
        Pairwise stability curves of the last `fit`.
    """

    def __init__(
        self,
        method="PCA",
        n_components=None,
        n_neighbors=None,
        params=None,
        size=DEFAULT_SIZE,
        nr_subsets=DEFAULT_NR_SUBSETS,
        seed=1234,
        thresholds=DEFAULT_THRESHOLDS,
        use_procrustes=False,
        neighbourhood_sizes=None,
        backend=None,
        n_jobs=1,
        parallel_backend="loky",
        my_logger=None,
        verbose=True,
    ):
        self.method = ReductionMethod.from_name(method)
        self.n_components = n_components
        self.n_neighbors = n_neighbors
        self.params = dict(params or {})
        self.size = size
        self.nr_subsets = nr_subsets
        self.seed = seed
        self.thresholds = np.asarray(thresholds, dtype=np.float64)
        self.use_procrustes = use_procrustes
        self.neighbourhood_sizes = neighbourhood_sizes
        self.backend = SklearnBackend(random_state=seed) if backend is None else backend
        self.n_jobs = n_jobs
        self.parallel_backend = parallel_backend
        self.records_ = None
        self.stability_ = None
        #
        if my_logger is None:
            logger.remove()
            sink = sys.stdout if verbose else open(os.devnull, "w", encoding="utf-8")
            logger.add(sink, level="INFO")
            self.logger = logger
            """ System logger """
        else:
            self.logger = my_logger

    def _config(self):
        config = {"params": self.params}
        if self.n_components is not None:
            config["target_dim"] = self.n_components
        if self.n_neighbors is not None:
            config["neighbour_count"] = self.n_neighbors
        return config

    def generate_subsets(self, data, sample_ids=None, rng_key=None):
        """
        Reduce the random subsets of `data`.

        Returns
        -------
        list of SubsetRecord: Failed subsets are returned with their error set.
        """
        self.logger.info("generate_subsets ...")
        records = generate_subsets(
            data,
            self.seed,
            self.size,
            self.nr_subsets,
            self.method,
            self._config(),
            self.backend,
            sample_ids=sample_ids,
            neighbourhood_sizes=self.neighbourhood_sizes,
            rng_key=rng_key,
            n_jobs=self.n_jobs,
            parallel_backend=self.parallel_backend,
            return_failures=True,
        )
        n_failed = sum(not record.ok for record in records)
        if n_failed:
            self.logger.warning(f"{n_failed} of {len(records)} subsets failed")
        self.logger.info("generate_subsets done ...")
        return records

    def fit(self, data, sample_ids=None, rng_key=None):
        """
        Reduce the subsets of `data` and estimate the stability of the components.

        Parameters
        ----------
        data: (numpy.ndarray or pandas.DataFrame) Data of shape (n_samples, n_features).
        sample_ids: (sequence or None) Row identifiers of an array input.
        rng_key: (jax.random.PRNGKey or None) Explicit key for the subset draw.

        Returns
        -------
        self: The fitted instance.
        """
        self.logger.info("fit ...")
        self.records_ = self.generate_subsets(data, sample_ids, rng_key)
        self.stability_ = estimate_stability(self.records_, self.thresholds, self.use_procrustes)
        self.logger.info("fit done ...")
        return self

    def stability_curve(self):
        """
        Mean and standard deviation of the stable-component count per threshold.
        """
        if self.stability_ is None:
            raise ValueError("DimRedStability is not fitted yet, call fit first")
        return self.stability_.summary()

    def quality(self):
        """
        Trustworthiness and continuity of every successful subset.

        Returns
        -------
        pandas.DataFrame: Indexed by (subset, k).
        """
        if self.records_ is None:
            raise ValueError("DimRedStability is not fitted yet, call fit first")
        frames = {record.index: record.quality.to_frame()
                  for record in self.records_ if record.ok}
        return pd.concat(frames, names=["subset"])
