# correlation.py

"""
Component-wise correlation of two embeddings and the threshold sweep
that turns a correlation matrix into a count of stable components.
"""

#
# Imports
#

import numpy as np
import pandas as pd
from loguru import logger

from .alignment import intersect_and_order, procrustes_align
from .embedding import AlignedPair, ComparisonResult, component_labels
from .errors import InsufficientSamples

MIN_MATCHED_SAMPLES = 3
""" Correlations over fewer matched samples are rejected """

DEFAULT_THRESHOLDS = np.round(np.arange(0.0, 1.0001, 0.05), 2)
""" Correlation thresholds 0.00, 0.05, ..., 1.00 """


#
# Pearson correlation between the columns of two matrices
#
def correlate_components(first, second):
    """
    Pearson correlation of every column of `first` with every column of `second`.

    Parameters
    ----------
    first: (numpy.ndarray) Shape (M, D1).
    second: (numpy.ndarray) Shape (M, D2), rows matched to `first`.

    Returns
    -------
    numpy.ndarray: Correlation matrix of shape (D1, D2), entries in [-1, 1].
        Entries involving a zero-variance column are 0.

    Raises
    ------
    InsufficientSamples: If M < 3.
    """
    first = np.asarray(first, dtype=np.float64)
    second = np.asarray(second, dtype=np.float64)
    if first.shape[0] != second.shape[0]:
        raise ValueError(f"Row counts differ: {first.shape[0]} vs {second.shape[0]}")

    n_samples = first.shape[0]
    if n_samples < MIN_MATCHED_SAMPLES:
        logger.error(f"Only {n_samples} matched samples, need at least {MIN_MATCHED_SAMPLES}")
        raise InsufficientSamples(
            f"Correlation needs at least {MIN_MATCHED_SAMPLES} matched samples, got {n_samples}"
        )

    first_c = first - first.mean(axis=0)
    second_c = second - second.mean(axis=0)
    norm1 = np.sqrt(np.sum(first_c ** 2, axis=0))
    norm2 = np.sqrt(np.sum(second_c ** 2, axis=0))

    flat1 = norm1 == 0.0
    flat2 = norm2 == 0.0
    if flat1.any() or flat2.any():
        logger.warning(
            f"Zero-variance components ({int(flat1.sum())} / {int(flat2.sum())}), "
            "their correlations are set to 0"
        )
    norm1[flat1] = 1.0
    norm2[flat2] = 1.0

    corr = (first_c / norm1).T @ (second_c / norm2)
    return np.clip(corr, -1.0, 1.0)


#
# Comparing two embeddings
#
def compare_sets(set1, set2, use_procrustes=False):
    """
    Correlate the components of two embeddings over their shared samples.

    Parameters
    ----------
    set1: (Embedding) First embedding, defines the sample order.
    set2: (Embedding) Second embedding.
    use_procrustes: (bool) Superimpose set2 onto set1 before correlating, default False.

    Returns
    -------
    ComparisonResult: Correlation matrix (DataFrame, set1 components x set2 components),
        the aligned pair and the Procrustes disparity (None without Procrustes).

    Raises
    ------
    NoOverlap: If the embeddings share no sample.
    InsufficientSamples: If they share fewer than three samples.
    """
    aligned = intersect_and_order(set1, set2)
    if aligned.n_samples < MIN_MATCHED_SAMPLES:
        logger.error(f"Only {aligned.n_samples} shared samples between embeddings")
        raise InsufficientSamples(
            f"Correlation needs at least {MIN_MATCHED_SAMPLES} matched samples, "
            f"got {aligned.n_samples}"
        )

    disparity = None
    if use_procrustes:
        transformed, disparity = procrustes_align(aligned.first, aligned.second)
        aligned = AlignedPair(aligned.ids, aligned.first, transformed)
        logger.debug(f"Procrustes disparity {disparity:.4g}")

    corr = correlate_components(aligned.first, aligned.second)
    correlation = pd.DataFrame(
        corr,
        index=component_labels(corr.shape[0]),
        columns=component_labels(corr.shape[1]),
    )

    return ComparisonResult(correlation, aligned, disparity)


#
# Stability statistic and threshold sweep
#
def stability_statistic(correlation, statistic="best_match"):
    """
    Per-component stability score of a correlation matrix.

    Parameters
    ----------
    correlation: (numpy.ndarray or pandas.DataFrame) Matrix of shape (D1, D2).
    statistic: (str)
        - 'best_match': max_j |correlation[i, j]|, robust to reordered or
          sign-flipped components (default);
        - 'diagonal': correlation[i, i], only for square matrices.

    Returns
    -------
    numpy.ndarray: One score per row component.
    """
    corr = np.asarray(correlation, dtype=np.float64)
    if corr.size == 0:
        return np.zeros(0, dtype=np.float64)
    if corr.ndim != 2:
        raise ValueError(f"Correlation matrix must be 2-dimensional, got shape {corr.shape}")

    if statistic == "best_match":
        return np.max(np.abs(corr), axis=1)
    if statistic == "diagonal":
        if corr.shape[0] != corr.shape[1]:
            raise ValueError(
                f"Diagonal statistic needs a square correlation matrix, got {corr.shape}"
            )
        return np.diag(corr).copy()

    raise ValueError(f'Unsupported stability statistic: "{statistic}"')


def count_stable(correlation, thresholds=DEFAULT_THRESHOLDS, statistic="best_match"):
    """
    Count the components whose stability statistic reaches each threshold.

    Parameters
    ----------
    correlation: (numpy.ndarray or pandas.DataFrame) Correlation matrix (D1, D2).
    thresholds: (sequence of float) Thresholds in any order; values outside
        [-1, 1] are allowed and give trivial counts.
    statistic: (str) See `stability_statistic`, default 'best_match'.

    Returns
    -------
    numpy.ndarray: Integer counts aligned with the given threshold order.
    """
    thresholds = np.asarray(thresholds, dtype=np.float64).ravel()
    scores = np.sort(stability_statistic(correlation, statistic))

    # sweep ascending thresholds, then restore the caller's order
    order = np.argsort(thresholds, kind="stable")
    counts_sorted = len(scores) - np.searchsorted(scores, thresholds[order], side="left")

    counts = np.empty(len(thresholds), dtype=np.int64)
    counts[order] = counts_sorted
    return counts
