# quality.py

"""
Local-structure quality of an embedding: trustworthiness and continuity.

Both metrics compare, for every sample, the rank of every other sample by
distance in the original space and in the reduced space. This needs the
full (N, N) distance and rank matrices in both spaces, i.e. O(N^2) memory
and O(N^2 log N) time, and is the dominant cost of the whole stability
assessment for large N.
"""

#
# Imports
#

import jax
import jax.numpy as jnp
import numpy as np
from jax import jit
from loguru import logger

from .embedding import QualityMetric
from .errors import InvalidNeighbourhoodSize

#
# Double precision support
#
jax.config.update("jax_enable_x64", True)


#
# Distance ranks
#
@jit
def rank_matrix(points):
    """
    Rank of every sample as seen from every other sample, by Euclidean distance.

    Parameters
    ----------
    points: (jax.numpy.ndarray) Data points, shape (n_samples, n_features).

    Returns
    -------
    jax.numpy.ndarray: Integer matrix R of shape (n_samples, n_samples) with
        R[i, i] = 0 and R[i, j] in 1..n_samples-1 the rank of j among the
        neighbours of i. Ties are broken by sample index.
    """
    n_samples = points.shape[0]
    distances = jnp.linalg.norm(points[:, None, :] - points[None, :, :], axis=-1)
    # self always comes first
    distances = jnp.where(jnp.eye(n_samples, dtype=bool), -1.0, distances)
    order = jnp.argsort(distances, axis=1, stable=True)
    return jnp.argsort(order, axis=1, stable=True)


def _max_penalty(n_samples, k):
    """
    Largest attainable sum of excess ranks for neighbourhood size k.
    """
    if k < n_samples / 2:
        return n_samples * k * (2 * n_samples - 3 * k - 1) / 2.0
    return n_samples * (n_samples - k) * (n_samples - k - 1) / 2.0


def _rank_penalty(ranks_kept, ranks_reference, k):
    """
    Sum over all samples of the excess rank (in `ranks_reference`) of the k
    nearest neighbours according to `ranks_kept`.
    """
    in_neighbourhood = (ranks_kept >= 1) & (ranks_kept <= k)
    excess = jnp.maximum(ranks_reference - k, 0)
    return float(jnp.sum(jnp.where(in_neighbourhood, excess, 0)))


def validate_neighbourhood_sizes(neighbourhood_sizes, n_samples):
    """
    Check that every neighbourhood size k satisfies 1 <= k <= n_samples - 2.

    Returns
    -------
    list: The sizes as Python integers.

    Raises
    ------
    InvalidNeighbourhoodSize: For the first offending size.
    """
    sizes = [int(k) for k in np.atleast_1d(neighbourhood_sizes)]
    for k in sizes:
        if k < 1 or k >= n_samples - 1:
            logger.error(f"Neighbourhood size {k} invalid for {n_samples} samples")
            raise InvalidNeighbourhoodSize(
                f"Neighbourhood size must be in [1, {n_samples - 2}] for {n_samples} samples, got {k}"
            )
    return sizes


def default_neighbourhood_sizes(n_samples):
    """
    Neighbourhood sizes at 1%, 2%, ..., 5% of the samples, keeping only valid
    and distinct sizes. May be empty for very small sample counts.
    """
    sizes = np.round(np.arange(1, 6) * n_samples / 100.0).astype(int)
    return sorted({int(k) for k in sizes if 1 <= k <= n_samples - 2})


#
# Trustworthiness and continuity
#
def assess_quality(original, reduced, neighbourhood_sizes):
    """
    Trustworthiness and continuity of `reduced` with respect to `original`.

    Trustworthiness(k) penalises samples that are among the k nearest
    neighbours in the reduced space but not in the original space;
    continuity(k) penalises true k nearest neighbours that are pushed out of
    the reduced neighbourhood. Each penalty is the excess rank over k,
    summed over all samples and normalised by its maximum, so both metrics
    lie in [0, 1] with 1 meaning no rank violation.

    Parameters
    ----------
    original: (numpy.ndarray) High-dimensional data, shape (n_samples, n_features).
    reduced: (numpy.ndarray) Embedding of the same samples, shape (n_samples, n_components).
    neighbourhood_sizes: (sequence of int) Sizes k with 1 <= k <= n_samples - 2.

    Returns
    -------
    QualityMetric: One trustworthiness and one continuity value per size.

    Raises
    ------
    InvalidNeighbourhoodSize: If a size is out of range.
    """
    original = np.asarray(original, dtype=np.float64)
    reduced = np.asarray(reduced, dtype=np.float64)
    if reduced.ndim == 1:
        reduced = reduced[:, None]
    if original.shape[0] != reduced.shape[0]:
        raise ValueError(
            f"Original and reduced data differ in samples: {original.shape[0]} vs {reduced.shape[0]}"
        )

    n_samples = original.shape[0]
    sizes = validate_neighbourhood_sizes(neighbourhood_sizes, n_samples)
    if not sizes:
        return QualityMetric([], [], [])

    logger.debug(f"Ranking {n_samples} samples in {original.shape[1]} and {reduced.shape[1]} dimensions")
    ranks_original = rank_matrix(jnp.asarray(original))
    ranks_reduced = rank_matrix(jnp.asarray(reduced))

    trust, cont = [], []
    for k in sizes:
        norm = _max_penalty(n_samples, k)
        trust.append(1.0 - _rank_penalty(ranks_reduced, ranks_original, k) / norm)
        cont.append(1.0 - _rank_penalty(ranks_original, ranks_reduced, k) / norm)

    return QualityMetric(sizes, trust, cont)


def trustworthiness(original, reduced, n_neighbors):
    """
    Trustworthiness of `reduced` for a single neighbourhood size.
    """
    return float(assess_quality(original, reduced, [n_neighbors]).trustworthiness[0])


def continuity(original, reduced, n_neighbors):
    """
    Continuity of `reduced` for a single neighbourhood size.
    """
    return float(assess_quality(original, reduced, [n_neighbors]).continuity[0])
