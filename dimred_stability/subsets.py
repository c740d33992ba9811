# subsets.py

"""
Repeated reduction of random sample subsets.

All subset index sets are drawn from one seeded JAX key before any work is
dispatched, so results do not depend on the execution order or on the
number of parallel workers.
"""

#
# Imports
#

import numpy as np
from jax import random
from joblib import Parallel, delayed
from loguru import logger
from tqdm import tqdm

from .backend import ReductionMethod, SklearnBackend
from .embedding import Embedding, SubsetRecord, as_data_matrix
from .errors import BackendFailure, InvalidSubsetSize
from .quality import assess_quality, default_neighbourhood_sizes, validate_neighbourhood_sizes

DEFAULT_SIZE = 0.8
""" Default fraction of samples drawn per subset """

DEFAULT_NR_SUBSETS = 10
""" Default number of subsets """


#
# Subset draw
#
def subset_sample_count(n_samples, size):
    """
    Number of samples per subset, round(size * n_samples).

    Raises
    ------
    InvalidSubsetSize: If size is not in (0, 1] or fewer than two samples remain.
    """
    if not 0.0 < size <= 1.0:
        logger.error(f"Invalid subset size {size}")
        raise InvalidSubsetSize(f"Subset size must be in (0, 1], got {size}")
    n_drawn = int(round(size * n_samples))
    if n_drawn < 2:
        logger.error(f"Subset size {size} leaves {n_drawn} of {n_samples} samples")
        raise InvalidSubsetSize(
            f"Subset size {size} of {n_samples} samples gives {n_drawn} samples, need at least 2"
        )
    return n_drawn


def draw_subset_indices(n_samples, size, nr_subsets, rng_key):
    """
    Draw `nr_subsets` index sets without replacement.

    Parameters
    ----------
    n_samples: (int) Number of samples to draw from.
    size: (float) Fraction of samples per subset, in (0, 1].
    nr_subsets: (int) Number of subsets.
    rng_key: (jax.random.PRNGKey) Key for the draw.

    Returns
    -------
    list of numpy.ndarray: Sorted row indices of each subset.
    """
    if nr_subsets < 1:
        raise ValueError(f"nr_subsets must be a positive integer, got {nr_subsets}")
    n_drawn = subset_sample_count(n_samples, size)

    keys = random.split(rng_key, nr_subsets)
    return [
        np.sort(np.asarray(random.choice(key, n_samples, shape=(n_drawn,), replace=False)))
        for key in keys
    ]


#
# Per-subset work
#
def _reduce_subset(index, rows, data, sample_ids, method, config, backend, neighbourhood_sizes):
    """
    Reduce one subset and assess the embedding against the subset's own data.
    """
    subset_data = data[rows]
    subset_ids = sample_ids[rows]
    try:
        coordinates, backend_result = backend.reduce(
            subset_data,
            method,
            config["target_dim"],
            config.get("neighbour_count"),
            config.get("params"),
        )
        coordinates = np.asarray(coordinates, dtype=np.float64)
        if coordinates.ndim == 1:
            coordinates = coordinates[:, None]
        if coordinates.shape[0] != len(rows):
            raise ValueError(
                f"Backend returned {coordinates.shape[0]} rows for {len(rows)} samples"
            )
    except Exception as e:
        logger.warning(f"Subset {index}: {method.value} failed with {e!r}")
        return SubsetRecord(index, subset_ids, error=BackendFailure(e, method=method.value, subset=index))

    embedding = Embedding(subset_ids, coordinates, method.value, config.get("params"))
    quality = assess_quality(subset_data, coordinates, neighbourhood_sizes)
    return SubsetRecord(index, subset_ids, embedding, quality, backend_result)


def generate_subsets(
    data,
    seed,
    size=DEFAULT_SIZE,
    nr_subsets=DEFAULT_NR_SUBSETS,
    method="PCA",
    config=None,
    backend=None,
    *,
    sample_ids=None,
    neighbourhood_sizes=None,
    rng_key=None,
    n_jobs=1,
    parallel_backend="loky",
    return_failures=False,
):
    """
    Reduce `nr_subsets` random subsets of the samples.

    Parameters
    ----------
    data: (numpy.ndarray or pandas.DataFrame) Data of shape (n_samples, n_features).
    seed: (int) Seed of the subset draw; ignored when `rng_key` is given.
    size: (float) Fraction of samples per subset, in (0, 1], default 0.8.
    nr_subsets: (int) Number of subsets, default 10.
    method: (ReductionMethod or str) Reduction method, default 'PCA'.
    config: (dict or None) Reduction configuration:
        - 'target_dim': number of components (default min(subset size, n_features));
        - 'neighbour_count': neighbourhood size for the method (optional);
        - 'params': method-specific parameters (optional).
    backend: (ReductionBackend) Backend performing the reductions; defaults to
        `SklearnBackend(random_state=seed)`.
    sample_ids: (sequence or None) Identifiers of the rows of an array input.
    neighbourhood_sizes: (sequence of int or None) Sizes for trustworthiness and
        continuity; default 1%..5% of the subset size.
    rng_key: (jax.random.PRNGKey or None) Explicit key for the subset draw.
    n_jobs: (int) Number of parallel workers (joblib), default 1.
    parallel_backend: (str) joblib backend, default 'loky'.
    return_failures: (bool) If True, failed subsets are returned as records
        carrying their error; if False (default) the first failure is raised
        once all subsets have been processed.

    Returns
    -------
    list of SubsetRecord: One record per subset, in subset order.

    Raises
    ------
    InvalidSubsetSize: If `size` is invalid for the number of samples.
    InvalidNeighbourhoodSize: If a neighbourhood size is invalid for the subset size.
    BackendFailure: If a reduction failed and `return_failures` is False.
    """
    matrix, ids = as_data_matrix(data, sample_ids)
    n_samples, n_features = matrix.shape
    method = ReductionMethod.from_name(method)

    n_drawn = subset_sample_count(n_samples, size)
    if neighbourhood_sizes is None:
        neighbourhood_sizes = default_neighbourhood_sizes(n_drawn)
    neighbourhood_sizes = validate_neighbourhood_sizes(neighbourhood_sizes, n_drawn)

    config = dict(config or {})
    config.setdefault("target_dim", min(n_drawn, n_features))
    if backend is None:
        backend = SklearnBackend(random_state=seed)
    if rng_key is None:
        rng_key = random.PRNGKey(seed)

    subsets = draw_subset_indices(n_samples, size, nr_subsets, rng_key)
    logger.info(
        f"Reducing {nr_subsets} subsets of {n_drawn}/{n_samples} samples with {method.value}"
    )

    args = (matrix, ids, method, config, backend, neighbourhood_sizes)
    if n_jobs == 1:
        records = [
            _reduce_subset(i, rows, *args)
            for i, rows in enumerate(tqdm(subsets, desc="subsets"), start=1)
        ]
    else:
        records = Parallel(n_jobs=n_jobs, backend=parallel_backend)(
            delayed(_reduce_subset)(i, rows, *args) for i, rows in enumerate(subsets, start=1)
        )

    failed = [record for record in records if not record.ok]
    if failed:
        logger.warning(f"{len(failed)} of {nr_subsets} subset reductions failed")
        if not return_failures:
            raise failed[0].error from failed[0].error.original

    return records
