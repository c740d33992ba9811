# reduction.py

"""
Dimensionality reduction of a full dataset with one or several methods,
each result accompanied by its trustworthiness and continuity.
"""

#
# Imports
#

from loguru import logger

from .backend import ReductionMethod, SklearnBackend
from .embedding import Embedding, as_data_matrix
from .errors import BackendFailure
from .quality import assess_quality, default_neighbourhood_sizes, validate_neighbourhood_sizes


class ReductionResult:
    """
    Embedding of a dataset together with its quality metric.
    """

    def __init__(self, embedding, quality, backend_result=None):
        self.embedding = embedding
        self.quality = quality
        self.backend_result = backend_result
        """ Whatever the backend returned besides the coordinates (e.g. the fitted estimator) """

    def __repr__(self):
        return f"ReductionResult({self.embedding!r}, {self.quality!r})"


def _params_for(method, params):
    """
    Parameters of one method from either a shared dict or a dict keyed by method name.
    """
    if params and set(params) <= {m.value for m in ReductionMethod}:
        return params.get(method.value)
    return params


def compute_dim_reduction(data, methods, target_dim=None, neighbour_count=None, params=None,
                          backend=None, neighbourhood_sizes=None, sample_ids=None):
    """
    Reduce a dataset with each of the given methods.

    Parameters
    ----------
    data: (numpy.ndarray or pandas.DataFrame) Data of shape (n_samples, n_features).
    methods: (str, ReductionMethod or sequence of them) Reduction method(s).
    target_dim: (int or None) Components to keep; min(n_samples, n_features) if None.
    neighbour_count: (int or None) Neighbourhood size for neighbour-based methods.
    params: (dict or None) Method parameters; with several methods, either one
        dict applied to all or a dict keyed by method name.
    backend: (ReductionBackend or None) Defaults to `SklearnBackend()`.
    neighbourhood_sizes: (sequence of int or None) Sizes for trustworthiness and
        continuity; default 1%..5% of n_samples.
    sample_ids: (sequence or None) Row identifiers of an array input.

    Returns
    -------
    ReductionResult or dict: A single result for a single method, otherwise
        a dict of results keyed by method name.

    Raises
    ------
    BackendFailure: If a reduction fails.
    """
    matrix, ids = as_data_matrix(data, sample_ids)
    n_samples, n_features = matrix.shape

    single = isinstance(methods, (str, ReductionMethod))
    methods = [ReductionMethod.from_name(m) for m in ([methods] if single else methods)]

    if target_dim is None:
        target_dim = min(n_samples, n_features)
    if neighbourhood_sizes is None:
        neighbourhood_sizes = default_neighbourhood_sizes(n_samples)
    neighbourhood_sizes = validate_neighbourhood_sizes(neighbourhood_sizes, n_samples)
    if backend is None:
        backend = SklearnBackend()

    results = {}
    for method in methods:
        logger.info(f"Running dimensionality reduction: {method.value}")
        method_params = _params_for(method, params)

        try:
            coordinates, backend_result = backend.reduce(
                matrix, method, target_dim, neighbour_count, method_params
            )
            embedding = Embedding(ids, coordinates, method.value, method_params)
        except Exception as e:
            logger.error(f"{method.value} failed: {e!r}")
            raise BackendFailure(e, method=method.value) from e

        quality = assess_quality(matrix, embedding.coordinates, neighbourhood_sizes)
        results[method.value] = ReductionResult(embedding, quality, backend_result)

    if single:
        return results[methods[0].value]
    return results
