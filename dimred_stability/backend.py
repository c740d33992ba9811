# backend.py

"""
Dispatch of dimensionality reduction methods to their implementations.

The stability engine only needs a `reduce` capability; `SklearnBackend`
provides it for a closed set of methods backed by scikit-learn (and
umap-learn for UMAP).
"""

#
# Imports
#

import enum

import numpy as np
from loguru import logger
from sklearn.decomposition import PCA, FastICA, KernelPCA
from sklearn.manifold import MDS, TSNE, Isomap, LocallyLinearEmbedding, SpectralEmbedding


#
# Reduction methods
#
class ReductionMethod(enum.Enum):
    """
    Closed set of supported reduction methods.
    """

    PCA = "PCA"
    KPCA = "kPCA"
    ICA = "ICA"
    MDS = "MDS"
    NMDS = "nMDS"
    ISOMAP = "Isomap"
    LLE = "LLE"
    LAPLACIAN_EIGENMAP = "LaplacianEigenmap"
    TSNE = "tSNE"
    UMAP = "UMAP"

    @classmethod
    def from_name(cls, name):
        """
        Look a method up by value or member name, ignoring case.
        """
        if isinstance(name, cls):
            return name
        key = str(name).lower()
        for method in cls:
            if key in (method.value.lower(), method.name.lower()):
                return method
        raise ValueError(
            f"Method: {name} does not exist, possible methods are: "
            + ", ".join(m.value for m in cls)
        )


# Keyword parameters accepted for each method
METHOD_PARAMS = {
    ReductionMethod.PCA: {"whiten", "svd_solver"},
    ReductionMethod.KPCA: {"kernel", "gamma", "degree", "coef0", "eigen_solver"},
    ReductionMethod.ICA: {"algorithm", "fun", "max_iter", "tol", "whiten"},
    ReductionMethod.MDS: {"n_init", "max_iter", "eps", "dissimilarity"},
    ReductionMethod.NMDS: {"n_init", "max_iter", "eps", "dissimilarity"},
    ReductionMethod.ISOMAP: {"n_neighbors", "path_method", "neighbors_algorithm", "metric"},
    ReductionMethod.LLE: {"n_neighbors", "reg", "method", "eigen_solver", "max_iter"},
    ReductionMethod.LAPLACIAN_EIGENMAP: {"n_neighbors", "affinity", "gamma", "eigen_solver"},
    ReductionMethod.TSNE: {"perplexity", "early_exaggeration", "learning_rate", "max_iter", "init", "metric"},
    ReductionMethod.UMAP: {"n_neighbors", "min_dist", "spread", "metric", "n_epochs"},
}

# Methods that take a neighbourhood size
NEIGHBOUR_METHODS = {
    ReductionMethod.ISOMAP,
    ReductionMethod.LLE,
    ReductionMethod.LAPLACIAN_EIGENMAP,
    ReductionMethod.TSNE,
    ReductionMethod.UMAP,
}


def validate_params(method, params):
    """
    Reject parameters that the method does not know.

    Returns
    -------
    dict: A copy of the parameters.
    """
    params = dict(params or {})
    unknown = set(params) - METHOD_PARAMS[method]
    if unknown:
        raise ValueError(
            f"Unsupported parameters for {method.value}: {sorted(unknown)}; "
            f"allowed: {sorted(METHOD_PARAMS[method])}"
        )
    return params


#
# Backends
#
class ReductionBackend:
    """
    Interface of a reduction backend.

    `reduce` returns the embedding as an (n_samples, target_dim) array and
    an opaque backend result. Errors raised by `reduce` are propagated to
    the caller wrapped in a BackendFailure.
    """

    def reduce(self, data, method, target_dim, neighbour_count=None, params=None):
        raise NotImplementedError


class SklearnBackend(ReductionBackend):
    """
    Reduction backend built on scikit-learn estimators.

    Parameters
    ----------
    random_state: (int) Seed handed to every stochastic estimator, default 0.
    """

    def __init__(self, random_state=0):
        self.random_state = random_state

    def reduce(self, data, method, target_dim, neighbour_count=None, params=None):
        """
        Reduce `data` to `target_dim` components.

        Parameters
        ----------
        data: (numpy.ndarray) Data of shape (n_samples, n_features).
        method: (ReductionMethod or str) Reduction method.
        target_dim: (int) Number of components, 1 <= target_dim <= min(n_samples, n_features).
        neighbour_count: (int or None) Neighbourhood size for neighbour-based
            methods (perplexity for t-SNE); estimator default when None.
        params: (dict or None) Method-specific keyword parameters.

        Returns
        -------
        numpy.ndarray, object: The embedding and the fitted estimator.
        """
        method = ReductionMethod.from_name(method)
        params = validate_params(method, params)
        data = np.asarray(data, dtype=np.float64)

        n_samples, n_features = data.shape
        if not isinstance(target_dim, (int, np.integer)) or not 1 <= target_dim <= min(n_samples, n_features):
            raise ValueError(
                f"target_dim must be an integer in [1, {min(n_samples, n_features)}], got {target_dim}"
            )

        if neighbour_count is not None and method in NEIGHBOUR_METHODS:
            if method is ReductionMethod.TSNE:
                params.setdefault("perplexity", neighbour_count)
            else:
                params.setdefault("n_neighbors", neighbour_count)

        logger.debug(f"{method.value}: {n_samples} x {n_features} -> {target_dim}")
        estimator = self._make_estimator(method, target_dim, params)
        embedding = estimator.fit_transform(data)

        return np.asarray(embedding, dtype=np.float64), estimator

    def _make_estimator(self, method, target_dim, params):
        seed = self.random_state

        if method is ReductionMethod.PCA:
            return PCA(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.KPCA:
            return KernelPCA(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.ICA:
            params.setdefault("fun", "logcosh")
            return FastICA(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.MDS:
            return MDS(n_components=target_dim, metric=True, random_state=seed, **params)
        if method is ReductionMethod.NMDS:
            return MDS(n_components=target_dim, metric=False, random_state=seed, **params)
        if method is ReductionMethod.ISOMAP:
            return Isomap(n_components=target_dim, **params)
        if method is ReductionMethod.LLE:
            return LocallyLinearEmbedding(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.LAPLACIAN_EIGENMAP:
            return SpectralEmbedding(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.TSNE:
            return TSNE(n_components=target_dim, random_state=seed, **params)
        if method is ReductionMethod.UMAP:
            # optional dependency
            import umap
            return umap.UMAP(n_components=target_dim, random_state=seed, **params)

        raise ValueError(f"Unsupported reduction method: {method}")
