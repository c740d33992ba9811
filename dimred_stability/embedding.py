# embedding.py

"""
Containers passed between the stages of the stability assessment.
"""

#
# Imports
#

import numpy as np
import pandas as pd


#
# Helpers
#


def component_labels(n_components):
    """
    Column labels DR1..DRk used for every reduced coordinate matrix.
    """
    return [f"DR{i}" for i in range(1, n_components + 1)]


def as_data_matrix(data, sample_ids=None):
    """
    Split input data into a float64 matrix and its sample identifiers.

    Parameters
    ----------
    data: (numpy.ndarray or pandas.DataFrame) Data of shape (n_samples, n_features).
    sample_ids: (sequence or None) Identifiers for the rows of an array input.
        For a DataFrame the index is used; for an array the default is 0..n_samples-1.

    Returns
    -------
    numpy.ndarray, pandas.Index: The data matrix and the sample identifiers.
    """
    if isinstance(data, pd.DataFrame):
        ids = data.index if sample_ids is None else pd.Index(sample_ids)
        matrix = data.to_numpy(dtype=np.float64)
    else:
        matrix = np.asarray(data, dtype=np.float64)
        ids = pd.RangeIndex(matrix.shape[0]) if sample_ids is None else pd.Index(sample_ids)

    if matrix.ndim != 2:
        raise ValueError(f"Data must be a 2-dimensional matrix, got shape {matrix.shape}")
    if len(ids) != matrix.shape[0]:
        raise ValueError(f"Got {len(ids)} sample identifiers for {matrix.shape[0]} rows")
    if not ids.is_unique:
        raise ValueError("Sample identifiers must be unique")

    return matrix, ids


#
# Reduced coordinates indexed by sample identifier
#


class Embedding:
    """
    Low-dimensional coordinates of a set of samples, produced by one reduction run.

    Parameters
    ----------
    sample_ids: (sequence) Unique identifier of each row.
    coordinates: (numpy.ndarray) Reduced coordinates, shape (n_samples, n_components).
    method: (str) Name of the reduction method.
    params: (dict or None) Parameters used for the reduction.

    Instances are immutable: the coordinate array is a read-only copy.
    """

    def __init__(self, sample_ids, coordinates, method, params=None):
        coordinates = np.array(coordinates, dtype=np.float64)
        if coordinates.ndim == 1:
            coordinates = coordinates[:, None]
        if coordinates.ndim != 2 or coordinates.shape[1] < 1:
            raise ValueError(f"Embedding needs at least one component, got shape {coordinates.shape}")

        ids = pd.Index(sample_ids)
        if len(ids) != coordinates.shape[0]:
            raise ValueError(
                f"Embedding has {coordinates.shape[0]} rows but {len(ids)} sample identifiers"
            )
        if not ids.is_unique:
            raise ValueError("Embedding sample identifiers must be unique")

        coordinates.flags.writeable = False
        self._ids = ids
        self._coordinates = coordinates
        self._method = method
        self._params = dict(params or {})

    @property
    def sample_ids(self):
        """ Sample identifiers, in row order """
        return self._ids

    @property
    def coordinates(self):
        """ Read-only coordinate matrix """
        return self._coordinates

    @property
    def method(self):
        return self._method

    @property
    def params(self):
        return dict(self._params)

    @property
    def n_samples(self):
        return self._coordinates.shape[0]

    @property
    def n_components(self):
        return self._coordinates.shape[1]

    @property
    def components(self):
        return component_labels(self.n_components)

    def to_frame(self):
        """
        Coordinates as a DataFrame indexed by sample identifier, columns DR1..DRk.
        """
        return pd.DataFrame(self._coordinates, index=self._ids, columns=self.components)

    def __repr__(self):
        return (f"Embedding(method={self._method!r}, n_samples={self.n_samples}, "
                f"n_components={self.n_components})")


class AlignedPair:
    """
    Two coordinate matrices restricted to shared samples.

    Row i of `first` and row i of `second` always belong to `ids[i]`.
    """

    def __init__(self, ids, first, second):
        if first.shape[0] != second.shape[0] or first.shape[0] != len(ids):
            raise ValueError("Aligned matrices must have one row per shared sample")
        self.ids = ids
        """ Shared sample identifiers, in the first embedding's order """
        self.first = first
        """ Rows of the first embedding """
        self.second = second
        """ Matching rows of the second embedding """

    @property
    def n_samples(self):
        return len(self.ids)

    def __repr__(self):
        return f"AlignedPair(n_samples={self.n_samples}, shapes={self.first.shape}/{self.second.shape})"


class QualityMetric:
    """
    Trustworthiness and continuity of an embedding, one value per neighbourhood size.
    """

    def __init__(self, neighbourhood_sizes, trustworthiness, continuity):
        self.neighbourhood_sizes = np.asarray(neighbourhood_sizes, dtype=np.int64)
        self.trustworthiness = np.asarray(trustworthiness, dtype=np.float64)
        self.continuity = np.asarray(continuity, dtype=np.float64)

    def to_frame(self):
        return pd.DataFrame(
            {"trustworthiness": self.trustworthiness, "continuity": self.continuity},
            index=pd.Index(self.neighbourhood_sizes, name="k"),
        )

    def __len__(self):
        return len(self.neighbourhood_sizes)

    def __repr__(self):
        return f"QualityMetric(k={self.neighbourhood_sizes.tolist()})"


class SubsetRecord:
    """
    Outcome of reducing one random subset of the samples.

    Either `embedding` and `quality` are set, or `error` holds the
    BackendFailure raised while reducing this subset.
    """

    def __init__(self, index, sample_ids, embedding=None, quality=None,
                 backend_result=None, error=None):
        self.index = index
        """ 1-based subset number """
        self.sample_ids = sample_ids
        """ Identifiers of the samples drawn into this subset """
        self.embedding = embedding
        self.quality = quality
        self.backend_result = backend_result
        self.error = error

    @property
    def ok(self):
        return self.error is None

    def __repr__(self):
        state = "ok" if self.ok else f"failed: {self.error}"
        return f"SubsetRecord(index={self.index}, n_samples={len(self.sample_ids)}, {state})"


class ComparisonResult:
    """
    Correlation of the components of two embeddings over their shared samples.
    """

    def __init__(self, correlation, aligned, procrustes_disparity=None):
        self.correlation = correlation
        """ DataFrame, rows = components of the first set, columns = components of the second """
        self.aligned = aligned
        self.procrustes_disparity = procrustes_disparity
        """ Procrustes residual, None when no Procrustes alignment was applied """

    def __repr__(self):
        return (f"ComparisonResult(shape={self.correlation.shape}, "
                f"n_samples={self.aligned.n_samples}, disparity={self.procrustes_disparity})")
