# errors.py

"""
Exceptions raised by the stability-assessment engine.

All of them are fail-fast: every operation is deterministic given its
inputs, so nothing is retried.
"""


class DimRedStabilityError(Exception):
    """
    Base class for all errors raised by dimred_stability.
    """


class InvalidSubsetSize(DimRedStabilityError, ValueError):
    """
    Subset fraction outside (0, 1], or too few samples left to reduce.
    """


class NoOverlap(DimRedStabilityError, ValueError):
    """
    Two embeddings share no sample identifier.
    """


class InsufficientSamples(DimRedStabilityError, ValueError):
    """
    Fewer than three matched samples for a correlation.
    """


class InvalidNeighbourhoodSize(DimRedStabilityError, ValueError):
    """
    Neighbourhood size outside [1, N - 2].
    """


class BackendFailure(DimRedStabilityError):
    """
    Error raised by the reduction backend, passed on unmodified.

    Parameters
    ----------
    original: (Exception) The exception raised by the backend.
    method: (str or None) Name of the reduction method that failed.
    subset: (int or None) 1-based subset number, if raised during subset generation.
    """

    def __init__(self, original, method=None, subset=None):
        self.original = original
        self.method = method
        self.subset = subset
        where = f" on subset {subset}" if subset is not None else ""
        super().__init__(f"Reduction '{method}' failed{where}: {original!r}")
