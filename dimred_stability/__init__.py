# dimred-stability

"""
Stability assessment of dimensionality reductions under resampling of the samples.
"""

from .alignment import intersect_and_order, procrustes_align
from .backend import ReductionBackend, ReductionMethod, SklearnBackend
from .correlation import DEFAULT_THRESHOLDS, compare_sets, correlate_components, count_stable
from .embedding import Embedding
from .errors import (BackendFailure, DimRedStabilityError, InsufficientSamples,
                     InvalidNeighbourhoodSize, InvalidSubsetSize, NoOverlap)
from .quality import assess_quality, continuity, trustworthiness
from .reduction import compute_dim_reduction
from .stability import DimRedStability, estimate_stability
from .subsets import generate_subsets

__all__ = [
    'DimRedStability',
    'Embedding',
    'ReductionBackend',
    'ReductionMethod',
    'SklearnBackend',
    'DEFAULT_THRESHOLDS',
    'assess_quality',
    'compare_sets',
    'compute_dim_reduction',
    'continuity',
    'correlate_components',
    'count_stable',
    'estimate_stability',
    'generate_subsets',
    'intersect_and_order',
    'procrustes_align',
    'trustworthiness',
    'BackendFailure',
    'DimRedStabilityError',
    'InsufficientSamples',
    'InvalidNeighbourhoodSize',
    'InvalidSubsetSize',
    'NoOverlap',
]
