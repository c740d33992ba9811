# alignment.py

"""
Alignment of two embeddings before their components are compared:
pairing rows on shared sample identifiers, and optional orthogonal
Procrustes superimposition of the coordinate systems.
"""

#
# Imports
#

import numpy as np
from loguru import logger
from scipy.linalg import orthogonal_procrustes

from .embedding import AlignedPair
from .errors import NoOverlap


#
# Sample alignment
#
def intersect_and_order(set1, set2):
    """
    Restrict two embeddings to their shared samples.

    Parameters
    ----------
    set1: (Embedding) First embedding; its row order is kept.
    set2: (Embedding) Second embedding; its rows are reordered to match set1.

    Returns
    -------
    AlignedPair: Coordinates of both embeddings on the shared samples.

    Raises
    ------
    NoOverlap: If the embeddings have no sample identifier in common.
    """
    ids1 = set1.sample_ids
    ids2 = set2.sample_ids

    shared = ids1[ids1.isin(ids2)]
    if len(shared) == 0:
        logger.error("Embeddings have no sample in common")
        raise NoOverlap(
            f"No shared samples between embeddings of {len(ids1)} and {len(ids2)} samples"
        )

    rows1 = ids1.get_indexer(shared)
    rows2 = ids2.get_indexer(shared)
    logger.debug(f"Aligned {len(shared)} shared samples ({len(ids1)} / {len(ids2)})")

    return AlignedPair(shared, set1.coordinates[rows1], set2.coordinates[rows2])


#
# Orthogonal Procrustes superimposition
#
def _pad_columns(matrix, width):
    if matrix.shape[1] == width:
        return matrix
    padded = np.zeros((matrix.shape[0], width), dtype=np.float64)
    padded[:, :matrix.shape[1]] = matrix
    return padded


def procrustes_align(reference, target):
    """
    Rotate, reflect and scale `target` onto `reference`.

    Solves min ||reference_c - s * target_c @ R||^2 over orthogonal R and
    scalar s, where both matrices are centred on their column means, from
    the SVD of target_c^T reference_c.

    Parameters
    ----------
    reference: (numpy.ndarray) Reference configuration, shape (M, D).
    target: (numpy.ndarray) Configuration to transform, shape (M, D').
        If D != D' the narrower matrix is padded with zero columns.

    Returns
    -------
    numpy.ndarray, float:
        - transformed: target in the reference coordinate system, shape (M, max(D, D'))
        - disparity: residual sum of squares divided by the reference's
          total sum of squares (0 = perfect fit)

    Notes
    -----
    With M < D the rotation is only determined on the span of the samples;
    the result is still returned, a warning is logged.
    """
    reference = np.asarray(reference, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    if reference.ndim != 2 or target.ndim != 2:
        raise ValueError("Procrustes alignment needs two 2-dimensional matrices")
    if reference.shape[0] != target.shape[0]:
        raise ValueError(
            f"Procrustes alignment needs matched rows, got {reference.shape[0]} and {target.shape[0]}"
        )

    width = max(reference.shape[1], target.shape[1])
    if width < 1:
        raise ValueError("Procrustes alignment needs at least one component")
    if reference.shape[1] != target.shape[1]:
        logger.debug(f"Padding Procrustes inputs to {width} columns")
    reference = _pad_columns(reference, width)
    target = _pad_columns(target, width)

    if reference.shape[0] < width:
        logger.warning(
            f"Procrustes with {reference.shape[0]} samples for {width} dimensions is rank deficient"
        )

    ref_mean = reference.mean(axis=0)
    ref_c = reference - ref_mean
    target_c = target - target.mean(axis=0)

    ref_ss = np.sum(ref_c ** 2)
    target_ss = np.sum(target_c ** 2)
    if ref_ss == 0.0 or target_ss == 0.0:
        raise ValueError("Procrustes alignment needs configurations with non-zero spread")

    # rotation R and sum of singular values of target_c^T ref_c
    rotation, sv_sum = orthogonal_procrustes(target_c, ref_c)
    scale = sv_sum / target_ss

    transformed_c = scale * target_c @ rotation
    disparity = float(np.sum((ref_c - transformed_c) ** 2) / ref_ss)

    return transformed_c + ref_mean, disparity
