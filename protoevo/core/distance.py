"""
Euclidean distance between feature rows.

Rows may be given as FeatureRow objects, plain feature vectors, or full
dataset rows that carry the label in a trailing column; only the first
FEATURE_LEN positions take part in the distance.
"""

from typing import Any

import numpy as np

from ..constants import FEATURE_LEN


def _features(row: Any) -> np.ndarray:
    """Return the first FEATURE_LEN values of a row as a float vector."""
    values = getattr(row, 'features', row)
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1 or arr.shape[0] < FEATURE_LEN:
        raise ValueError(
            f"Expected a vector with at least {FEATURE_LEN} values, got shape {arr.shape}"
        )
    return arr[:FEATURE_LEN]


def euclidean_distance(a: Any, b: Any) -> float:
    """
    Euclidean distance over the first FEATURE_LEN elements of two rows.

    Args:
        a: FeatureRow or vector of length >= FEATURE_LEN
        b: FeatureRow or vector of length >= FEATURE_LEN

    Returns:
        Non-negative distance, 0.0 iff the feature parts are equal
    """
    diff = _features(a) - _features(b)
    return float(np.sqrt(np.dot(diff, diff)))


def pairwise_distances(rows_a: np.ndarray, rows_b: np.ndarray) -> np.ndarray:
    """
    Distance matrix between two sets of rows.

    Args:
        rows_a: Array of shape (M, >= FEATURE_LEN)
        rows_b: Array of shape (N, >= FEATURE_LEN)

    Returns:
        Array of shape (M, N) with euclidean_distance(rows_a[i], rows_b[j])
    """
    a = np.asarray(rows_a, dtype=np.float64)
    b = np.asarray(rows_b, dtype=np.float64)
    if a.ndim != 2 or b.ndim != 2 or a.shape[1] < FEATURE_LEN or b.shape[1] < FEATURE_LEN:
        raise ValueError(
            f"Expected 2-D arrays with at least {FEATURE_LEN} columns, "
            f"got {a.shape} and {b.shape}"
        )
    a = a[:, :FEATURE_LEN]
    b = b[:, :FEATURE_LEN]
    # Exact for the integer-valued digits data, so ties compare equal
    squared = (
        np.einsum('ij,ij->i', a, a)[:, np.newaxis]
        + np.einsum('ij,ij->i', b, b)[np.newaxis, :]
        - 2.0 * (a @ b.T)
    )
    return np.sqrt(np.maximum(squared, 0.0))
