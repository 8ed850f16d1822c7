"""
Distances between column vectors of two matrices.

Every function takes (A, i, B, j) and compares column i of A with column j of
B; smaller values always mean a better match, which is what nearest_neighbor
relies on.

- dist_L2:  squared Euclidean distance ||x - y||^2 (no square root)
- dist_L1:  Euclidean distance ||x - y||, the square root of dist_L2
- dist_COS: negative cosine similarity -x.y / (||x|| ||y||)

The L1/L2 names are kept for compatibility with saved command lines and
reports; squared_euclidean and euclidean are aliases that say what is
actually computed.
"""

import numpy as np
from facerec.errors import DimensionError


def _columns(A, i, B, j):
    if A.rows != B.rows:
        raise DimensionError(f"cannot compare columns of {A.shape_str()} and {B.shape_str()}")
    return A.data[:, i], B.data[:, j]


def dist_COS(A, i, B, j):
    """
    Negative cosine similarity between A[:, i] and B[:, j].

    A zero vector has no direction; its distance to anything is 0.
    """
    x, y = _columns(A, i, B, j)

    abs_x = np.sqrt(np.dot(x, x))
    abs_y = np.sqrt(np.dot(y, y))

    if abs_x == 0 or abs_y == 0:
        return 0.0

    return float(-np.dot(x, y) / (abs_x * abs_y))


def dist_L1(A, i, B, j):
    """Euclidean distance between A[:, i] and B[:, j]."""
    return float(np.sqrt(dist_L2(A, i, B, j)))


def dist_L2(A, i, B, j):
    """Squared Euclidean distance between A[:, i] and B[:, j]."""
    x, y = _columns(A, i, B, j)
    diff = x - y
    return float(np.dot(diff, diff))


squared_euclidean = dist_L2
euclidean = dist_L1

DISTANCE_FUNCTIONS = {
    'L1': dist_L1,
    'L2': dist_L2,
    'COS': dist_COS
}


def nearest_neighbor(P, P_test, dist_func):
    """
    Find the column of P closest to the column vector P_test.

    Linear scan with a strict comparison, so the first column wins ties.

    Args:
        P: matrix of projected training vectors, one per column
        P_test: projected test vector (column 0 is used)
        dist_func: one of the distance functions of this module

    Returns:
        int: index of the matching column in P
    """
    if P.cols == 0:
        raise DimensionError("nearest neighbor search in an empty matrix")

    min_index = -1
    min_dist = None

    for j in range(P.cols):
        dist = dist_func(P_test, 0, P, j)

        if min_dist is None or dist < min_dist:
            min_index = j
            min_dist = dist

    return min_index
