"""
Distance metrics between labeled vectors.

All metrics compare the feature slots [0, len-1) only; the trailing slot
holds the label id and never contributes to a distance. Either argument
may be a 2D stack of vectors, in which case one distance per row is
returned. This is how the training engine measures a vector against all
prototypes at once.

Public API:
    hamming
    euclidean_square
    euclidean
    manhattan
    resolve_metric
"""

import numpy as np

from lvq_validation import check_vector_pair


def hamming(a, b):
    """ Number of feature positions whose values differ exactly. """
    a, b = check_vector_pair(a, b)
    return np.sum(a[..., :-1] != b[..., :-1], axis=-1).astype(float)


def euclidean_square(a, b):
    """ Sum of squared feature differences.

    Preserves the ordering of euclidean() without the square root, so it
    is the cheaper choice for nearest-prototype searches.
    """
    a, b = check_vector_pair(a, b)
    d = a[..., :-1] - b[..., :-1]
    return np.sum(d * d, axis=-1)


def euclidean(a, b):
    return np.sqrt(euclidean_square(a, b))


def manhattan(a, b):
    a, b = check_vector_pair(a, b)
    return np.sum(np.abs(a[..., :-1] - b[..., :-1]), axis=-1)


METRICS = {
    'hamming': hamming,
    'euclidean_square': euclidean_square,
    'euclidean': euclidean,
    'manhattan': manhattan,
}


def resolve_metric(metric):
    """ Returns the metric function for a registry name, or metric itself
    if it is already callable.
    """
    if callable(metric):
        return metric
    if metric not in METRICS:
        available = ", ".join(sorted(METRICS))
        raise ValueError(f"Unknown metric {metric!r}. Available: {available}")
    return METRICS[metric]
