"""
In-place normalization of a single labeled vector.

Statistics are computed per vector over its own feature slots, never
per column across a data set. The trailing label slot is left untouched.
Each function validates the whole vector before writing anything.
"""

import numpy as np

from lvq_validation import check_vector


def _write_features(vector, values):
    if isinstance(vector, np.ndarray):
        if not np.issubdtype(vector.dtype, np.floating):
            raise ValueError(f"cannot normalize an array of dtype {vector.dtype} in place")
        vector[:-1] = values
    else:
        vector[:-1] = values.tolist()


def min_max(vector):
    """ (x - min) / (max - min); a constant vector maps to zeros. """
    x = check_vector(vector)[:-1]
    lo, hi = x.min(), x.max()
    d = hi - lo
    _write_features(vector, (x - lo) / d if d > 0 else np.zeros_like(x))


def mean(vector):
    """ (x - mean) / (max - min); a constant vector maps to zeros. """
    x = check_vector(vector)[:-1]
    d = x.max() - x.min()
    _write_features(vector, (x - x.mean()) / d if d > 0 else np.zeros_like(x))


def z_score(vector):
    """ (x - mean) / std with the population standard deviation. """
    x = check_vector(vector)[:-1]
    std = x.std()
    _write_features(vector, (x - x.mean()) / std if std > 0 else np.zeros_like(x))


def unit_length(vector):
    """ Scales the features to unit Euclidean norm; a zero vector stays zero. """
    x = check_vector(vector)[:-1]
    norm = np.sqrt(np.dot(x, x))
    if norm > 0:
        _write_features(vector, x / norm)


NORMALIZERS = {
    'min_max': min_max,
    'mean': mean,
    'z_score': z_score,
    'unit_length': unit_length,
}


def resolve_normalizer(normalizer):
    if normalizer is None or callable(normalizer):
        return normalizer
    if normalizer not in NORMALIZERS:
        available = ", ".join(sorted(NORMALIZERS))
        raise ValueError(f"Unknown normalizer {normalizer!r}. Available: {available}")
    return NORMALIZERS[normalizer]
