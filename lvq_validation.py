"""
Input and configuration checks shared by the distance metrics, the
normalizers and the training engine.

Every helper raises a ValueError before anything is written, so callers
can validate first and mutate afterwards.
"""

import numbers

import numpy as np

LOGGING_STRATEGIES = ('default', 'internal', 'off')


def _check_finite(arr, name):
    bad = np.flatnonzero(~np.isfinite(arr))
    if bad.size > 0:
        idx = int(bad[0])
        kind = 'a NaN' if np.isnan(arr.flat[idx]) else 'an infinite'
        raise ValueError(f"{name} contains {kind} value at index {idx}")


def check_vector(vector, name='input vector'):
    """ Returns vector as a 1D float array of length >= 2 (at least one
    feature plus the label slot) without NaN or infinite entries.
    """
    if vector is None:
        raise ValueError(f"{name} cannot be None")
    arr = np.asarray(vector, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise ValueError(f"{name} cannot be empty")
    if arr.size < 2:
        raise ValueError(f"{name} needs at least one feature and a label slot")
    _check_finite(arr, name)
    return arr


def check_vector_pair(a, b):
    """ Validates two vectors for a distance computation.

    Either argument may also be a 2D stack of vectors; in that case the
    trailing lengths must agree with the other argument.
    """
    if a is None or b is None:
        raise ValueError("vectors cannot be None")
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    for arr, name in ((a, 'first vector'), (b, 'second vector')):
        if arr.ndim not in (1, 2):
            raise ValueError(f"{name} must be a vector or a stack of vectors, got shape {arr.shape}")
        if arr.shape[-1] < 2:
            raise ValueError(f"{name} needs at least one feature and a label slot")
        _check_finite(arr, name)
    if a.shape[-1] != b.shape[-1]:
        raise ValueError(f"vectors must not differ in length: {a.shape[-1]}/{b.shape[-1]}")
    return a, b


def check_training_set(data):
    """ Returns the training set as a 2D float array.

    The array is not copied if it already is a float array, so an in-place
    normalization pass reaches the caller's data.
    """
    if data is None:
        raise ValueError("train_data cannot be None")
    arr = np.asarray(data, dtype=float)
    if arr.ndim != 2:
        raise ValueError('train_data is not a matrix!')
    if arr.shape[0] == 0:
        raise ValueError("train_data cannot be empty")
    if arr.shape[1] < 2:
        raise ValueError("train_data vectors need at least one feature and a label slot")
    _check_finite(arr, 'train_data')
    labels = arr[:, -1]
    if np.any(labels < 0) or np.any(labels != np.floor(labels)):
        raise ValueError("label ids (last column) must be non-negative integers")
    return arr


def check_n_prototypes(n_prototypes, n_samples):
    if isinstance(n_prototypes, bool) or not isinstance(n_prototypes, numbers.Integral):
        raise ValueError(f"n_prototypes must be an integer, got {n_prototypes!r}")
    if n_prototypes < 1 or n_prototypes > n_samples:
        raise ValueError(f"invalid n_prototypes number: expected in range "
                         f"[1; {n_samples}], but got {n_prototypes}")
    return int(n_prototypes)


def check_params(learn_rate, quit_learn_rate, momentum, max_epochs,
                 progress_report_period, snapshot_period, logging_strategy):
    """ Range checks for the training configuration. """
    if not 0.0 < learn_rate <= 1.0:
        raise ValueError("learn_rate must be in range (0.0; 1.0]")
    if not 0.0 < quit_learn_rate < 1.0:
        raise ValueError("quit_learn_rate must be in range (0.0; 1.0)")
    if quit_learn_rate >= learn_rate:
        raise ValueError(f"quit_learn_rate ({quit_learn_rate}) must be below learn_rate ({learn_rate})")
    if not 0.0 < momentum < 1.0:
        raise ValueError("momentum must be in range (0.0; 1.0)")
    if max_epochs < 1:
        raise ValueError("max_epochs must be positive")
    if progress_report_period < 0:
        raise ValueError("progress_report_period must be either 0 or a positive integer")
    if snapshot_period < -1:
        raise ValueError("snapshot_period must be either -1, 0, or a positive integer")
    if logging_strategy not in LOGGING_STRATEGIES:
        raise ValueError(f"logging_strategy must be one of {LOGGING_STRATEGIES}, got {logging_strategy!r}")
