"""
Strategies that fill the initial prototype set from the training data.

Every strategy has the signature

    initialize(weights, train_data, n_prototypes, vec_len, rng)

and writes rows [0, n_prototypes) of `weights` in place. `rng` is a
numpy RandomState; deterministic strategies ignore it. None of the
strategies validates its input, the engine does that before calling.
"""

import numpy as np


def zeroes(weights, train_data, n_prototypes, vec_len, rng):
    """ Leaves the all-zero prototypes as they are (test baseline). """


def n_first(weights, train_data, n_prototypes, vec_len, rng):
    weights[:n_prototypes, :vec_len] = train_data[:n_prototypes, :vec_len]


def n_random(weights, train_data, n_prototypes, vec_len, rng):
    """ Uniform draws with replacement; duplicates are possible. """
    for sample in range(n_prototypes):
        weights[sample, :vec_len] = train_data[rng.randint(len(train_data)), :vec_len]


def n_random_unique(weights, train_data, n_prototypes, vec_len, rng):
    """ Uniform draws without replacement. """
    idx = rng.choice(len(train_data), size=n_prototypes, replace=False)
    weights[:n_prototypes, :vec_len] = train_data[idx, :vec_len]


def _rational(weights, train_data, n_prototypes, vec_len, rng):
    # Repeated sweeps over the (optionally shuffled) data; each sweep takes
    # at most one unused vector per label, so classes get balanced counts.
    order = np.arange(len(train_data))
    if rng is not None:
        order = rng.permutation(order)
    used = np.zeros(len(train_data), dtype=bool)
    picked = []
    while len(picked) < n_prototypes:
        seen_labels = set()
        n_before = len(picked)
        for i in order:
            if used[i]:
                continue
            label = train_data[i, vec_len - 1]
            if label in seen_labels:
                continue
            seen_labels.add(label)
            used[i] = True
            picked.append(i)
            if len(picked) == n_prototypes:
                break
        if len(picked) == n_before:
            raise ValueError(f"cannot select {n_prototypes} prototypes without reuse "
                             f"from {len(train_data)} training vectors")
    weights[:n_prototypes, :vec_len] = train_data[picked, :vec_len]


def n_random_rational(weights, train_data, n_prototypes, vec_len, rng):
    _rational(weights, train_data, n_prototypes, vec_len, rng)


def n_first_rational(weights, train_data, n_prototypes, vec_len, rng):
    _rational(weights, train_data, n_prototypes, vec_len, None)


INITIALIZERS = {
    'zeroes': zeroes,
    'n_first': n_first,
    'n_random': n_random,
    'n_random_unique': n_random_unique,
    'n_random_rational': n_random_rational,
    'n_first_rational': n_first_rational,
}


def resolve_initializer(initializer):
    if callable(initializer):
        return initializer
    if initializer not in INITIALIZERS:
        available = ", ".join(sorted(INITIALIZERS))
        raise ValueError(f"Unknown initializer {initializer!r}. Available: {available}")
    return INITIALIZERS[initializer]
