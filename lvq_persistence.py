"""
Snapshot persistence contract of the training engine.

The engine never decides how a snapshot is stored. It hands itself to a
ModelSerializer, which reads or writes the learned state, the prototype
set and the basic configuration directly on the engine. A failing
serializer is not recovered from: its exception reaches the caller of
train(), save_snapshot() or restore_from_snapshot().
"""

import copy
from abc import ABC, abstractmethod

from lvq import BASIC_CONFIGURATION, INTERNALS


class ModelSerializer(ABC):

    @abstractmethod
    def save_snapshot(self, model):
        """ Persists the current state of `model` (an LVQNN). """
        raise NotImplementedError

    @abstractmethod
    def restore_from_snapshot(self, model):
        """ Overwrites the state of `model` with a previously saved one. """
        raise NotImplementedError


class InMemorySerializer(ModelSerializer):
    """ Keeps snapshots as plain dicts in a list, newest last.

    Arrays and the random state are deep-copied in both directions, so a
    snapshot never shares memory with a live engine.

    Attributes
    ----------
    snapshots: list of dict
        Saved snapshots. May be seeded through the constructor, e.g. with a
        snapshot taken from another engine.
    """

    def __init__(self, snapshots=None):
        self.snapshots = [] if snapshots is None else list(snapshots)

    def save_snapshot(self, model):
        if model.weights is None:
            raise RuntimeError("cannot save a snapshot of a model without weights")
        self.snapshots.append({
            'train_shape': tuple(model.train_data.shape),
            'n_prototypes': model.n_prototypes,
            'weights': model.weights.copy(),
            'rng': copy.deepcopy(model.rng),
            'config': {name: getattr(model, name) for name in BASIC_CONFIGURATION},
            'internals': {name: getattr(model, name) for name in INTERNALS},
        })

    def restore_from_snapshot(self, model):
        if not self.snapshots:
            raise LookupError("no snapshot to restore from")
        snapshot = self.snapshots[-1]
        if (snapshot['train_shape'] != tuple(model.train_data.shape)
                or snapshot['n_prototypes'] != model.n_prototypes):
            raise RuntimeError(
                f"train data vectors do not match: snapshot was taken over "
                f"{snapshot['train_shape']} with {snapshot['n_prototypes']} prototypes, "
                f"model has {tuple(model.train_data.shape)} with {model.n_prototypes}")
        for name, value in snapshot['config'].items():
            setattr(model, name, value)
        for name, value in snapshot['internals'].items():
            setattr(model, name, value)
        model.weights = snapshot['weights'].copy()
        model.rng = copy.deepcopy(snapshot['rng'])
