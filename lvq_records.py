"""
Labeled records and the glue between them and the training engine.

A LabeledRecord carries one flat numeric vector (features plus label id
in the last slot) together with the human readable label text. How a
record is rendered to and parsed from a string is up to the
implementation; the engine only ever sees the numeric vector.
"""

from abc import ABC, abstractmethod

import numpy as np


class LabeledRecord(ABC):

    @property
    @abstractmethod
    def label_text(self):
        raise NotImplementedError

    @property
    @abstractmethod
    def label_id(self):
        raise NotImplementedError

    @property
    @abstractmethod
    def data(self):
        """ Features followed by the label id, as a sequence of floats. """
        raise NotImplementedError

    @abstractmethod
    def label_id_to_text(self, label_id):
        raise NotImplementedError

    @abstractmethod
    def label_text_to_id(self, label_text):
        raise NotImplementedError

    @abstractmethod
    def save_to_string(self):
        raise NotImplementedError

    @abstractmethod
    def load_from_string(self, s):
        raise NotImplementedError


def records_to_training_set(records):
    """ Stacks the vectors of all records into a (n_samples, vec_len) array. """
    if len(records) == 0:
        raise ValueError("records list cannot be empty")
    first_len = None
    rows = []
    for i, record in enumerate(records):
        data = record.data
        if data is None:
            raise ValueError(f"record data is None: index={i}")
        if len(data) == 0:
            raise ValueError(f"record data is empty: index={i}")
        if first_len is None:
            first_len = len(data)
        elif len(data) != first_len:
            raise ValueError(f"inconsistent record vector length: first={first_len}, "
                             f"at index {i}={len(data)}")
        rows.append(data)
    return np.asarray(rows, dtype=float)


class ModelWrapper:
    """ Pairs an LVQNN with the records its training set was built from.

    Runs the usual sequences of engine calls and translates predicted
    label ids back to label text.
    """

    def __init__(self, model, records):
        if len(records) != len(model.train_data):
            raise ValueError(f"records list must contain all of the input samples "
                             f"({len(records)}/{len(model.train_data)})")
        self.model = model
        self.records = records

    def preprocess_initialize_and_train(self):
        self.model.normalize_input()
        self.model.initialize_weights()
        self.model.train()

    def restore_from_snapshot_and_resume_training(self):
        self.model.restore_from_snapshot()
        self.model.train()

    def classify_label_text(self, vector):
        return self.records[0].label_id_to_text(self.model.classify(vector))
