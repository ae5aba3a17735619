#!/usr/bin/python3
"""
Tests the labeled record contract and the model wrapper
"""

import unittest

import numpy as np

from lvq import LVQNN
from lvq_persistence import InMemorySerializer
from lvq_records import LabeledRecord, ModelWrapper, records_to_training_set


class CsvRecord(LabeledRecord):
    """ Comma separated features followed by the label text. """

    LABELS = ('near', 'far')

    def __init__(self, line=None):
        self._data = None
        self._label_text = None
        if line is not None:
            self.load_from_string(line)

    @property
    def label_text(self):
        return self._label_text

    @property
    def label_id(self):
        return self.label_text_to_id(self._label_text)

    @property
    def data(self):
        return self._data

    def label_id_to_text(self, label_id):
        return self.LABELS[label_id]

    def label_text_to_id(self, label_text):
        return self.LABELS.index(label_text)

    def save_to_string(self):
        return ','.join([repr(x) for x in self._data[:-1]] + [self._label_text])

    def load_from_string(self, s):
        *features, label_text = s.strip().split(',')
        self._label_text = label_text
        self._data = [float(x) for x in features] + [float(self.label_text_to_id(label_text))]


def _records(seed=0):
    rs = np.random.RandomState(seed)
    lines = []
    for center, label in ((0., 'near'), (10., 'far')):
        for x, y in rs.randn(8, 2) * 0.5 + center:
            lines.append(f'{x},{y},{label}')
    return [CsvRecord(line) for line in lines]


class TestRecords(unittest.TestCase):

    def test_string_form(self):
        record = CsvRecord('1.5,-2.0,far')
        self.assertEqual(record.data, [1.5, -2.0, 1.0])
        self.assertEqual(record.label_id, 1)
        self.assertEqual(record.save_to_string(), '1.5,-2.0,far')

    def test_records_to_training_set(self):
        records = _records()
        data = records_to_training_set(records)
        self.assertEqual(data.shape, (16, 3))
        np.testing.assert_array_equal(data[:, -1], [0.] * 8 + [1.] * 8)

    def test_invalid_records(self):
        with self.assertRaises(ValueError):
            records_to_training_set([])
        records = _records()
        records[3] = CsvRecord()
        with self.assertRaisesRegex(ValueError, 'index=3'):
            records_to_training_set(records)
        records[3] = CsvRecord('1.0,2.0,3.0,near')
        with self.assertRaisesRegex(ValueError, 'index 3'):
            records_to_training_set(records)
        empty = CsvRecord()
        empty._data = []
        with self.assertRaises(ValueError):
            records_to_training_set([empty])

    def test_wrapper_checks_record_count(self):
        records = _records()
        model = LVQNN(records_to_training_set(records), 2)
        with self.assertRaises(ValueError):
            ModelWrapper(model, records[:-1])

    def test_train_and_classify_label_text(self):
        records = _records()
        model = LVQNN(records_to_training_set(records), 2, normalizer=None,
                      initializer='n_random_rational', random_state=0, max_epochs=50)
        wrapper = ModelWrapper(model, records)
        wrapper.preprocess_initialize_and_train()
        self.assertEqual(model.current_epoch, 50)
        self.assertEqual(wrapper.classify_label_text([0.2, -0.1]), 'near')
        self.assertEqual(wrapper.classify_label_text([9.8, 10.3]), 'far')

    def test_resume_from_snapshot(self):
        records = _records()
        serializer = InMemorySerializer()
        model = LVQNN(records_to_training_set(records), 2, random_state=0, max_epochs=20,
                      snapshot_period=10, serializer=serializer)
        ModelWrapper(model, records).preprocess_initialize_and_train()

        resumed = LVQNN(records_to_training_set(records), 2,
                        serializer=InMemorySerializer(serializer.snapshots[:1]))
        wrapper = ModelWrapper(resumed, records)
        wrapper.restore_from_snapshot_and_resume_training()
        self.assertEqual(resumed.current_epoch, 20)
        np.testing.assert_array_equal(resumed.weights, model.weights)


if __name__ == '__main__':
    unittest.main()
