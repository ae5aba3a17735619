#!/usr/bin/python3
"""
Tests cross-validation and grid search over LVQ classifiers
"""

import tempfile
import unittest
from pathlib import Path

import pandas as pd

from lvq_classifier import LVQClassifier
from lvq_classifier_test import three_clusters
from lvq_functions import (_filter_kwargs, stratified_kfold_full_metrics,
                           stratified_kfold_grid_search)


class TestModelSelection(unittest.TestCase):

    def setUp(self):
        self.X, self.y = three_clusters()

    def test_filter_kwargs(self):
        kwargs = {'n_prototypes': 3, 'momentum': 0.9, 'lambda_': 0.5}
        self.assertEqual(_filter_kwargs(LVQClassifier, kwargs), {'n_prototypes': 3, 'momentum': 0.9})
        self.assertEqual(_filter_kwargs(LVQClassifier, None), {})

    def test_full_metrics(self):
        res = stratified_kfold_full_metrics(
            self.X, self.y, n_splits=3, verbose=False,
            model_params={'n_prototypes': 3, 'max_epochs': 20, 'random_state': 0, 'sigma': 1.})
        self.assertEqual(len(res['folds']), 3)
        self.assertNotIn('sigma', res['model_params'])
        self.assertEqual(set(res['averages']),
                         {'accuracy', 'balanced_accuracy', 'f1_macro', 'train_epochs'})
        self.assertEqual(res['averages']['train_epochs'], 20.)
        self.assertGreater(res['averages']['balanced_accuracy'], 0.8)
        self.assertEqual(sum(f['val_total'] for f in res['folds']), len(self.y))

    def test_grid_search(self):
        grid = {'n_prototypes': [3, 6], 'max_epochs': [20], 'random_state': [0]}
        with tempfile.TemporaryDirectory() as tmp:
            save_path = Path(tmp) / 'results' / 'grid.pkl'
            res = stratified_kfold_grid_search(self.X, self.y, grid, n_splits=3,
                                               verbose=False, save_path=save_path)
            self.assertTrue(save_path.exists())
            table = pd.read_pickle(save_path.with_name('grid_all_folds.pkl'))
        self.assertEqual(len(res['all_results']), 2)
        self.assertGreater(res['best_score'], 0.8)
        self.assertEqual(res['best_score'], max(r['score'] for r in res['all_results']))
        self.assertEqual(len(res['table']), 6)
        self.assertEqual(len(table), 6)
        self.assertEqual(sorted(table['n_prototypes'].unique()), [3, 6])

    def test_unknown_scoring(self):
        with self.assertRaises(ValueError):
            stratified_kfold_grid_search(self.X, self.y, {'n_prototypes': [3]},
                                         verbose=False, scoring='roc_auc')


if __name__ == '__main__':
    unittest.main()
