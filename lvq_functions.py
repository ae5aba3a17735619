# lvq_functions.py
# -*- coding: utf-8 -*-
"""
Model selection helpers for LVQ classifiers:
- stratified K-fold cross-validation with per-fold metrics,
- exhaustive grid search over hyperparameters.

Public API:
    stratified_kfold_full_metrics
    stratified_kfold_grid_search
"""

import inspect
import pickle
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.metrics import accuracy_score, balanced_accuracy_score, f1_score
from sklearn.model_selection import ParameterGrid, StratifiedKFold
from tqdm.auto import tqdm

from lvq_classifier import LVQClassifier

_METRIC_KEYS = ("accuracy", "balanced_accuracy", "f1_macro", "train_epochs")


def _filter_kwargs(cls, kwargs: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Filter a kwargs dict so that only arguments supported by cls.__init__ remain."""
    if kwargs is None:
        return {}
    sig = inspect.signature(cls.__init__).parameters
    return {k: v for k, v in kwargs.items() if k in sig}


def stratified_kfold_full_metrics(
    X,
    y,
    model_cls: Type = LVQClassifier,
    n_splits: int = 5,
    shuffle: bool = True,
    random_state: int = 42,
    model_params: Optional[Dict[str, Any]] = None,
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Stratified K-fold cross-validation of an LVQ-like classifier on a
    feature matrix.

    Parameters
    ----------
    X : array-like
        (n_samples, n_features) feature matrix.
    y : array-like
        Labels, any hashable type.
    model_cls : Type
        Classifier class with fit/predict, e.g. LVQClassifier.
    model_params : dict, optional
        Initialization parameters for model_cls; unknown keys are dropped.

    Returns
    -------
    dict
        {
          "folds": [...],         # per-fold metrics
          "averages": {...},      # averaged metrics over folds
          "n_splits": int,
          "model_cls": model_cls,
          "model_params": dict,
        }
    """
    model_params = _filter_kwargs(model_cls, model_params)

    X = np.asarray(X, dtype=float)
    y = np.asarray(y).ravel()
    if y.size == 0:
        raise ValueError("y must not be empty.")
    if X.ndim != 2 or len(X) != len(y):
        raise ValueError(f"X must be a matrix with one row per label, got shape {X.shape}")

    skf = StratifiedKFold(n_splits=n_splits, shuffle=shuffle, random_state=random_state)

    fold_results = []
    for f, (tr_idx, va_idx) in enumerate(skf.split(X, y), start=1):
        clf = model_cls(**model_params)
        clf.fit(X[tr_idx], y[tr_idx])
        y_pred = clf.predict(X[va_idx])

        res = {
            "fold": f,
            "train_total": len(tr_idx),
            "val_total": len(va_idx),
            "accuracy": accuracy_score(y[va_idx], y_pred),
            "balanced_accuracy": balanced_accuracy_score(y[va_idx], y_pred),
            "f1_macro": f1_score(y[va_idx], y_pred, average="macro"),
            "train_epochs": getattr(clf, "n_epochs_", np.nan),
        }
        fold_results.append(res)

        if verbose:
            logger.info("[Fold {}] bal_acc={:.4f} | epochs={}",
                        f, res["balanced_accuracy"], res["train_epochs"])

    avg = {k: float(np.mean([fr[k] for fr in fold_results])) for k in _METRIC_KEYS}

    return {
        "folds": fold_results,
        "averages": avg,
        "n_splits": n_splits,
        "model_cls": model_cls,
        "model_params": model_params,
    }


def stratified_kfold_grid_search(
    X,
    y,
    param_grid: Dict[str, Any],
    model_cls: Type = LVQClassifier,
    n_splits: int = 5,
    shuffle: bool = True,
    random_state: int = 42,
    verbose: bool = True,
    scoring: str = "balanced_accuracy",
    save_path: Optional[Union[str, Path]] = None,
    table_path: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    """
    Exhaustive grid search over param_grid using stratified K-fold
    cross-validation.

    Results can be saved as:
      - `save_path` : pickle containing all results and the best configuration.
      - `table_path`: pickle of a pandas DataFrame with one row per fold
                      and parameter combination.

    Returns
    -------
    dict
        {
          "all_results": [...],
          "best_result": {...},
          "best_score": float,
          "scoring": str,
          "model_cls": model_cls,
          "n_splits": int,
          "param_grid": dict,
          "table": pd.DataFrame,
        }
    """
    if scoring not in _METRIC_KEYS:
        raise ValueError(f"Unknown scoring {scoring!r}. Available: {', '.join(_METRIC_KEYS)}")

    param_list = list(ParameterGrid(dict(param_grid)))
    if not param_list:
        raise ValueError("param_grid produced no combinations.")

    all_results: List[Dict[str, Any]] = []
    best_score = -np.inf
    best_result: Optional[Dict[str, Any]] = None
    table_rows: List[Dict[str, Any]] = []

    for params in tqdm(param_list, desc="Grid-Search", disable=not verbose):
        params_filtered = _filter_kwargs(model_cls, params)

        cv_res = stratified_kfold_full_metrics(
            X=X,
            y=y,
            model_cls=model_cls,
            n_splits=n_splits,
            shuffle=shuffle,
            random_state=random_state,
            model_params=params_filtered,
            verbose=False,
        )

        score = cv_res["averages"][scoring]
        result_entry = {
            "params": params_filtered,
            "cv_result": cv_res,
            "score": score,
        }
        all_results.append(result_entry)

        if score > best_score:
            best_score = score
            best_result = result_entry

        for fold_metrics in cv_res["folds"]:
            row = dict(fold_metrics)
            row.update(params_filtered)
            table_rows.append(row)

    table = pd.DataFrame(table_rows)
    result_dict = {
        "all_results": all_results,
        "best_result": best_result,
        "best_score": best_score,
        "scoring": scoring,
        "model_cls": model_cls,
        "n_splits": n_splits,
        "param_grid": dict(param_grid),
        "table": table,
    }

    if verbose and best_result is not None:
        logger.info("Best parameter combination (Grid Search): {}", best_result["params"])
        logger.info("Best {}: {:.4f}", scoring, best_score)
        for k, v in best_result["cv_result"]["averages"].items():
            logger.info("  {}: {:.4f}", k, v)

    if save_path is not None:
        p = Path(save_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("wb") as f:
            pickle.dump(result_dict, f)
        if verbose:
            logger.info("Grid search results saved to '{}'.", p)

    if table_path is None and save_path is not None:
        p = Path(save_path)
        table_path = p.with_name(p.stem + "_all_folds.pkl")

    if table_path is not None:
        table_path = Path(table_path)
        table_path.parent.mkdir(parents=True, exist_ok=True)
        table.to_pickle(table_path)
        if verbose:
            logger.info("Fold table saved to '{}' (pandas.DataFrame as pickle).", table_path)

    return result_dict
