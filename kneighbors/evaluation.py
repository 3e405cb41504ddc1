"""
Cross-validation and evaluation utilities for kneighbors models.

This module wraps scikit-learn's splitters and metrics so a classifier can be
scored on a held-out set or with k-fold cross-validation.  Errors raised by
the model while fitting or predicting are not caught here; a failing fold
fails the whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    classification_report,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
)
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from .models.base_model import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_METRICS = ["accuracy", "precision", "recall", "f1"]


@dataclass
class CVResults:
    """Results from cross-validation evaluation.

    Parameters
    ----------
    fold_scores : list of dict
        Per-fold metrics for each evaluation fold.
    mean_scores : dict
        Mean values across all folds for each metric.
    std_scores : dict
        Standard deviation across folds for each metric.
    confusion_matrices : list of np.ndarray
        Confusion matrix for each fold.
    predictions : list of list
        Predictions for each fold, when requested.
    """

    fold_scores: List[Dict[str, float]] = field(default_factory=list)
    mean_scores: Dict[str, float] = field(default_factory=dict)
    std_scores: Dict[str, float] = field(default_factory=dict)
    confusion_matrices: List[np.ndarray] = field(default_factory=list)
    predictions: List[List[Any]] = field(default_factory=list)

    def summary(self) -> str:
        """Generate a human-readable summary of CV results."""
        lines = ["Cross-Validation Results", "=" * 50]
        for metric, mean_val in self.mean_scores.items():
            std_val = self.std_scores.get(metric, 0.0)
            lines.append(f"{metric:20s}: {mean_val:.4f} +/- {std_val:.4f}")
        return "\n".join(lines)


def compute_metrics(
    y_true,
    y_pred,
    *,
    metrics: Optional[List[str]] = None,
) -> Dict[str, float]:
    """Compute classification metrics.

    Binary problems use ``average="binary"`` only when the labels are 0/1;
    everything else is macro-averaged.

    Raises
    ------
    ValueError
        If an unknown metric name is requested.
    """
    if metrics is None:
        metrics = DEFAULT_METRICS

    labels = np.unique(np.concatenate([np.asarray(y_true), np.asarray(y_pred)]))
    binary = len(labels) == 2 and set(labels.tolist()) <= {0, 1}
    average = "binary" if binary else "macro"

    results: Dict[str, float] = {}
    for metric in metrics:
        if metric == "accuracy":
            results[metric] = float(accuracy_score(y_true, y_pred))
        elif metric == "precision":
            results[metric] = float(precision_score(y_true, y_pred, average=average, zero_division=0))
        elif metric == "recall":
            results[metric] = float(recall_score(y_true, y_pred, average=average, zero_division=0))
        elif metric == "f1":
            results[metric] = float(f1_score(y_true, y_pred, average=average, zero_division=0))
        else:
            raise ValueError(f"Metric '{metric}' not recognized")
    return results


def cross_validate_model(
    model: BaseModel,
    X,
    y,
    *,
    n_folds: int = 5,
    stratified: bool = True,
    shuffle: bool = True,
    random_state: Optional[int] = 42,
    metrics: Optional[List[str]] = None,
    return_predictions: bool = False,
) -> CVResults:
    """Perform k-fold cross-validation.

    The model is refitted on every fold, so its trained state afterwards is
    that of the last fold.

    Parameters
    ----------
    model : BaseModel
        The model to evaluate.
    X : array-like
        Feature matrix of shape (n_samples, n_features).
    y : array-like
        Target labels of shape (n_samples,).
    n_folds : int, default=5
        Number of cross-validation folds.
    stratified : bool, default=True
        Whether to preserve class distribution in each fold.
    shuffle : bool, default=True
        Whether to shuffle data before splitting.
    random_state : int, optional, default=42
        Random seed for reproducibility.
    metrics : list of str, optional
        Metrics to compute. Default: ['accuracy', 'precision', 'recall', 'f1'].
    return_predictions : bool, default=False
        Whether to return per-fold predictions.

    Returns
    -------
    CVResults
        Cross-validation results including per-fold and aggregate metrics.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y)

    seed = random_state if shuffle else None
    if stratified:
        cv_splitter = StratifiedKFold(n_splits=n_folds, shuffle=shuffle, random_state=seed)
    else:
        cv_splitter = KFold(n_splits=n_folds, shuffle=shuffle, random_state=seed)

    results = CVResults()
    for fold_idx, (train_idx, val_idx) in enumerate(cv_splitter.split(X, y)):
        model.fit(X[train_idx], y[train_idx])
        y_pred = model.predict(X[val_idx])
        y_val = y[val_idx]

        fold_metrics = compute_metrics(y_val, y_pred, metrics=metrics)
        results.fold_scores.append(fold_metrics)
        results.confusion_matrices.append(confusion_matrix(y_val, y_pred))
        if return_predictions:
            results.predictions.append(list(y_pred))

        logger.info(
            "Fold %d/%d: accuracy=%.4f", fold_idx + 1, n_folds, fold_metrics.get("accuracy", 0.0)
        )

    # aggregate across folds
    metric_names = results.fold_scores[0].keys() if results.fold_scores else []
    for metric in metric_names:
        values = [fold[metric] for fold in results.fold_scores]
        results.mean_scores[metric] = float(np.mean(values))
        results.std_scores[metric] = float(np.std(values))

    return results


def stratified_train_test_split(
    X,
    y,
    *,
    test_size: float = 0.2,
    random_state: Optional[int] = 42,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Split data into train/test sets while preserving class distribution.

    Returns
    -------
    X_train, X_test, y_train, y_test : np.ndarray
    """
    return train_test_split(
        np.asarray(X, dtype=float),
        np.asarray(y),
        test_size=test_size,
        random_state=random_state,
        stratify=y,
    )


def evaluate_model(
    model: BaseModel,
    X_test,
    y_test,
    *,
    metrics: Optional[List[str]] = None,
    return_report: bool = False,
) -> Dict[str, Any]:
    """Evaluate a trained model on a test set.

    Returns
    -------
    dict
        Requested metrics, the confusion matrix as nested lists and, when
        ``return_report`` is set, sklearn's classification report.
    """
    y_pred = model.predict(np.asarray(X_test, dtype=float))

    results: Dict[str, Any] = compute_metrics(y_test, y_pred, metrics=metrics)
    results["confusion_matrix"] = confusion_matrix(y_test, y_pred).tolist()
    if return_report:
        results["classification_report"] = classification_report(
            y_test, y_pred, output_dict=True, zero_division=0
        )
    return results
