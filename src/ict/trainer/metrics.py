from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    log_loss,
    recall_score,
    top_k_accuracy_score,
)

from ict.types import ClassificationMetrics, PredictionResult

LOG_LOSS_EPSILON = 1e-15


def _score_matrix(predictions: Sequence[PredictionResult], width: int) -> np.ndarray:
    matrix = np.zeros((len(predictions), width), dtype=np.float64)
    for row, prediction in enumerate(predictions):
        scores = np.asarray(prediction.scores, dtype=np.float64)[:width]
        matrix[row, : scores.shape[0]] = scores
    return matrix


def _probabilities(scores: np.ndarray) -> np.ndarray:
    clipped = np.clip(scores, LOG_LOSS_EPSILON, 1.0)
    return clipped / clipped.sum(axis=1, keepdims=True)


def _mean_log_loss(y_true: np.ndarray, probabilities: np.ndarray, classes: np.ndarray) -> float:
    if len(classes) < 2:
        return 0.0
    return float(log_loss(y_true, probabilities, labels=classes))


def _top_k_accuracy(y_true: np.ndarray, scores: np.ndarray, k: int, classes: np.ndarray) -> float:
    if k >= len(classes):
        return 1.0
    if len(classes) == 2:
        # binary targets take the positive-class column
        return float(top_k_accuracy_score(y_true, scores[:, 1], k=k, labels=classes))
    return float(top_k_accuracy_score(y_true, scores, k=k, labels=classes))


def compute_classification_metrics(
    predictions: Sequence[PredictionResult],
    labels: Sequence[str],
    top_k: int = 5,
) -> ClassificationMetrics:
    """Multiclass metrics for ``predictions`` whose scores follow ``labels`` order.

    True labels the model never saw are appended after ``labels`` with zero score,
    so they always count as misclassified. Scores are clipped to
    ``[LOG_LOSS_EPSILON, 1]`` and renormalized before the log-loss.
    """
    if not predictions:
        raise ValueError("Cannot compute metrics without predictions")

    all_labels = list(labels)
    known = set(all_labels)
    for extra in sorted({p.true_label for p in predictions} - known):
        all_labels.append(extra)
    for extra in sorted({p.predicted_label for p in predictions} - set(all_labels)):
        all_labels.append(extra)
    index = {label: idx for idx, label in enumerate(all_labels)}
    classes = np.arange(len(all_labels))

    y_true = np.array([index[p.true_label] for p in predictions], dtype=np.int64)
    y_pred = np.array([index[p.predicted_label] for p in predictions], dtype=np.int64)
    scores = _score_matrix(predictions, len(all_labels))
    probabilities = _probabilities(scores)

    present = np.unique(y_true)
    per_class_recall = recall_score(y_true, y_pred, labels=present, average=None, zero_division=0)

    mean_loss = _mean_log_loss(y_true, probabilities, classes)
    priors = np.bincount(y_true, minlength=len(all_labels)) / len(y_true)
    nonzero = priors[priors > 0]
    prior_log_loss = float(-(nonzero * np.log(nonzero)).sum())
    log_loss_reduction = (prior_log_loss - mean_loss) / prior_log_loss if prior_log_loss > 0 else 0.0

    per_class_log_loss = {
        all_labels[int(cls)]: _mean_log_loss(y_true[y_true == cls], probabilities[y_true == cls], classes)
        for cls in present
    }

    k = max(1, min(int(top_k), len(all_labels)))

    return ClassificationMetrics(
        micro_accuracy=float(accuracy_score(y_true, y_pred)),
        macro_accuracy=float(np.mean(per_class_recall)),
        log_loss=mean_loss,
        log_loss_reduction=float(log_loss_reduction),
        top_k_accuracy=_top_k_accuracy(y_true, scores, k, classes),
        top_k=k,
        labels=all_labels,
        per_class_log_loss=per_class_log_loss,
        confusion_matrix=confusion_matrix(y_true, y_pred, labels=classes).tolist(),
    )
