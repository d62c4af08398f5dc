# Goodness-of-fit metrics for continuous and binary outcomes

import numpy as np
from sklearn.metrics import mean_squared_error, r2_score, roc_auc_score, accuracy_score

REGRESSION_METRICS = ['rmse', 'r2']
CLASSIFICATION_METRICS = ['roc_auc', 'accuracy']

# True when lower values are better
METRIC_DIRECTIONS = {
    'rmse': True,
    'r2': False,
    'roc_auc': False,
    'accuracy': False,
}


class MetricUndefinedError(ValueError):
    """Raised when a metric cannot be computed on the given partition."""
    pass


def _as_arrays(y_true, y_pred):
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        raise MetricUndefinedError("Metric undefined on an empty partition")
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    if np.isnan(y_pred).any():
        raise MetricUndefinedError("Metric undefined: model produced no predictions")
    return y_true, y_pred


def rmse(y_true, y_pred):
    y_true, y_pred = _as_arrays(y_true, y_pred)
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def r_squared(y_true, y_pred):
    y_true, y_pred = _as_arrays(y_true, y_pred)
    if y_true.size < 2 or np.ptp(y_true) == 0:
        raise MetricUndefinedError("R2 undefined for a constant outcome")
    return float(r2_score(y_true, y_pred))


def roc_auc(y_true, y_score):
    """
    ROC-AUC of positive-class probabilities against 0/1 labels.

    Raises MetricUndefinedError when only one class is present.
    """
    y_true, y_score = _as_arrays(y_true, y_score)
    if np.unique(y_true).size < 2:
        raise MetricUndefinedError("ROC-AUC undefined: partition contains a single outcome class")
    return float(roc_auc_score(y_true, y_score))


def accuracy(y_true, y_score, threshold=0.5):
    y_true, y_score = _as_arrays(y_true, y_score)
    return float(accuracy_score(y_true, (y_score >= threshold).astype(float)))


METRIC_FUNCTIONS = {
    'rmse': rmse,
    'r2': r_squared,
    'roc_auc': roc_auc,
    'accuracy': accuracy,
}


def metrics_for_task(task):
    return REGRESSION_METRICS if task == 'regression' else CLASSIFICATION_METRICS


def compute_metrics(task, y_true, y_pred, label=''):
    """
    Compute every metric of the task independently.

    Returns (metrics, warnings). An undefined metric is NaN and adds a warning;
    the other metrics are still reported.
    """
    metrics = {}
    messages = []
    for name in metrics_for_task(task):
        try:
            metrics[name] = METRIC_FUNCTIONS[name](y_true, y_pred)
        except MetricUndefinedError as e:
            metrics[name] = np.nan
            messages.append(f"{label}{name}: {e}" if label else f"{name}: {e}")
    return metrics, messages


def primary_metric(task):
    return 'rmse' if task == 'regression' else 'roc_auc'
