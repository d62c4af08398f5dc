# Hyperparameter search over a CV plan
# Every (configuration x fold) unit is an independent fit-and-score job

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.model_selection import ParameterGrid

from .metrics import METRIC_DIRECTIONS, METRIC_FUNCTIONS, primary_metric
from .models import build_model, predict_array, set_model_params


def _number(value, default=0.0):
    return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else default


# Sort keys where a smaller tuple means a simpler model
COMPLEXITY_KEYS = {
    'decision_tree': lambda p: (
        _number(p.get('max_depth'), np.inf),
        -_number(p.get('ccp_alpha')),
        -_number(p.get('min_samples_leaf'), 1.0),
    ),
    'lasso': lambda p: (
        -_number(p.get('alpha')),
        _number(p.get('C')),
    ),
    'random_forest': lambda p: (
        _number(p.get('max_features'), np.inf),
        -_number(p.get('min_samples_leaf'), 1.0),
        _number(p.get('n_estimators')),
    ),
}


@dataclass
class TuningOutcome:
    best_params: Dict[str, Any]
    metric: str
    table: pd.DataFrame
    fold_scores: List[float]
    failures: List[str] = field(default_factory=list)


def resolve_n_jobs(n_jobs=None):
    """Default worker count: all processing units but one, at least one."""
    if n_jobs is None:
        return max((os.cpu_count() or 1) - 1, 1)
    return n_jobs


def expand_grid(grid_config):
    """
    Expand a grid config into the list of parameter dicts.

    Values are either explicit lists or ranges:
        {start, stop, num, scale: log|linear}
    Log ranges use base-10 exponents, e.g. {start: -4, stop: -1, num: 30, scale: log}.
    """
    if not grid_config:
        return [{}]

    grid = {}
    for name, setting in grid_config.items():
        if isinstance(setting, dict):
            num = int(setting.get('num', 5))
            if setting.get('scale', 'linear') == 'log':
                values = np.logspace(setting['start'], setting['stop'], num)
            else:
                values = np.linspace(setting['start'], setting['stop'], num)
            if setting.get('integer', False):
                values = sorted(set(int(round(v)) for v in values))
            else:
                values = [float(v) for v in values]
            grid[name] = list(values)
        elif isinstance(setting, (list, tuple)):
            grid[name] = list(setting)
        else:
            grid[name] = [setting]

    return list(ParameterGrid(grid))


def _clamp_max_features(candidates, n_features):
    """Drop configurations asking for more features than the design has."""
    kept = []
    for params in candidates:
        value = params.get('max_features')
        if isinstance(value, int) and not isinstance(value, bool) and value > n_features:
            continue
        kept.append(params)
    if kept:
        return kept
    return [dict(candidates[0], max_features=n_features)]


def _fit_and_score(base, params, design, y, fit_idx, val_idx, task, metric):
    """Fit one configuration on one fold; failures come back as (nan, message)."""
    try:
        estimator = set_model_params(base, params)
        estimator.fit(design[fit_idx], y[fit_idx])
        y_pred = predict_array(estimator, design[val_idx], task)
        return METRIC_FUNCTIONS[metric](y[val_idx], y_pred), None
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        return np.nan, f"{params}: {type(e).__name__}: {e}"


def _standard_error(scores):
    valid = scores[~np.isnan(scores)]
    if valid.size < 2:
        return np.nan
    return float(np.std(valid, ddof=1) / np.sqrt(valid.size))


def select_best(table, family, metric):
    """
    Index of the winning configuration.

    Best mean CV score first, then lowest standard error, then the simplest
    model (COMPLEXITY_KEYS), then grid order.
    """
    lower_is_better = METRIC_DIRECTIONS[metric]
    complexity = COMPLEXITY_KEYS.get(family, lambda p: ())

    def sort_key(i):
        row = table.iloc[i]
        mean = row['mean']
        if np.isnan(mean):
            return (1, 0.0, 0.0, (), i)
        mean = round(float(mean), 10)
        std_err = row['std_err'] if not np.isnan(row['std_err']) else np.inf
        return (0, mean if lower_is_better else -mean, round(float(std_err), 10),
                complexity(row['params']), i)

    order = sorted(range(len(table)), key=sort_key)
    best = order[0]
    if np.isnan(table.iloc[best]['mean']):
        raise ValueError(f"All {len(table)} tuning configurations failed for {family}")
    return best


def tune(family, task, design, y, plan, grid=None, seed=123, n_jobs=None, metric=None, fixed_params=None):
    """
    Grid search for a tunable family over a CV plan.

    Args:
        design: numeric design matrix of Train (numpy array)
        y: encoded outcome of Train (float, or 0/1 for classification)
        plan: CVPlan of Train
        grid: grid config, see expand_grid
        fixed_params: hyperparameters shared by every configuration

    Returns:
        TuningOutcome with the winning configuration and the per-configuration table
    """
    metric = metric or primary_metric(task)
    design = np.asarray(design, dtype=float)
    y = np.asarray(y)

    candidates = expand_grid(grid)
    if family == 'random_forest':
        candidates = _clamp_max_features(candidates, design.shape[1])

    n_jobs = resolve_n_jobs(n_jobs)
    n_folds = len(plan)
    print(f"Tuning {family}: {len(candidates)} configurations x {n_folds} folds "
          f"({metric}, n_jobs={n_jobs})...")

    base = build_model(family, task, seed, fixed_params)
    units = Parallel(n_jobs=n_jobs)(
        delayed(_fit_and_score)(base, params, design, y, fit_idx, val_idx, task, metric)
        for params in candidates
        for fit_idx, val_idx in plan
    )

    scores = np.array([score for score, _ in units], dtype=float).reshape(len(candidates), n_folds)
    failures = [message for _, message in units if message is not None]

    rows = []
    for i, params in enumerate(candidates):
        config_scores = scores[i]
        valid = ~np.isnan(config_scores)
        rows.append({
            'config': i,
            'params': params,
            'mean': float(np.mean(config_scores[valid])) if valid.any() else np.nan,
            'std_err': _standard_error(config_scores),
            'n_failed': int((~valid).sum()),
        })
    table = pd.DataFrame(rows)

    best = select_best(table, family, metric)
    table['selected'] = table['config'] == best

    print(f"  Best {family}: {candidates[best]} "
          f"({metric} = {table.loc[best, 'mean']:.4f} ± {table.loc[best, 'std_err']:.4f})")

    return TuningOutcome(
        best_params=dict(candidates[best]),
        metric=metric,
        table=table,
        fold_scores=[float(s) for s in scores[best]],
        failures=failures,
    )
