# Split-and-evaluate harness
# Split -> CV plan -> fit/tune -> metrics -> ordered comparison

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .cv import build_cv_plan
from .data import ALL_PREDICTORS, predictor_set_label, resolve_predictors
from .metrics import METRIC_DIRECTIONS, compute_metrics, primary_metric
from .models import (
    SIMPLE_FAMILIES, SUPPORTED_MODELS, TUNED_FAMILIES,
    DesignEncoder, encode_outcome, fit,
)
from .split import split_train_test
from .tuning import tune


@dataclass(frozen=True)
class ModelResult:
    """One fitted candidate (family + predictor set) and its metrics."""
    name: str
    family: str
    task: str
    outcome: str
    predictors: Tuple[str, ...]
    model: Any = None
    coefficients: Optional[pd.DataFrame] = None
    importances: Optional[pd.DataFrame] = None
    best_params: Dict[str, Any] = field(default_factory=dict)
    tuning_table: Optional[pd.DataFrame] = None
    train_metrics: Dict[str, float] = field(default_factory=dict)
    cv_metrics: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    test_metrics: Dict[str, float] = field(default_factory=dict)
    fit_stats: Dict[str, float] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()

    def metric(self, metric, split='test'):
        """Value of a metric on 'train', 'cv' (mean over folds) or 'test'; NaN if absent."""
        if split == 'cv':
            return float(self.cv_metrics.get(metric, {}).get('mean', np.nan))
        source = self.train_metrics if split == 'train' else self.test_metrics
        return float(source.get(metric, np.nan))


def _candidates(families, predictor_sets):
    """(family, predictor_set) pairs; the null model appears once."""
    pairs = []
    for family in families:
        if family == 'null':
            pairs.append((family, None))
            continue
        for predictor_set in predictor_sets:
            pairs.append((family, predictor_set))
    return pairs


def _evaluate_candidate(family, task, outcome, predictors, name, train_df, test_df,
                        y_train, y_test, plan, config):
    models_cfg = config.get('models', {})
    seed = config['experiment']['seed']
    X_train = train_df[list(predictors)]
    X_test = test_df[list(predictors)]
    messages = []

    coefficients = importances = tuning_table = None
    best_params = {}
    cv_metrics = {}
    fit_stats = {}

    if family in SIMPLE_FAMILIES:
        model = fit(family, task, X_train, y_train, seed=seed)
        coefficients = model.coefficient_table()
        fit_stats = model.fit_stats()
        messages.extend(model.warnings)
    else:
        fixed = models_cfg.get('params', {}).get(family, {}) or {}
        grid = models_cfg.get('grids', {}).get(family)
        design = DesignEncoder().fit_transform(X_train).to_numpy(dtype=float)

        search = tune(family, task, design, y_train, plan, grid=grid, seed=seed,
                      n_jobs=config.get('tuning', {}).get('n_jobs'), fixed_params=fixed)
        if search.failures:
            messages.append(f"{family}: {len(search.failures)} of "
                            f"{len(search.table) * len(plan)} tuning fits failed")

        best_params = search.best_params
        tuning_table = search.table
        scores = np.asarray(search.fold_scores, dtype=float)
        selected = tuning_table[tuning_table['selected']].iloc[0]
        cv_metrics = {
            search.metric: {
                'mean': float(selected['mean']),
                'std_err': float(selected['std_err']),
                'all': [float(s) for s in scores],
            }
        }

        model = fit(family, task, X_train, y_train, seed=seed, params={**fixed, **best_params})
        coefficients = model.coefficient_table()
        importances = model.importance_table()

    train_metrics, w = compute_metrics(task, y_train, model.predict(X_train), 'train ')
    messages.extend(w)
    test_metrics, w = compute_metrics(task, y_test, model.predict(X_test), 'test ')
    messages.extend(w)

    return ModelResult(
        name=name,
        family=family,
        task=task,
        outcome=outcome,
        predictors=tuple(predictors),
        model=model,
        coefficients=coefficients,
        importances=importances,
        best_params=best_params,
        tuning_table=tuning_table,
        train_metrics=train_metrics,
        cv_metrics=cv_metrics,
        test_metrics=test_metrics,
        fit_stats=fit_stats,
        warnings=tuple(messages),
    )


def evaluate(processed_table, outcome_column, predictor_sets, config, assignment=None, plan=None):
    """
    Fit and compare every candidate on a seeded Train/Test split.

    Args:
        processed_table: complete-case DataFrame
        outcome_column: continuous (regression) or binary (classification) target
        predictor_sets: list of predictor sets ('all', a column name or a list of names)
        config: validated analysis config
        assignment, plan: optional precomputed SplitAssignment / CVPlan

    Returns:
        list of ModelResult, best first by the configured comparison metric
    """
    data_cfg = config['data']
    task = data_cfg['target_type']
    positive = data_cfg.get('positive_class')
    seed = config['experiment']['seed']
    split_cfg = config.get('split', {})
    cv_cfg = config.get('cross_validation', {})
    families = config['models']['families']
    predictor_sets = list(predictor_sets) or [ALL_PREDICTORS]

    unknown = [f for f in families if f not in SUPPORTED_MODELS[task]]
    if unknown:
        raise ValueError(f"Families {unknown} not supported for {task}. Supported: {SUPPORTED_MODELS[task]}")

    stratify = split_cfg.get('stratify', True)
    if assignment is None:
        assignment = split_train_test(
            processed_table, outcome_column,
            train_fraction=split_cfg.get('train_fraction', 0.7),
            seed=seed, stratify=stratify, task=task,
        )
    train_df, test_df = assignment.apply(processed_table)
    y_train = encode_outcome(train_df[outcome_column], task, positive)
    y_test = encode_outcome(test_df[outcome_column], task, positive)
    print(f"Split: {assignment.n_train} train / {assignment.n_test} test rows "
          f"(seed={seed}, stratified={assignment.stratified})")

    if plan is None and any(f in TUNED_FAMILIES for f in families):
        plan = build_cv_plan(
            train_df[outcome_column], task,
            n_splits=cv_cfg.get('n_splits', 5),
            n_repeats=cv_cfg.get('n_repeats', 5),
            seed=seed,
            stratify=cv_cfg.get('stratify', stratify),
        )

    results = []
    for family, predictor_set in _candidates(families, predictor_sets):
        if family == 'null':
            predictors, name = [], 'null'
        else:
            predictors = resolve_predictors(processed_table, outcome_column, predictor_set)
            label = predictor_set_label(processed_table, outcome_column, predictor_set)
            name = f"{family}_{label}"

        print(f"\nFitting {name} ({len(predictors)} predictors)...")
        try:
            result = _evaluate_candidate(
                family, task, outcome_column, predictors, name,
                train_df, test_df, y_train, y_test, plan, config,
            )
        except ValueError as e:
            print(f"  [WARN] {name} could not be fitted: {e}")
            result = ModelResult(
                name=name, family=family, task=task, outcome=outcome_column,
                predictors=tuple(predictors), warnings=(f"{family}: {e}",),
            )
        for message in result.warnings:
            print(f"  [WARN] {message}")
        results.append(result)

    comparison = config.get('comparison', {})
    metric = comparison.get('metric', primary_metric(task))
    split = comparison.get('split', 'test')
    return rank_results(results, metric, split)


def rank_results(results, metric, split='test'):
    """
    Order results best first: ascending for error metrics, descending for
    AUC/accuracy/R2. Undefined values go last; ties keep input order.
    """
    lower_is_better = METRIC_DIRECTIONS[metric]

    def sort_key(result):
        value = result.metric(metric, split)
        if np.isnan(value):
            return (1, 0.0)
        return (0, value if lower_is_better else -value)

    return sorted(results, key=sort_key)


def results_table(results):
    """Flat comparison table, one row per candidate, in the given order."""
    rows = []
    for rank, result in enumerate(results, start=1):
        row = {
            'rank': rank,
            'name': result.name,
            'family': result.family,
            'n_predictors': len(result.predictors),
        }
        for metric, value in result.train_metrics.items():
            row[f'train_{metric}'] = value
        for metric, values in result.cv_metrics.items():
            row[f'cv_{metric}_mean'] = values['mean']
            row[f'cv_{metric}_std_err'] = values['std_err']
        for metric, value in result.test_metrics.items():
            row[f'test_{metric}'] = value
        for stat in ('aic', 'bic', 'loglik'):
            if stat in result.fit_stats:
                row[stat] = result.fit_stats[stat]
        row['best_params'] = str(result.best_params) if result.best_params else ''
        row['n_warnings'] = len(result.warnings)
        rows.append(row)
    return pd.DataFrame(rows)
