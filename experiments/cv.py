# Cross-validation plan on the training partition

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from sklearn.model_selection import RepeatedKFold, RepeatedStratifiedKFold

from .split import strata_for


@dataclass(frozen=True)
class CVPlan:
    """
    Repeated k-fold partitions of Train.

    folds holds (fit_idx, val_idx) pairs, positional within Train. Within one
    repeat every row is used exactly once for validation.
    """
    n_splits: int
    n_repeats: int
    stratified: bool
    folds: Tuple[Tuple[np.ndarray, np.ndarray], ...]

    def __len__(self):
        return len(self.folds)

    def __iter__(self):
        return iter(self.folds)

    def repeat_of(self, fold_number):
        return fold_number // self.n_splits


def _validate_cv_split(fit_idx, val_idx, n_rows):
    """
    Validate CV split integrity.

    Assertions:
    - Fit/val indices are disjoint
    - All indices fall inside the training partition
    """
    fit_set = set(fit_idx)
    val_set = set(val_idx)
    if not fit_set.isdisjoint(val_set):
        overlap = fit_set.intersection(val_set)
        raise ValueError(f"CV LEAK: Fit/val indices overlap! {len(overlap)} shared indices")

    if len(val_idx) == 0:
        raise ValueError("CV split has an empty validation fold")

    if min(fit_set | val_set) < 0 or max(fit_set | val_set) >= n_rows:
        raise ValueError("CV split indices fall outside the training partition")

    return True


def build_cv_plan(y_train, task='regression', n_splits=5, n_repeats=5, seed=123, stratify=True):
    """
    Generate n_repeats x n_splits (fit, validation) partitions of Train.

    Fold assignment is stratified on the outcome (levels, or quartile bins of a
    continuous outcome) when stratify is set.
    """
    n_rows = len(y_train)
    if n_rows < n_splits:
        raise ValueError(f"Cannot build {n_splits} folds from {n_rows} training rows")

    print(f"Building {n_splits}-fold x {n_repeats} repeats CV plan"
          f"{' (stratified)' if stratify else ''}...")

    positions = np.arange(n_rows)
    if stratify:
        strata = strata_for(y_train, task)
        cv = RepeatedStratifiedKFold(n_splits=n_splits, n_repeats=n_repeats, random_state=seed)
        splits = cv.split(positions, strata)
    else:
        cv = RepeatedKFold(n_splits=n_splits, n_repeats=n_repeats, random_state=seed)
        splits = cv.split(positions)

    folds = []
    for fit_idx, val_idx in splits:
        _validate_cv_split(fit_idx, val_idx, n_rows)
        fit_idx.flags.writeable = False
        val_idx.flags.writeable = False
        folds.append((fit_idx, val_idx))

    return CVPlan(
        n_splits=n_splits,
        n_repeats=n_repeats,
        stratified=bool(stratify),
        folds=tuple(folds),
    )
