# Reproducible train/test split, optionally stratified by the outcome

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split


@dataclass(frozen=True)
class SplitAssignment:
    """Disjoint positional Train/Test row indices; read-only after creation."""
    train_idx: np.ndarray
    test_idx: np.ndarray
    seed: int
    train_fraction: float
    stratified: bool

    def __post_init__(self):
        for idx in (self.train_idx, self.test_idx):
            idx.flags.writeable = False

    @property
    def n_train(self):
        return len(self.train_idx)

    @property
    def n_test(self):
        return len(self.test_idx)

    def apply(self, df):
        """Return (train_df, test_df) with a fresh index each."""
        train = df.iloc[self.train_idx].reset_index(drop=True)
        test = df.iloc[self.test_idx].reset_index(drop=True)
        return train, test


def strata_for(y, task, n_bins=4):
    """
    Stratification labels for an outcome.

    Categorical outcomes stratify on their own levels; continuous outcomes on
    quantile bins (quartiles by default). Duplicate bin edges are dropped.
    """
    y = pd.Series(y).reset_index(drop=True)
    if task == 'classification':
        return y.astype(str).to_numpy()

    if y.nunique() < 2:
        return np.zeros(len(y), dtype=int)
    bins = pd.qcut(y, q=n_bins, labels=False, duplicates='drop')
    return bins.to_numpy()


def split_train_test(df, outcome, train_fraction=0.7, seed=123, stratify=True, task='regression'):
    """
    Draw a seeded Train/Test partition of the row positions of df.

    With stratify=True the partition is drawn per outcome stratum, keeping
    stratum proportions approximately equal in Train and Test.
    """
    if outcome not in df.columns:
        raise ValueError(f"Outcome column '{outcome}' not found. Available: {list(df.columns)}")
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    positions = np.arange(len(df))
    strata = strata_for(df[outcome], task) if stratify else None

    train_idx, test_idx = train_test_split(
        positions,
        train_size=train_fraction,
        random_state=seed,
        shuffle=True,
        stratify=strata,
    )

    train_idx = np.sort(train_idx)
    test_idx = np.sort(test_idx)

    if not set(train_idx).isdisjoint(test_idx):
        raise ValueError("SPLIT LEAK: Train/test indices overlap")

    return SplitAssignment(
        train_idx=train_idx,
        test_idx=test_idx,
        seed=seed,
        train_fraction=train_fraction,
        stratified=bool(stratify),
    )


def class_proportions(y, assignment):
    """Per-level proportions of y in Train and Test, with their absolute gap."""
    y = pd.Series(y).reset_index(drop=True).astype(str)
    train = y.iloc[assignment.train_idx].value_counts(normalize=True)
    test = y.iloc[assignment.test_idx].value_counts(normalize=True)
    table = pd.DataFrame({'train': train, 'test': test}).fillna(0.0)
    table['abs_diff'] = (table['train'] - table['test']).abs()
    return table.sort_index()
