# Data loading and feature/target extraction

import numpy as np
import pandas as pd

from .io import DatasetStore

ALL_PREDICTORS = 'all'


def load_dataset(config, store=None):
    """Load the processed table named in the config from the dataset store."""
    store = store or DatasetStore.from_config(config)
    name = config['data'].get('processed_name', 'processed')
    df = store.load(name)
    return df, store.path_for(name)


def resolve_predictors(df, outcome, predictor_set=ALL_PREDICTORS):
    """
    Column names of a predictor set.

    'all' (or '.') means every column except the outcome; a string names a
    single predictor; a list or set names the predictors explicitly.
    Predictors always come back in the column order of df.
    """
    if outcome not in df.columns:
        raise ValueError(f"Target column '{outcome}' not found in dataset. Available: {list(df.columns)}")

    if predictor_set in (ALL_PREDICTORS, '.'):
        return [c for c in df.columns if c != outcome]

    if isinstance(predictor_set, str):
        predictor_set = [predictor_set]

    requested = set(predictor_set)
    if not requested:
        raise ValueError("Predictor set is empty")

    missing = sorted(c for c in requested if c not in df.columns)
    if missing:
        raise ValueError(f"Predictor columns not found in dataset: {missing}")

    if outcome in requested:
        raise ValueError(f"BLOCKED: outcome '{outcome}' cannot be used as its own predictor")

    return [c for c in df.columns if c in requested]


def predictor_set_label(df, outcome, predictor_set):
    if predictor_set in (ALL_PREDICTORS, '.'):
        return 'all'
    return '+'.join(resolve_predictors(df, outcome, predictor_set))


def preprocess_data(df, config, predictor_set=ALL_PREDICTORS):
    """
    Extract features and target.

    Returns:
        X: DataFrame of predictors
        y: Series of target values
    """
    target = config['data']['target_column']
    predictors = resolve_predictors(df, target, predictor_set)

    X = df[predictors].copy()
    y = df[target].copy()
    return X, y


def validate_data_integrity(X, y, config):
    """
    Validate data integrity before fitting.

    Checks:
    - No NaN/infinite values
    - Numeric target for regression
    - Binary target containing the positive class for classification
    """
    errors = []

    nan_cols = X.columns[X.isnull().any()].tolist()
    if nan_cols:
        errors.append(f"NaN values found in features: {nan_cols}")

    if y.isnull().any():
        errors.append(f"NaN values found in target ({y.name}): {y.isnull().sum()} missing")

    numeric_cols = X.select_dtypes(include=[np.number]).columns
    for col in numeric_cols:
        if not np.isfinite(X[col]).all():
            errors.append(f"Infinite values found in feature: {col}")

    target_type = config['data'].get('target_type', 'regression')
    if target_type == 'regression':
        if not pd.api.types.is_numeric_dtype(y):
            errors.append(f"Regression target {y.name} must be numeric, got {y.dtype}")
        elif not np.isfinite(y).all():
            errors.append(f"Infinite values found in target: {y.name}")
    else:
        positive = str(config['data'].get('positive_class'))
        levels = set(y.astype(str).unique())
        if len(levels) > 2:
            errors.append(f"Classification target {y.name} must be binary, found levels {sorted(levels)}")
        if positive not in levels:
            errors.append(f"Positive class '{positive}' not present in target {y.name}")

    if errors:
        raise ValueError("Data integrity check failed:\n  - " + "\n  - ".join(errors))

    return True
