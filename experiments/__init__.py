# Experiments package
# Split-and-evaluate pipeline for reproducible model comparison

from .config_schema import validate_config, validate_processing_config, ConfigValidationError
from .io import DatasetStore, load_config, save_results, create_run_dir, save_data_profile
from .data import load_dataset, preprocess_data, validate_data_integrity
from .split import SplitAssignment, split_train_test
from .cv import CVPlan, build_cv_plan
from .metrics import MetricUndefinedError, compute_metrics
from .models import SUPPORTED_MODELS, FitDegeneracyWarning, fit, predict
from .tuning import tune
from .harness import ModelResult, evaluate, rank_results, results_table

__all__ = [
    'validate_config',
    'validate_processing_config',
    'ConfigValidationError',
    'DatasetStore',
    'load_config',
    'save_results',
    'create_run_dir',
    'save_data_profile',
    'load_dataset',
    'preprocess_data',
    'validate_data_integrity',
    'SplitAssignment',
    'split_train_test',
    'CVPlan',
    'build_cv_plan',
    'MetricUndefinedError',
    'compute_metrics',
    'SUPPORTED_MODELS',
    'FitDegeneracyWarning',
    'fit',
    'predict',
    'tune',
    'ModelResult',
    'evaluate',
    'rank_results',
    'results_table',
]
