# I/O utilities for the modelling pipeline
# Config loading, dataset store, result saving, run directory management

import os
import json
import hashlib
from datetime import datetime

import numpy as np
import yaml
import pandas as pd

DEFAULT_DATASET_NAMES = {
    'raw': os.path.join('raw_data', 'SympAct_Any_Pos.pkl'),
    'processed': os.path.join('processed_data', 'processeddata.pkl'),
}


def load_config(config_path):
    """Load YAML configuration file."""
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Config file is empty or invalid: {config_path}")

    return config


class DatasetStore:
    """
    Named tables on disk, relative to a root directory.

    Names map to relative file paths; the extension picks the format
    (.pkl pandas pickle, .csv plain CSV).
    """

    def __init__(self, root='data', names=None):
        self.root = root
        self.names = dict(DEFAULT_DATASET_NAMES)
        if names:
            self.names.update(names)

    @classmethod
    def from_config(cls, config):
        data_cfg = config.get('data', {})
        return cls(data_cfg.get('store_root', 'data'), data_cfg.get('names'))

    def path_for(self, name):
        relative = self.names.get(name, name)
        return os.path.join(self.root, relative)

    def load(self, name):
        path = self.path_for(name)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Dataset '{name}' not found at: {path}")

        print(f"Loading dataset: {path}")
        if path.endswith('.csv'):
            return pd.read_csv(path)
        return pd.read_pickle(path)

    def save(self, name, table):
        path = self.path_for(name)
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        if path.endswith('.csv'):
            table.to_csv(path, index=False)
        else:
            table.to_pickle(path)
        return path


def config_hash(config):
    """Generate deterministic hash of config for run naming."""
    config_str = json.dumps(config, sort_keys=True)
    return hashlib.md5(config_str.encode()).hexdigest()[:8]


def dataset_hash(df):
    """Generate hash of dataset content for fingerprinting."""
    content = f"{df.shape}_{df.columns.tolist()}_{df.head(10).to_json()}_{df.tail(10).to_json()}"
    return hashlib.md5(content.encode()).hexdigest()[:12]


def create_run_dir(config, output_dir=None):
    """Create unique run directory for analysis outputs."""
    output_dir = output_dir or config['experiment'].get('output_dir', 'results')
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    cfg_hash = config_hash(config)
    run_name = f"{config['experiment']['name']}_{timestamp}_{cfg_hash}"
    run_dir = os.path.join(output_dir, run_name)
    os.makedirs(run_dir, exist_ok=True)
    return run_dir


def _json_number(value):
    if value is None:
        return None
    value = float(value)
    return None if np.isnan(value) else value


def _metrics_to_json(metrics):
    return {k: _json_number(v) for k, v in (metrics or {}).items()}


def result_to_json(result):
    """Plain-JSON view of one ModelResult."""
    cv = {}
    for metric, values in (result.cv_metrics or {}).items():
        cv[metric] = {
            'mean': _json_number(values['mean']),
            'std_err': _json_number(values['std_err']),
            'all': [_json_number(v) for v in values.get('all', [])],
        }

    return {
        'name': result.name,
        'family': result.family,
        'task': result.task,
        'outcome': result.outcome,
        'predictors': list(result.predictors),
        'best_params': result.best_params,
        'train_metrics': _metrics_to_json(result.train_metrics),
        'cv_metrics': cv,
        'test_metrics': _metrics_to_json(result.test_metrics),
        'fit_stats': _metrics_to_json(result.fit_stats),
        'warnings': list(result.warnings),
    }


def save_results(run_dir, config, results, comparison=None, save_models=True):
    """Save all analysis artifacts to run directory."""
    import joblib

    with open(os.path.join(run_dir, 'config.yaml'), 'w') as f:
        yaml.dump(config, f, default_flow_style=False)

    results_json = {
        'experiment_name': config['experiment']['name'],
        'seed': config['experiment']['seed'],
        'target_column': config['data']['target_column'],
        'target_type': config['data']['target_type'],
        'results': [result_to_json(r) for r in results],
    }
    with open(os.path.join(run_dir, 'metrics.json'), 'w') as f:
        json.dump(results_json, f, indent=2)

    if comparison is not None:
        comparison.to_csv(os.path.join(run_dir, 'comparison.csv'), index=False)

    tables_dir = os.path.join(run_dir, 'tables')
    os.makedirs(tables_dir, exist_ok=True)
    for result in results:
        if result.coefficients is not None:
            result.coefficients.to_csv(
                os.path.join(tables_dir, f"{result.name}_coefficients.csv"), index=False)
        if result.importances is not None:
            result.importances.to_csv(
                os.path.join(tables_dir, f"{result.name}_importances.csv"), index=False)
        if result.tuning_table is not None:
            result.tuning_table.to_csv(
                os.path.join(tables_dir, f"{result.name}_tuning.csv"), index=False)

    if save_models:
        models_dir = os.path.join(run_dir, 'models')
        os.makedirs(models_dir, exist_ok=True)
        for result in results:
            if result.model is not None:
                joblib.dump(result.model, os.path.join(models_dir, f"{result.name}.joblib"))

    if config.get('metrics', {}).get('save_plots', True):
        _save_cv_plot(run_dir, config, results)

    print(f"Results saved to: {run_dir}")
    return run_dir


def _save_cv_plot(run_dir, config, results):
    """Save CV score distribution plot of the tuned candidates."""
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    tuned = [r for r in results if r.cv_metrics]
    if not tuned:
        return None

    fig, axes = plt.subplots(1, len(tuned), figsize=(5 * len(tuned), 4), squeeze=False)
    axes = axes.flatten()

    for ax, result in zip(axes, tuned):
        metric = next(iter(result.cv_metrics))
        scores = [s for s in result.cv_metrics[metric]['all'] if not np.isnan(s)]
        ax.hist(scores, bins=20, edgecolor='black', alpha=0.7)
        ax.axvline(result.cv_metrics[metric]['mean'], color='red', linestyle='--',
                   label=f"Mean: {result.cv_metrics[metric]['mean']:.4f}")
        ax.set_title(result.name)
        ax.set_xlabel(metric)
        ax.set_ylabel("Frequency")
        ax.legend()

    plt.suptitle(f"CV scores - {config['data']['target_column']}", fontsize=14)
    plt.tight_layout()
    path = os.path.join(run_dir, 'cv_distribution.png')
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def save_data_profile(run_dir, df, target, dataset_name):
    """Save dataset fingerprint/profile for reproducibility tracking."""
    y = df[target]
    numeric = pd.api.types.is_numeric_dtype(y)
    profile = {
        'dataset_name': str(dataset_name),
        'dataset_hash': dataset_hash(df),
        'total_rows': len(df),
        'total_columns': len(df.columns),
        'columns': list(df.columns),
        'target_column': target,
        'target_stats': {
            'mean': float(y.mean()) if numeric else None,
            'std': float(y.std()) if numeric else None,
            'min': float(y.min()) if numeric else None,
            'max': float(y.max()) if numeric else None,
            'unique_values': int(y.nunique()),
            'value_counts': {str(k): int(v) for k, v in y.value_counts().items()} if y.nunique() <= 10 else None
        },
        'missing_values': int(df.isnull().sum().sum()),
        'timestamp': datetime.now().isoformat()
    }

    with open(os.path.join(run_dir, 'data_profile.json'), 'w') as f:
        json.dump(profile, f, indent=2)

    return profile
