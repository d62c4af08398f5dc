# Model comparison runner
# Split, tune, fit and compare every configured candidate for one outcome

import argparse
import random
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pandas as pd

from experiments.config_schema import validate_config, ConfigValidationError
from experiments.io import load_config, save_results, create_run_dir, save_data_profile
from experiments.data import load_dataset, preprocess_data, validate_data_integrity, ALL_PREDICTORS
from experiments.harness import evaluate, results_table
from experiments.metrics import METRIC_DIRECTIONS, primary_metric
from analysis.comparison import (
    coefficient_table,
    format_comparison_markdown,
    glance_table,
    nested_anova,
    significant_terms,
)


def set_seeds(seed):
    """Set all random seeds for reproducibility."""
    random.seed(seed)
    np.random.seed(seed)


def predictor_sets_from_config(config):
    """Main predictor alone, then all predictors, unless the config lists sets explicitly."""
    sets = config['models'].get('predictor_sets')
    if sets:
        return sets
    main = config['data'].get('main_predictor')
    return [main, ALL_PREDICTORS] if main else [ALL_PREDICTORS]


def _save_comparison_tables(run_dir, results, alpha=0.05):
    """Write glance.csv (fit statistics side by side) and significant_terms.csv."""
    glance_table(results).to_csv(os.path.join(run_dir, 'glance.csv'), index=False)

    significant = []
    for result in results:
        coefficients = coefficient_table(result)
        if coefficients is not None and 'p_value' in coefficients.columns:
            significant.append(significant_terms(coefficients, alpha))
    if not significant:
        return None

    table = pd.concat(significant, ignore_index=True)
    path = os.path.join(run_dir, 'significant_terms.csv')
    table.to_csv(path, index=False)
    print(f"\nSignificant terms (p < {alpha}): {len(table)}")
    return path


def _save_nested_anova(run_dir, results):
    linear = {r.name: r for r in results if r.family == 'linear' and r.model is not None}
    if len(linear) < 2:
        return None

    ordered = sorted(linear.values(), key=lambda r: len(r.predictors))
    small, large = ordered[0], ordered[-1]
    try:
        table = nested_anova(small, large)
    except ValueError as e:
        print(f"Nested ANOVA skipped: {e}")
        return None

    path = os.path.join(run_dir, 'nested_anova.csv')
    table.to_csv(path)
    print("\nNested ANOVA:")
    print(table.to_string())
    return path


def run_models(config_path, store_root=None, output_dir=None):
    """
    Run the split-and-evaluate harness for one outcome.

    Args:
        config_path: Path to YAML config file
        store_root: Optional dataset store root (overrides config)
        output_dir: Optional output directory (overrides config)

    Returns:
        (run_dir, ordered list of ModelResult)
    """
    config = load_config(config_path)

    if output_dir:
        config['experiment']['output_dir'] = output_dir
    if store_root:
        config['data']['store_root'] = store_root

    try:
        validate_config(config)
    except ConfigValidationError as e:
        print(f"\nCONFIG ERROR:\n{e}")
        raise

    seed = config['experiment']['seed']
    set_seeds(seed)

    target = config['data']['target_column']
    target_type = config['data']['target_type']
    comparison = config.get('comparison', {})
    metric = comparison.get('metric', primary_metric(target_type))
    split = comparison.get('split', 'test')

    print("=" * 60)
    print("MODEL COMPARISON")
    print("=" * 60)
    print(f"Experiment: {config['experiment']['name']}")
    print(f"Target: {target} ({target_type})")
    print(f"Families: {config['models']['families']}")
    print(f"Seed: {seed}")
    print("=" * 60)

    df, actual_path = load_dataset(config)

    X, y = preprocess_data(df, config)
    validate_data_integrity(X, y, config)

    print(f"\nDataset shape: {df.shape}")
    if target_type == 'regression':
        print(f"Target stats: mean={y.mean():.4f}, std={y.std():.4f}, min={y.min():.4f}, max={y.max():.4f}")
    else:
        print(f"Class distribution: {y.value_counts().to_dict()}")

    results = evaluate(df, target, predictor_sets_from_config(config), config)
    table = results_table(results)

    print("\n" + "=" * 60)
    print(f"RESULTS (ordered by {split} {metric})")
    print("=" * 60)
    for _, row in table.iterrows():
        value = row.get(f"{split}_{metric}" if split != 'cv' else f"cv_{metric}_mean", np.nan)
        print(f"{row['rank']:>2}. {row['name']:30s} | {metric}: {value:.4f}")

    run_dir = create_run_dir(config)
    save_data_profile(run_dir, df, target, actual_path)
    save_results(run_dir, config, results, comparison=table)

    metric_column = f"{split}_{metric}" if split != 'cv' else f"cv_{metric}_mean"
    with open(os.path.join(run_dir, 'comparison.md'), 'w') as f:
        f.write(format_comparison_markdown(table, metric_column, METRIC_DIRECTIONS[metric]))

    _save_comparison_tables(run_dir, results)
    if target_type == 'regression':
        _save_nested_anova(run_dir, results)

    print("\n" + "=" * 60)
    print("Model comparison complete!")
    print("=" * 60)

    return run_dir, results


def main():
    parser = argparse.ArgumentParser(description='Fit and compare models for one outcome')
    parser.add_argument('--config', '-c', type=str, default='configs/bodytemp.yaml',
                        help='Path to config YAML file')
    parser.add_argument('--data-root', type=str, default=None,
                        help='Dataset store root (overrides config)')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Output directory (overrides config)')
    args = parser.parse_args()

    run_models(args.config, args.data_root, args.output)


if __name__ == "__main__":
    main()
