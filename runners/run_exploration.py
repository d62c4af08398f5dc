"""
Exploration Runner
Descriptive statistics of the processed dataset against the two outcomes.
"""

import os
import sys
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from experiments.io import load_config, create_run_dir
from experiments.data import load_dataset
from analysis.exploration import explore, save_exploration

DEFAULT_OUTCOMES = ['BodyTemp', 'Nausea']


def run_exploration(config_path, outcomes=None, output_dir=None, store_root=None):
    """
    Build and save the exploration tables.

    Returns:
        (tables dict, directory the tables were written to)
    """
    config = load_config(config_path)
    if output_dir:
        config['experiment']['output_dir'] = output_dir
    if store_root:
        config['data']['store_root'] = store_root

    outcomes = outcomes or config.get('exploration', {}).get('outcomes', DEFAULT_OUTCOMES)

    print("=" * 60)
    print("EXPLORATORY ANALYSIS")
    print("=" * 60)

    df, path = load_dataset(config)
    print(f"Dataset: {path} ({df.shape[0]} rows x {df.shape[1]} columns)")

    missing = [o for o in outcomes if o not in df.columns]
    if missing:
        raise ValueError(f"Outcome columns not found in dataset: {missing}")

    tables = explore(df, outcomes)

    run_dir = create_run_dir(config)
    out_dir = os.path.join(run_dir, 'exploration')
    save_exploration(tables, out_dir)
    print(f"Exploration tables saved to: {out_dir}")
    return tables, out_dir


def main():
    parser = argparse.ArgumentParser(description='Exploration tables for the processed dataset')
    parser.add_argument('--config', '-c', type=str, default='configs/bodytemp.yaml',
                        help='Path to analysis config YAML file (data and output sections)')
    parser.add_argument('--outcomes', nargs='+', default=None,
                        help='Outcome columns (default: BodyTemp Nausea)')
    parser.add_argument('--data-root', type=str, default=None,
                        help='Dataset store root (overrides config)')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Output directory (overrides config)')
    args = parser.parse_args()

    run_exploration(args.config, args.outcomes, args.output, args.data_root)


if __name__ == "__main__":
    main()
