# Processing runner
# Raw symptom table -> processed complete-case table

import argparse
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from experiments.config_schema import validate_processing_config, ConfigValidationError
from experiments.io import load_config
from processing.preprocessing import process_dataset, SchemaError


def run_processing(config_path, store_root=None):
    """
    Clean the raw dataset and save the processed table.

    Args:
        config_path: Path to processing YAML config
        store_root: Optional dataset store root (overrides config)

    Returns:
        (processed DataFrame, path it was saved to)
    """
    config = load_config(config_path)

    if store_root:
        config['data']['store_root'] = store_root

    try:
        validate_processing_config(config)
    except ConfigValidationError as e:
        print(f"\nCONFIG ERROR:\n{e}")
        raise

    print("=" * 60)
    print("DATA PROCESSING")
    print("=" * 60)

    try:
        processed, path = process_dataset(config)
    except SchemaError as e:
        print(f"\nSCHEMA ERROR (nothing saved):\n{e}")
        raise

    print("=" * 60)
    print("Processing complete!")
    print("=" * 60)
    return processed, path


def main():
    parser = argparse.ArgumentParser(description='Clean the raw influenza symptom dataset')
    parser.add_argument('--config', '-c', type=str, default='configs/processing.yaml',
                        help='Path to processing config YAML file')
    parser.add_argument('--data-root', type=str, default=None,
                        help='Dataset store root (overrides config)')
    args = parser.parse_args()

    run_processing(args.config, args.data_root)


if __name__ == "__main__":
    main()
