# Main Pipeline - runs the full workflow from raw data to model comparison
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
from datetime import datetime


def print_header(title):
    print("\n" + "=" * 70)
    print(f" {title}")
    print("=" * 70)


def print_step(step_num, description):
    print(f"\n[STEP {step_num}] {description}")
    print("-" * 50)


def run_full_pipeline(
    processing_config: str = "configs/processing.yaml",
    analysis_configs=("configs/bodytemp.yaml", "configs/nausea.yaml"),
    store_root: str = None,
    output_dir: str = None,
    skip_processing: bool = False,
    skip_exploration: bool = False,
):
    from runners.run_processing import run_processing
    from runners.run_exploration import run_exploration
    from runners.run_models import run_models

    print_header("INFLUENZA SYMPTOM MODELLING PIPELINE")
    print(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    summary = {'processed_path': None, 'exploration_dir': None, 'runs': {}}

    if not skip_processing:
        print_step(1, "PROCESSING")
        _, summary['processed_path'] = run_processing(processing_config, store_root)

    if not skip_exploration:
        print_step(2, "EXPLORATION")
        _, summary['exploration_dir'] = run_exploration(
            analysis_configs[0], output_dir=output_dir, store_root=store_root)

    for i, config_path in enumerate(analysis_configs, start=3):
        print_step(i, f"MODELS ({config_path})")
        run_dir, results = run_models(config_path, store_root, output_dir)
        summary['runs'][config_path] = {
            'run_dir': run_dir,
            'best': results[0].name if results else None,
        }

    print_header("PIPELINE COMPLETE")
    for config_path, info in summary['runs'].items():
        print(f"  {config_path}: best = {info['best']} -> {info['run_dir']}")

    return summary


def main():
    parser = argparse.ArgumentParser(description='Run processing, exploration and model comparison')
    parser.add_argument('--processing-config', type=str, default='configs/processing.yaml')
    parser.add_argument('--configs', nargs='+', default=['configs/bodytemp.yaml', 'configs/nausea.yaml'],
                        help='Analysis config files, one per outcome')
    parser.add_argument('--data-root', type=str, default=None,
                        help='Dataset store root (overrides configs)')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Output directory (overrides configs)')
    parser.add_argument('--skip-processing', action='store_true')
    parser.add_argument('--skip-exploration', action='store_true')
    args = parser.parse_args()

    run_full_pipeline(
        processing_config=args.processing_config,
        analysis_configs=args.configs,
        store_root=args.data_root,
        output_dir=args.output,
        skip_processing=args.skip_processing,
        skip_exploration=args.skip_exploration,
    )


if __name__ == "__main__":
    main()
