# Tuning experiment runner
# Loads the dataset, splits train/test, tunes every configured model family
# and compares them on the held-out subset.

import argparse
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tuning.config_schema import validate_config, ConfigValidationError
from tuning.io import load_config, save_results, create_run_dir, save_data_profile
from tuning.data import load_dataset, preprocess_data, validate_data_integrity
from tuning.split import split_dataset
from tuning.resampling import build_resampling
from tuning.grid import build_grid
from tuning.models import get_family
from tuning.pool import WorkerPool
from tuning.orchestrator import Tuner
from tuning.compare import compare_models, format_results_table
from tuning.plots import plot_model_comparison, plot_resample_distribution, plot_tuning_profile
from tuning.seeding import make_rng
from tuning.logger import get_logger, add_file_handler, remove_file_handlers


def tune_models(X_train, y_train, config, rng, pool):
    """Tune every model listed in `config['models']`; returns name -> TuningResult."""
    tuning_cfg = config.get('tuning') or {}
    resampling = build_resampling(config['resampling'])

    results = {}
    for entry in config['models']:
        family = get_family(entry['type'])
        name = entry.get('name', family.name)
        grid = build_grid(family, entry, rng)

        print(f"\n>>> {name}: {len(grid)} candidates, {resampling.method} "
              f"({resampling.n_splits} folds x {resampling.n_repeats} repeats)")

        tuner = Tuner(
            family,
            grid=grid,
            resampling=resampling,
            metric=tuning_cfg.get('metric', 'rmse'),
            pool=pool,
            seed=rng,
            select=tuning_cfg.get('select', 'best'),
            tolerance=tuning_cfg.get('tolerance', 1.5),
        )
        result = tuner.fit(X_train, y_train)
        results[name] = result

        print(f"    best: {result.best_params}  "
              f"{result.metric.upper()}={result.best_score:.4f} "
              f"± {result.best_row[f'{result.metric}_std']:.4f}")
        if result.eliminated:
            print(f"    adaptive resampling eliminated {len(result.eliminated)} of "
                  f"{len(result.candidates)} candidates")

    return results


def save_plots(run_dir, results, comparison):
    plot_model_comparison(comparison, os.path.join(run_dir, 'comparison.png'))
    plot_resample_distribution(results, os.path.join(run_dir, 'cv_distribution.png'))
    for name, result in results.items():
        numeric = [
            k for k, v in result.best_params.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        ]
        varying = [k for k in numeric if result.results[k].nunique() > 1]
        if varying:
            plot_tuning_profile(result, varying[0], os.path.join(run_dir, f'profile_{name}.png'))


def run_tuning(config_path, dataset_path=None, output_dir=None, n_jobs=None):
    """
    Run a tuning experiment.

    Args:
        config_path: Path to YAML config file
        dataset_path: Optional path to dataset CSV (overrides config)
        output_dir: Optional output directory (overrides config)
        n_jobs: Optional worker count (overrides tuning.n_jobs)

    Returns:
        run_dir: Path to experiment output directory
    """
    config = load_config(config_path)

    if output_dir:
        config['experiment']['output_dir'] = output_dir
    if n_jobs is not None:
        config.setdefault('tuning', {})['n_jobs'] = n_jobs

    try:
        validate_config(config)
    except ConfigValidationError as e:
        print(f"\nCONFIG ERROR:\n{e}")
        raise

    seed = config['experiment']['seed']
    rng = make_rng(seed)
    target = config['data']['target_column']
    tuning_cfg = config.get('tuning') or {}

    print("=" * 60)
    print("MODEL TUNING EXPERIMENT")
    print("=" * 60)
    print(f"Experiment: {config['experiment']['name']}")
    print(f"Target: {target}")
    print(f"Seed: {seed}")
    print(f"Models: {[m.get('name', m['type']) for m in config['models']]}")
    print("=" * 60)

    run_dir = create_run_dir(config)
    logger = get_logger('tuning')
    add_file_handler(logger, os.path.join(run_dir, 'run.log'))

    try:
        df, actual_path = load_dataset(config, dataset_path)
        X, y = preprocess_data(df, config)
        validate_data_integrity(X, y)

        split = split_dataset(X, y, config['data'].get('train_size', 0.8), rng)
        n_train, n_test = split.sizes
        print(f"\nDataset shape: {X.shape}")
        print(f"Train/test: {n_train}/{n_test}")
        print(f"Target stats: mean={y.mean():.4f}, std={y.std():.4f}, min={y.min():.4f}, max={y.max():.4f}")

        pool = WorkerPool(n_jobs=tuning_cfg.get('n_jobs'), backend=tuning_cfg.get('backend'))
        print(f"Workers: {pool.n_jobs}")

        results = tune_models(split.X_train, split.y_train, config, rng, pool)
        comparison = compare_models(results, split.X_test, split.y_test)

        print("\n" + "=" * 60)
        print("HELD-OUT RESULTS (sorted by test RMSE)")
        print("=" * 60)
        print(format_results_table(comparison))

        save_data_profile(run_dir, df, X, y, actual_path, split)
        save_results(run_dir, config, results, comparison)
        if (config.get('metrics') or {}).get('save_plots', True):
            save_plots(run_dir, results, comparison)
    finally:
        remove_file_handlers(logger)

    print("\n" + "=" * 60)
    print(f"Tuning experiment complete! Results saved to: {run_dir}")
    print("=" * 60)

    return run_dir


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Tune and compare regression models on a CSV dataset'
    )
    parser.add_argument('--config', '-c', type=str, default='configs/tuning_regression.yaml',
                       help='Path to config YAML file')
    parser.add_argument('--dataset', '-d', type=str, default=None,
                       help='Path to dataset CSV (overrides config)')
    parser.add_argument('--output-dir', '-o', type=str, default=None,
                       help='Output directory for run folders (overrides config)')
    parser.add_argument('--n-jobs', '-j', type=int, default=None,
                       help='Worker count for fold x candidate fits (default: all CPUs)')
    args = parser.parse_args(argv)

    run_tuning(args.config, args.dataset, args.output_dir, args.n_jobs)


if __name__ == "__main__":
    main()
