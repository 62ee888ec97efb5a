# I/O utilities for tuning runs
# Config loading, result saving, run directory management

import os
import json
import hashlib
from datetime import datetime

import joblib
import yaml


def load_config(config_path):
    """Load YAML configuration file."""
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Config file is empty or invalid: {config_path}")

    return config


def config_hash(config):
    """Generate deterministic hash of config for run naming."""
    config_str = json.dumps(config, sort_keys=True)
    return hashlib.md5(config_str.encode()).hexdigest()[:8]


def dataset_hash(df):
    """Generate hash of dataset content for fingerprinting."""
    # Hash based on shape and sample of data
    content = f"{df.shape}_{df.columns.tolist()}_{df.head(10).to_json()}_{df.tail(10).to_json()}"
    return hashlib.md5(content.encode()).hexdigest()[:12]


def create_run_dir(config, output_dir=None):
    """Create unique run directory for experiment outputs."""
    output_dir = output_dir or config['experiment'].get('output_dir', 'runs')
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    cfg_hash = config_hash(config)
    run_name = f"{config['experiment']['name']}_{timestamp}_{cfg_hash}"
    run_dir = os.path.join(output_dir, run_name)
    os.makedirs(run_dir, exist_ok=True)
    return run_dir


def save_sklearn_model(obj, path):
    """Save a fitted estimator with joblib. Returns the path."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    joblib.dump(obj, path)
    return path


def _jsonable(value):
    if hasattr(value, 'item'):
        return value.item()
    return value


def save_results(run_dir, config, results, comparison):
    """
    Save all tuning artifacts to the run directory.

    Writes config.yaml, metrics.json, tuning_results_<model>.csv,
    folds_<model>.csv, comparison.csv and model_<model>.joblib.
    """
    with open(os.path.join(run_dir, 'config.yaml'), 'w') as f:
        yaml.dump(config, f, default_flow_style=False)

    metrics_json = {
        'experiment_name': config['experiment']['name'],
        'seed': config['experiment']['seed'],
        'target_column': config['data']['target_column'],
        'models': {},
    }

    for name, result in results.items():
        summary = result.summary()
        summary['best_params'] = {k: _jsonable(v) for k, v in summary['best_params'].items()}
        if name in comparison.index:
            row = comparison.loc[name]
            summary['test_results'] = {
                'rmse': float(row['test_rmse']),
                'mae': float(row['test_mae']),
                'r2': float(row['test_r2']),
                'spearman': float(row['test_spearman']),
            }
        metrics_json['models'][name] = summary

        result.results.to_csv(os.path.join(run_dir, f'tuning_results_{name}.csv'), index=False)
        result.fold_results.to_csv(os.path.join(run_dir, f'folds_{name}.csv'), index=False)
        save_sklearn_model(result.final_model, os.path.join(run_dir, f'model_{name}.joblib'))

    with open(os.path.join(run_dir, 'metrics.json'), 'w') as f:
        json.dump(metrics_json, f, indent=2)

    table = comparison.copy()
    if 'best_params' in table.columns:
        table['best_params'] = table['best_params'].map(lambda p: json.dumps(p, sort_keys=True, default=str))
    table.to_csv(os.path.join(run_dir, 'comparison.csv'))

    return run_dir


def save_data_profile(run_dir, df, X, y, dataset_path, split=None):
    """Save dataset fingerprint/profile for reproducibility tracking."""
    profile = {
        'dataset_path': str(dataset_path) if dataset_path else None,
        'dataset_hash': dataset_hash(df),
        'total_rows': len(df),
        'total_columns': len(df.columns),
        'feature_count': len(X.columns),
        'features_used': list(X.columns),
        'target_column': y.name,
        'target_stats': {
            'mean': float(y.mean()),
            'std': float(y.std()),
            'min': float(y.min()),
            'max': float(y.max()),
        },
        'missing_values': int(X.isnull().sum().sum()),
        'timestamp': datetime.now().isoformat()
    }
    if split is not None:
        profile['train_rows'], profile['test_rows'] = split.sizes

    with open(os.path.join(run_dir, 'data_profile.json'), 'w') as f:
        json.dump(profile, f, indent=2)

    return profile
