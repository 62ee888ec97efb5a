# Data loading and preprocessing utilities

import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def load_dataset(config, dataset_path=None):
    """Load the CSV dataset named by `dataset_path` or `data.dataset_path`."""
    path = dataset_path or config['data'].get('dataset_path')
    if not path:
        raise ValueError("No dataset path given (pass --dataset or set data.dataset_path)")

    logger.info("Loading dataset: %s", path)
    df = pd.read_csv(path)

    return df, path


def preprocess_data(df, config):
    """
    Preprocess dataset: extract features and target.

    Returns:
        X: DataFrame of features
        y: Series of target values
    """
    target = config['data']['target_column']
    preprocessing = config.get('preprocessing') or {}

    # Drop auxiliary columns
    cols_to_drop = preprocessing.get('columns_to_drop', [])
    df = df.drop(columns=[c for c in cols_to_drop if c in df.columns], errors='ignore')

    # Get ignored columns (not dropped, just not used as features)
    ignored = preprocessing.get('ignored_columns', [])
    ignored = [c for c in ignored if c in df.columns and c != target]

    if target not in df.columns:
        raise ValueError(f"Target column '{target}' not found in dataset. Available: {list(df.columns)}")

    feature_cols = [c for c in df.columns if c != target and c not in ignored]
    if not feature_cols:
        raise ValueError("No feature columns left after dropping target and ignored columns")

    X = df[feature_cols].copy()
    y = df[target].copy()

    if ignored:
        logger.info("IGNORED columns (not used in training): %s", ignored)

    return X, y


def validate_data_integrity(X, y):
    """
    Validate data integrity before training.

    Checks:
    - All features and the target are numeric
    - No NaN/infinite values
    - At least two records
    """
    errors = []

    non_numeric = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
    if non_numeric:
        errors.append(f"Non-numeric feature columns: {non_numeric}")

    if not pd.api.types.is_numeric_dtype(y):
        errors.append(f"Target ({y.name}) is not numeric: dtype={y.dtype}")

    nan_cols = X.columns[X.isnull().any()].tolist()
    if nan_cols:
        errors.append(f"NaN values found in features: {nan_cols}")

    if y.isnull().any():
        errors.append(f"NaN values found in target ({y.name}): {y.isnull().sum()} missing")

    numeric_cols = X.select_dtypes(include=[np.number]).columns
    for col in numeric_cols:
        if not np.isfinite(X[col]).all():
            errors.append(f"Infinite values found in feature: {col}")

    if pd.api.types.is_numeric_dtype(y) and not np.isfinite(y.dropna()).all():
        errors.append(f"Infinite values found in target: {y.name}")

    if len(X) != len(y):
        errors.append(f"Feature/target length mismatch: {len(X)} vs {len(y)}")

    if len(X) < 2:
        errors.append(f"Dataset has {len(X)} records; at least 2 are required")

    if errors:
        raise ValueError("Data integrity check failed:\n  - " + "\n  - ".join(errors))

    return True
