# Regression metrics

import numpy as np
from scipy.stats import spearmanr
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

METRICS = ['rmse', 'mae', 'r2', 'spearman']

# Metrics where larger is better; the rest are minimised
MAXIMIZE = {'r2', 'spearman'}


def is_maximized(metric):
    if metric not in METRICS:
        raise ValueError(f"Unknown metric '{metric}'. Allowed: {METRICS}")
    return metric in MAXIMIZE


def evaluate_predictions(y_true, y_pred):
    """
    Score predictions against held-out targets.

    Returns dict with rmse, mae, r2, spearman. R2 is NaN when fewer than two
    targets are given; Spearman is 0.0 for constant inputs.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    scores = {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'r2': float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float('nan'),
    }

    # Handle constant arrays for Spearman correlation
    if np.std(y_true) > 1e-8 and np.std(y_pred) > 1e-8:
        scores['spearman'] = float(spearmanr(y_true, y_pred)[0])
    else:
        scores['spearman'] = 0.0

    return scores


def summarize(values):
    """Mean/std over the finite values of a per-resample score list."""
    values = np.asarray(values, dtype=float)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return {'mean': float('nan'), 'std': float('nan'), 'n': 0}
    return {'mean': float(np.mean(finite)), 'std': float(np.std(finite)), 'n': int(finite.size)}
