# Held-out comparison of tuned model families

import pandas as pd

from .metrics import evaluate_predictions


def compare_models(results, X_test, y_test):
    """
    Score every tuned model on the evaluation subset.

    Args:
        results: dict model name -> TuningResult
        X_test, y_test: evaluation subset

    Returns:
        DataFrame indexed by model name, sorted by test RMSE
    """
    rows = []
    for name, result in results.items():
        test_scores = evaluate_predictions(y_test, result.predict(X_test))
        rows.append({
            'model': name,
            'cv_metric': result.metric,
            'cv_mean': result.best_score,
            'cv_std': float(result.best_row[f"{result.metric}_std"]),
            'test_rmse': test_scores['rmse'],
            'test_mae': test_scores['mae'],
            'test_r2': test_scores['r2'],
            'test_spearman': test_scores['spearman'],
            'best_params': result.best_params,
        })

    if not rows:
        return pd.DataFrame(columns=['cv_metric', 'cv_mean', 'cv_std', 'test_rmse', 'test_mae',
                                     'test_r2', 'test_spearman', 'best_params'])
    return pd.DataFrame(rows).set_index('model').sort_values('test_rmse')


def format_results_table(comparison, float_format='{:.4f}'):
    """Render a comparison table as plain text."""
    if comparison.empty:
        return '(no models)'
    table = comparison.copy()
    for col in table.columns:
        if pd.api.types.is_float_dtype(table[col]):
            table[col] = table[col].map(float_format.format)
    if 'best_params' in table.columns:
        table['best_params'] = table['best_params'].map(
            lambda p: ', '.join(f"{k}={v}" for k, v in sorted(p.items()))
        )
    return table.to_string()
