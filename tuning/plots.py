# Plots for tuning runs: metric profiles, model comparison, CV distributions

import os

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def plot_tuning_profile(result, param, path, metric=None):
    """
    Mean resampled metric against one hyperparameter.

    Other hyperparameters are shown as separate lines, one per distinct
    combination. Eliminated candidates are drawn hollow.
    """
    metric = metric or result.metric
    table = result.results
    if param not in table.columns:
        raise ValueError(f"Parameter '{param}' is not part of the grid for {result.model_type}")

    other = [k for k in result.candidates[0].keys() if k != param] if result.candidates else []
    groups = table.groupby(other, dropna=False) if other else [((), table)]

    fig, ax = plt.subplots(figsize=(7, 5))
    for key, group in groups:
        group = group.sort_values(param)
        if other:
            key = key if isinstance(key, tuple) else (key,)
            label = ', '.join(f"{k}={v}" for k, v in zip(other, key))
        else:
            label = result.model_type
        line, = ax.plot(group[param], group[f"{metric}_mean"], marker='o', label=label)
        hollow = group[group['eliminated']]
        if not hollow.empty:
            ax.scatter(hollow[param], hollow[f"{metric}_mean"], facecolors='white',
                       edgecolors=line.get_color(), zorder=3)

    best = result.best_row
    ax.axvline(best[param], color='red', linestyle='--', alpha=0.6,
               label=f"selected: {param}={best[param]}")
    ax.set_xlabel(param)
    ax.set_ylabel(f"{metric.upper()} (resampled mean)")
    ax.set_title(f"{result.model_type} - tuning profile")
    ax.legend(fontsize=8)
    plt.tight_layout()
    _save(fig, path)
    return path


def plot_model_comparison(comparison, path, column='test_rmse'):
    """Bar chart of one comparison column, one bar per model."""
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(comparison.index.astype(str), comparison[column], color='#2ca02c', edgecolor='black')
    ax.set_ylabel(column)
    ax.set_title('Held-out performance by model')
    plt.xticks(rotation=30, ha='right')
    plt.tight_layout()
    _save(fig, path)
    return path


def plot_resample_distribution(results, path, metric=None):
    """Boxplot of the selected candidate's per-resample scores for each model."""
    names = list(results.keys())
    data = []
    for name in names:
        scores = results[name].resample_scores(metric)
        data.append(scores[np.isfinite(scores)])
    label = (metric or (results[names[0]].metric if names else 'metric')).upper()

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.boxplot(data)
    ax.set_xticks(range(1, len(names) + 1))
    ax.set_xticklabels(names)
    ax.set_ylabel(label)
    ax.set_title('Resampled performance of selected candidates')
    plt.xticks(rotation=30, ha='right')
    plt.tight_layout()
    _save(fig, path)
    return path


def _save(fig, path):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, dpi=150)
    plt.close(fig)
