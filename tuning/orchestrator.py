# Tuning orchestrator
# Fits every (fold plan, candidate) pair through a worker pool, aggregates
# the held-out scores per candidate, selects the best candidate and refits
# it on the full training subset.

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from .elimination import eliminate
from .errors import AllCandidatesFailedError, EmptyGridError
from .grid import expand_grid
from .metrics import METRICS, evaluate_predictions, is_maximized, summarize
from .models import get_family
from .pool import WorkerPool
from .resampling import kfold, plan_folds
from .seeding import derive_seed, make_rng

logger = logging.getLogger(__name__)

SELECTION_RULES = ['best', 'one_se', 'tolerance']


def _take(data, index):
    """Positional row selection for DataFrames, Series and arrays."""
    if hasattr(data, 'iloc'):
        return data.iloc[index]
    return np.asarray(data)[index]


def _evaluate_task(family, params, candidate_id, plan, X, y, random_state):
    """
    Fit one candidate on one fold plan and score the held-out rows.

    Failures are returned as NaN scores with the error message; they never
    propagate out of the worker.
    """
    row = {
        'resample_id': plan.resample_id,
        'repeat': plan.repeat,
        'fold': plan.fold,
        'candidate_id': candidate_id,
        'n_train': len(plan.train_index),
        'n_held_out': len(plan.held_out_index),
        'error': None,
    }
    start = time.perf_counter()
    try:
        model = family.fit(_take(X, plan.train_index), _take(y, plan.train_index), params, random_state)
        y_pred = model.predict(_take(X, plan.held_out_index))
        if not np.all(np.isfinite(np.asarray(y_pred, dtype=float))):
            raise ValueError("model produced non-finite predictions")
        scores = evaluate_predictions(_take(y, plan.held_out_index), y_pred)
    except Exception as e:
        scores = {m: float('nan') for m in METRICS}
        row['error'] = f"{type(e).__name__}: {e}"
    row['fit_time'] = time.perf_counter() - start
    row.update(scores)
    return row


@dataclass
class TuningResult:
    """Outcome of one tuning run for a single model family."""
    model_type: str
    metric: str
    maximize: bool
    candidates: List[Dict[str, Any]]
    results: pd.DataFrame
    fold_results: pd.DataFrame
    best_index: int
    final_model: Any
    resampling: Any
    selection: str = 'best'
    elapsed: float = 0.0
    eliminated: Dict[int, int] = field(default_factory=dict)

    @property
    def best_params(self):
        return dict(self.candidates[self.best_index])

    @property
    def best_score(self):
        return float(self.results.loc[self.best_index, f"{self.metric}_mean"])

    @property
    def best_row(self):
        return self.results.loc[self.best_index]

    def predict(self, X):
        return self.final_model.predict(X)

    def resample_scores(self, metric=None, candidate_id=None):
        """Per-resample scores of one candidate (the selected one by default)."""
        metric = metric or self.metric
        candidate_id = self.best_index if candidate_id is None else candidate_id
        rows = self.fold_results[self.fold_results['candidate_id'] == candidate_id]
        return rows.sort_values('resample_id')[metric].to_numpy(dtype=float)

    def summary(self):
        """JSON-friendly summary of the run."""
        best = self.best_row
        return {
            'model_type': self.model_type,
            'metric': self.metric,
            'selection': self.selection,
            'best_params': self.best_params,
            'best_candidate_id': int(self.best_index),
            'cv_results': {
                m: {
                    'mean': float(best[f"{m}_mean"]),
                    'std': float(best[f"{m}_std"]),
                    'all': [float(v) for v in self.resample_scores(m)],
                }
                for m in METRICS
            },
            'n_candidates': len(self.candidates),
            'n_eliminated': len(self.eliminated),
            'n_failed_tasks': int(self.fold_results['error'].notna().sum()),
            'n_tasks': int(len(self.fold_results)),
            'resampling': {
                'method': self.resampling.method,
                'n_splits': self.resampling.n_splits,
                'n_repeats': self.resampling.n_repeats,
            },
            'elapsed_seconds': float(self.elapsed),
        }


class Tuner:
    """
    Cross-validated hyperparameter search for one model family.

    Args:
        family: registered family name or ModelFamily
        grid: list of candidate dicts, or a dict of value lists to expand;
            None uses the family's default grid
        resampling: Resampling descriptor (default 5-fold CV)
        metric: primary metric used for ranking ('rmse', 'mae', 'r2', 'spearman')
        pool: WorkerPool executing fold x candidate tasks (default: one worker
            per available CPU)
        seed: int seed or numpy Generator driving fold plans and model seeds
        select: 'best', 'one_se' (first candidate in grid order within one
            standard error of the best) or 'tolerance' (first candidate
            within `tolerance` percent of the best)
        tolerance: percent loss allowed by select='tolerance'
    """

    def __init__(self, family, grid=None, resampling=None, metric='rmse', pool=None,
                 seed=None, select='best', tolerance=1.5):
        self.family = get_family(family)
        if grid is None:
            grid = self.family.default_grid
        if isinstance(grid, dict):
            grid = expand_grid(grid)
        self.candidates = [dict(c) for c in grid]
        if not self.candidates:
            raise EmptyGridError(f"No candidates to evaluate for '{self.family.name}'")
        self.resampling = resampling or kfold(5)
        self.maximize = is_maximized(metric)
        self.metric = metric
        if select not in SELECTION_RULES:
            raise ValueError(f"Unknown selection rule '{select}'. Allowed: {SELECTION_RULES}")
        self.select = select
        self.tolerance = tolerance
        self.pool = pool or WorkerPool()
        self.seed = seed

    def _run_round(self, plans, candidate_ids, X, y, model_seed):
        tasks = [
            (self.family, self.candidates[cid], cid, plan, X, y, model_seed)
            for plan in plans
            for cid in candidate_ids
        ]
        rows = self.pool.map(_evaluate_task, tasks)
        for row in rows:
            if row['error'] is not None:
                logger.warning(
                    "%s candidate %d failed on resample %d: %s",
                    self.family.name, row['candidate_id'], row['resample_id'], row['error'],
                )
        return rows

    def _score_table(self, rows):
        df = pd.DataFrame(rows)
        return df.pivot(index='resample_id', columns='candidate_id', values=self.metric)

    def fit(self, X, y):
        """Run the search on the training subset and refit the selected candidate."""
        start = time.perf_counter()
        rng = make_rng(self.seed)
        model_seed = derive_seed(rng)
        plans = plan_folds(self.resampling, len(X), rng)
        all_ids = list(range(len(self.candidates)))

        logger.info(
            "Tuning %s: %d candidates, %s (%d folds x %d repeats), metric=%s",
            self.family.name, len(all_ids), self.resampling.method,
            self.resampling.n_splits, self.resampling.n_repeats, self.metric,
        )

        eliminated = {}
        if not self.resampling.is_adaptive:
            rows = self._run_round(list(plans), all_ids, X, y, model_seed)
        else:
            rows, eliminated = self._run_adaptive(list(plans), all_ids, X, y, model_seed)

        fold_results = pd.DataFrame(rows).sort_values(['resample_id', 'candidate_id']).reset_index(drop=True)
        results = self._aggregate(fold_results, eliminated)
        best_index = self._select(results)

        best_params = self.candidates[best_index]
        logger.info(
            "%s best candidate %d %s: %s=%.4f",
            self.family.name, best_index, best_params, self.metric,
            results.loc[best_index, f"{self.metric}_mean"],
        )
        final_model = self.family.fit(X, y, best_params, model_seed)

        return TuningResult(
            model_type=self.family.name,
            metric=self.metric,
            maximize=self.maximize,
            candidates=[dict(c) for c in self.candidates],
            results=results,
            fold_results=fold_results,
            best_index=best_index,
            final_model=final_model,
            resampling=self.resampling,
            selection=self.select,
            elapsed=time.perf_counter() - start,
            eliminated=eliminated,
        )

    def _run_adaptive(self, plans, all_ids, X, y, model_seed):
        """
        Adaptive resampling: evaluate everyone on the first `min_resamples`
        plans, then one plan per round for the survivors, pruning after
        every round.
        """
        resampling = self.resampling
        rows = self._run_round(plans[:resampling.min_resamples], all_ids, X, y, model_seed)
        survivors = self._prune(rows, all_ids)
        eliminated = {cid: resampling.min_resamples for cid in all_ids if cid not in survivors}

        for n_seen, plan in enumerate(plans[resampling.min_resamples:], start=resampling.min_resamples + 1):
            if not survivors:
                break
            if len(survivors) == 1 and not resampling.complete:
                break
            rows.extend(self._run_round([plan], survivors, X, y, model_seed))
            if len(survivors) > 1:
                kept = self._prune(rows, survivors)
                for cid in survivors:
                    if cid not in kept:
                        eliminated[cid] = n_seen
                survivors = kept

        logger.info(
            "%s adaptive resampling finished: %d of %d candidates survived",
            self.family.name, len(survivors), len(all_ids),
        )
        return rows, eliminated

    def _prune(self, rows, candidate_ids):
        table = self._score_table(rows)
        table = table.loc[:, [c for c in candidate_ids if c in table.columns]]
        survivors = eliminate(
            table,
            maximize=self.maximize,
            alpha=self.resampling.alpha,
            method=self.resampling.elimination,
        )
        return [int(c) for c in survivors]

    def _aggregate(self, fold_results, eliminated):
        """One row per candidate: params, mean/std per metric, counts, status."""
        records = []
        for cid, params in enumerate(self.candidates):
            rows = fold_results[fold_results['candidate_id'] == cid]
            record = {'candidate_id': cid}
            record.update(params)
            for m in METRICS:
                stats = summarize(rows[m]) if len(rows) else summarize([])
                record[f"{m}_mean"] = stats['mean']
                record[f"{m}_std"] = stats['std']
            record['n_resamples'] = int(rows[self.metric].notna().sum()) if len(rows) else 0
            record['n_failed'] = int(rows['error'].notna().sum()) if len(rows) else 0
            record['eliminated'] = cid in eliminated
            records.append(record)
        return pd.DataFrame(records).set_index('candidate_id', drop=False)

    def _select(self, results):
        eligible = results[(results['n_resamples'] > 0) & (~results['eliminated'])]
        if eligible.empty:
            raise AllCandidatesFailedError(
                f"Every candidate for '{self.family.name}' failed on every resample"
            )

        sign = -1.0 if self.maximize else 1.0
        means = sign * eligible[f"{self.metric}_mean"]
        best = means.idxmin()
        if self.select == 'best':
            return int(best)

        if self.select == 'one_se':
            n = eligible.loc[best, 'n_resamples']
            # sample std (ddof=1) from the stored population std
            sd = eligible.loc[best, f"{self.metric}_std"] * np.sqrt(n / (n - 1)) if n > 1 else 0.0
            se = sd / np.sqrt(n)
            threshold = means[best] + se
            within = means[means <= threshold + 1e-12]
        else:
            scale = abs(means[best]) if means[best] != 0 else 1.0
            loss = (means - means[best]) / scale * 100.0
            within = means[loss <= self.tolerance]
        return int(within.index.min())


def train(X, y, model_type, grid=None, resampling=None, metric='rmse', pool=None, seed=None,
          select='best', tolerance=1.5):
    """Uniform entry point: tune `model_type` on X/y and return a TuningResult."""
    tuner = Tuner(
        model_type,
        grid=grid,
        resampling=resampling,
        metric=metric,
        pool=pool,
        seed=seed,
        select=select,
        tolerance=tolerance,
    )
    return tuner.fit(X, y)
