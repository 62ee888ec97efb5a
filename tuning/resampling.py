# Resampling plans
# Describes how the training subset is subdivided into folds for
# hyperparameter evaluation: k-fold, repeated k-fold or adaptive.

from dataclasses import dataclass
from typing import Iterator

import numpy as np
from sklearn.model_selection import KFold

from .errors import InvalidFoldCountError
from .seeding import derive_seed, make_rng

RESAMPLING_METHODS = ['cv', 'repeatedcv', 'adaptive_cv']
ELIMINATION_METHODS = ['gls', 'paired']


@dataclass(frozen=True)
class FoldPlan:
    """One train/held-out split of the training subset (positional indices)."""
    resample_id: int
    repeat: int
    fold: int
    train_index: np.ndarray
    held_out_index: np.ndarray

    @property
    def label(self):
        return f"Fold{self.fold + 1}.Rep{self.repeat + 1}"


@dataclass(frozen=True)
class Resampling:
    """
    Resampling strategy descriptor.

    method: 'cv' (one k-fold pass), 'repeatedcv' or 'adaptive_cv'.
    For 'adaptive_cv', `min_resamples` fold plans are evaluated for every
    candidate before the elimination rule (`elimination`, significance
    `alpha`) starts pruning; `complete` keeps resampling the last survivor
    until the full n_splits * n_repeats budget is spent.
    """
    method: str = 'cv'
    n_splits: int = 5
    n_repeats: int = 1
    min_resamples: int = 5
    alpha: float = 0.05
    elimination: str = 'gls'
    complete: bool = True

    def __post_init__(self):
        if self.method not in RESAMPLING_METHODS:
            raise ValueError(f"Unknown resampling method '{self.method}'. Allowed: {RESAMPLING_METHODS}")
        if isinstance(self.n_splits, bool) or not isinstance(self.n_splits, (int, np.integer)):
            raise InvalidFoldCountError(f"n_splits must be an integer, got {self.n_splits!r}")
        if self.n_splits <= 1:
            raise InvalidFoldCountError(f"n_splits must be >= 2, got {self.n_splits}")
        if self.n_repeats < 1:
            raise InvalidFoldCountError(f"n_repeats must be >= 1, got {self.n_repeats}")
        if self.method == 'cv' and self.n_repeats != 1:
            raise ValueError("method 'cv' uses a single repetition; use 'repeatedcv' for n_repeats > 1")
        if self.method == 'adaptive_cv':
            if not 1 <= self.min_resamples <= self.budget:
                raise ValueError(
                    f"min_resamples must be in [1, {self.budget}] "
                    f"(n_splits * n_repeats), got {self.min_resamples}"
                )
            if not 0.0 < self.alpha < 1.0:
                raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
            if self.elimination not in ELIMINATION_METHODS:
                raise ValueError(
                    f"Unknown elimination method '{self.elimination}'. Allowed: {ELIMINATION_METHODS}"
                )

    @property
    def budget(self):
        """Total number of fold plans available."""
        return self.n_splits * self.n_repeats

    @property
    def is_adaptive(self):
        return self.method == 'adaptive_cv'


def kfold(n_splits=5):
    return Resampling(method='cv', n_splits=n_splits, n_repeats=1)


def repeated_kfold(n_splits=5, n_repeats=3):
    return Resampling(method='repeatedcv', n_splits=n_splits, n_repeats=n_repeats)


def adaptive_kfold(n_splits=5, n_repeats=5, min_resamples=5, alpha=0.05,
                   elimination='gls', complete=True):
    return Resampling(
        method='adaptive_cv',
        n_splits=n_splits,
        n_repeats=n_repeats,
        min_resamples=min_resamples,
        alpha=alpha,
        elimination=elimination,
        complete=complete,
    )


def build_resampling(section):
    """Build a Resampling from the `resampling` section of an experiment config."""
    section = dict(section or {})
    method = section.get('method', 'cv')
    n_repeats = section.get('n_repeats', 1 if method == 'cv' else 5)
    return Resampling(
        method=method,
        n_splits=section.get('n_splits', 5),
        n_repeats=n_repeats,
        min_resamples=section.get('min_resamples', 5),
        alpha=section.get('alpha', 0.05),
        elimination=section.get('elimination', 'gls'),
        complete=section.get('complete', True),
    )


def plan_folds(resampling, n_records, rng) -> Iterator[FoldPlan]:
    """
    Lazily yield fold plans over `n_records` training rows.

    Each repetition reshuffles the indices with a fresh seed drawn from `rng`
    and partitions them into `n_splits` contiguous groups whose sizes differ
    by at most one. Every index is held out exactly once per repetition.
    The fold count is checked eagerly, before the first plan is requested.
    """
    if resampling.n_splits > n_records:
        raise InvalidFoldCountError(
            f"n_splits ({resampling.n_splits}) exceeds the number of training records ({n_records})"
        )
    return _generate_folds(resampling, n_records, make_rng(rng))


def _generate_folds(resampling, n_records, rng):
    positions = np.arange(n_records)

    resample_id = 0
    for repeat in range(resampling.n_repeats):
        cv = KFold(n_splits=resampling.n_splits, shuffle=True, random_state=derive_seed(rng))
        for fold, (train_idx, held_out_idx) in enumerate(cv.split(positions)):
            yield FoldPlan(
                resample_id=resample_id,
                repeat=repeat,
                fold=fold,
                train_index=train_idx,
                held_out_index=held_out_idx,
            )
            resample_id += 1
