# Train/test splitting

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .errors import InvalidSizeError
from .seeding import derive_seed, make_rng

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Split:
    """Disjoint training and evaluation subsets of one dataset."""
    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series
    train_index: np.ndarray
    test_index: np.ndarray

    @property
    def sizes(self):
        return len(self.train_index), len(self.test_index)


def resolve_train_size(train_size, n_records):
    """Turn an int count or a (0, 1) fraction into a record count."""
    if isinstance(train_size, bool) or not isinstance(train_size, (int, float, np.integer, np.floating)):
        raise InvalidSizeError(f"train_size must be an int or a float, got {train_size!r}")

    if isinstance(train_size, (float, np.floating)):
        if not 0.0 < train_size < 1.0:
            raise InvalidSizeError(f"Fractional train_size must be in (0, 1), got {train_size}")
        n_train = int(np.floor(train_size * n_records))
    else:
        n_train = int(train_size)

    if n_train < 1:
        raise InvalidSizeError(f"train_size resolves to {n_train} records; at least 1 is required")
    if n_train >= n_records:
        raise InvalidSizeError(
            f"train_size ({n_train}) must be smaller than the dataset size ({n_records})"
        )
    return n_train


def split_dataset(X, y, train_size, rng):
    """
    Split X/y into a training subset of exactly `train_size` records and the
    evaluation complement.

    Args:
        X: DataFrame of features
        y: Series of target values
        train_size: int record count or float fraction in (0, 1)
        rng: numpy Generator (or int seed) the split draws its seed from

    Returns:
        Split
    """
    n_records = len(X)
    if len(y) != n_records:
        raise ValueError(f"X and y have different lengths: {n_records} vs {len(y)}")

    n_train = resolve_train_size(train_size, n_records)
    rng = make_rng(rng)

    positions = np.arange(n_records)
    train_index, test_index = train_test_split(
        positions,
        train_size=n_train,
        test_size=n_records - n_train,
        shuffle=True,
        random_state=derive_seed(rng),
    )
    train_index = np.sort(train_index)
    test_index = np.sort(test_index)

    logger.info("Split %d records into %d train / %d test", n_records, n_train, len(test_index))

    return Split(
        X_train=X.iloc[train_index].reset_index(drop=True),
        X_test=X.iloc[test_index].reset_index(drop=True),
        y_train=y.iloc[train_index].reset_index(drop=True),
        y_test=y.iloc[test_index].reset_index(drop=True),
        train_index=train_index,
        test_index=test_index,
    )
