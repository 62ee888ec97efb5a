import pytest
import pandas as pd
import numpy as np

from tuning.models import ModelFamily


@pytest.fixture(scope="session")
def seed():
    return 42


@pytest.fixture
def regression_df(seed):
    """
    100 records, two numeric features, a linear target with noise and one
    identifier column that must never enter the features.
    """
    rng = np.random.default_rng(seed)
    n = 100

    df = pd.DataFrame({
        "x1": rng.normal(size=n),
        "x2": rng.uniform(-1.0, 1.0, size=n),
    })
    df["target"] = 3.0 * df["x1"] - 2.0 * df["x2"] + rng.normal(scale=0.1, size=n)
    df["record_id"] = np.arange(n)
    return df


@pytest.fixture
def xy(regression_df):
    return regression_df[["x1", "x2"]], regression_df["target"]


@pytest.fixture
def constant_xy(seed):
    """Target centred on 2.0, so a constant predictor of 2 is the best candidate."""
    rng = np.random.default_rng(seed)
    n = 80
    X = pd.DataFrame({"x1": rng.normal(size=n), "x2": rng.normal(size=n)})
    y = pd.Series(2.0 + rng.normal(scale=0.1, size=n), name="target")
    return X, y


class ConstantRegressor:
    """Predicts the `value` hyperparameter for every record."""

    def __init__(self, value=0.0, fail_on=None):
        self.value = value
        self.fail_on = fail_on

    def fit(self, X, y):
        if self.fail_on == "always":
            raise FloatingPointError("did not converge")
        return self

    def predict(self, X):
        if self.fail_on == "held_out_record_0" and 0 in X.index:
            raise FloatingPointError("non-finite prediction")
        return np.full(len(X), float(self.value))


def _build_constant(params, random_state):
    return ConstantRegressor(**params)


@pytest.fixture
def constant_family():
    return ModelFamily(
        name="constant",
        build=_build_constant,
        default_grid={"value": [1, 2, 3]},
    )


@pytest.fixture
def base_config(tmp_path, seed):
    """Minimal tuning config over the regression_df fixture."""
    cfg = {
        "experiment": {
            "name": "pytest_tuning",
            "seed": seed,
            "output_dir": str(tmp_path / "runs")
        },
        "data": {
            "dataset_path": "DUMMY.csv",
            "target_column": "target",
            "train_size": 80
        },
        "preprocessing": {
            "columns_to_drop": [],
            "ignored_columns": ["record_id"]
        },
        "resampling": {
            "method": "cv",
            "n_splits": 5
        },
        "tuning": {
            "metric": "rmse",
            "n_jobs": 1
        },
        "models": [
            {"type": "linear_regression"},
            {"type": "lasso", "grid": {"alpha": [0.001, 0.1, 1.0]}},
        ],
        "metrics": {"save_plots": False}
    }
    return cfg


@pytest.fixture
def patch_dataset_loader(monkeypatch, regression_df):
    """
    Monkeypatch load_dataset so experiments don't hit disk.
    """
    def _fake_load_dataset(config, dataset_path=None):
        return regression_df.copy(), "test_dataset.csv"

    monkeypatch.setattr("tuning.data.load_dataset", _fake_load_dataset)
    monkeypatch.setattr("runners.run_tuning.load_dataset", _fake_load_dataset)
    return _fake_load_dataset


@pytest.fixture
def freeze_time(monkeypatch):
    """
    Make run_dir deterministic by freezing datetime.now().
    """
    import datetime as dt

    class _FixedDT:
        @staticmethod
        def now():
            return dt.datetime(2026, 1, 4, 12, 34, 56)

    monkeypatch.setattr("tuning.io.datetime", _FixedDT)
    return _FixedDT


@pytest.fixture
def write_yaml(tmp_path):
    import yaml
    def _write(cfg, name="temp.yaml"):
        p = tmp_path / name
        with open(p, "w") as f:
            yaml.safe_dump(cfg, f, default_flow_style=False)
        return str(p)
    return _write
