import numpy as np
import pandas as pd
import pytest

from tuning.errors import AllCandidatesFailedError, EmptyGridError
from tuning.metrics import METRICS
from tuning.orchestrator import Tuner, train
from tuning.pool import WorkerPool
from tuning.resampling import kfold, repeated_kfold

SERIAL = WorkerPool(n_jobs=1)


def test_selects_lowest_error_candidate(constant_xy, constant_family, seed):
    X, y = constant_xy
    result = Tuner(constant_family, grid={"value": [1, 2, 3]}, resampling=kfold(5), seed=seed, pool=SERIAL).fit(X, y)

    assert result.best_params == {"value": 2}
    assert result.best_index == 1
    assert result.best_score == pytest.approx(result.results["rmse_mean"].min())
    np.testing.assert_allclose(result.predict(X.head(3)), [2.0, 2.0, 2.0])


def test_selection_reproducible_with_same_seed(constant_xy, constant_family, seed):
    X, y = constant_xy
    r1 = Tuner(constant_family, resampling=repeated_kfold(5, 2), seed=seed, pool=SERIAL).fit(X, y)
    r2 = Tuner(constant_family, resampling=repeated_kfold(5, 2), seed=seed, pool=SERIAL).fit(X, y)

    assert r1.best_params == r2.best_params
    pd.testing.assert_frame_equal(r1.results, r2.results)
    cols = ["resample_id", "candidate_id"] + METRICS
    pd.testing.assert_frame_equal(r1.fold_results[cols], r2.fold_results[cols])


def test_results_table_shape(constant_xy, constant_family, seed):
    X, y = constant_xy
    result = Tuner(constant_family, resampling=repeated_kfold(4, 2), seed=seed, pool=SERIAL).fit(X, y)

    assert len(result.results) == 3
    assert len(result.fold_results) == 3 * 4 * 2
    for m in METRICS:
        assert f"{m}_mean" in result.results.columns
        assert f"{m}_std" in result.results.columns
    assert (result.results["n_resamples"] == 8).all()
    assert (result.results["n_failed"] == 0).all()
    assert list(result.results["value"]) == [1, 2, 3]


def test_failed_candidate_excluded(constant_xy, constant_family, seed):
    X, y = constant_xy
    grid = [{"value": 1}, {"value": 2, "fail_on": "always"}, {"value": 3}]
    result = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL).fit(X, y)

    failed = result.results.loc[1]
    assert failed["n_resamples"] == 0
    assert failed["n_failed"] == 5
    assert np.isnan(failed["rmse_mean"])
    assert result.best_index in (0, 2)
    assert result.fold_results.loc[result.fold_results["candidate_id"] == 1, "error"].str.contains(
        "did not converge").all()


def test_partial_failures_excluded_from_aggregation(constant_xy, constant_family, seed):
    X, y = constant_xy
    grid = [{"value": 2, "fail_on": "held_out_record_0"}, {"value": 3}]
    result = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL).fit(X, y)

    row = result.results.loc[0]
    # record 0 is held out in exactly one of the 5 folds
    assert row["n_failed"] == 1
    assert row["n_resamples"] == 4
    assert np.isfinite(row["rmse_mean"])
    assert result.best_index == 0


def test_all_candidates_failed_raises(constant_xy, constant_family, seed):
    X, y = constant_xy
    grid = [{"value": v, "fail_on": "always"} for v in (1, 2)]
    with pytest.raises(AllCandidatesFailedError):
        Tuner(constant_family, grid=grid, resampling=kfold(3), seed=seed, pool=SERIAL).fit(X, y)


def test_empty_grid_raises(constant_family):
    with pytest.raises(EmptyGridError):
        Tuner(constant_family, grid=[])


def test_parallel_pool_matches_serial(constant_xy, constant_family, seed):
    X, y = constant_xy
    serial = Tuner(constant_family, resampling=repeated_kfold(5, 2), seed=seed, pool=SERIAL).fit(X, y)
    threaded = Tuner(
        constant_family,
        resampling=repeated_kfold(5, 2),
        seed=seed,
        pool=WorkerPool(n_jobs=2, backend="threading"),
    ).fit(X, y)

    cols = ["resample_id", "candidate_id"] + METRICS
    pd.testing.assert_frame_equal(serial.fold_results[cols], threaded.fold_results[cols])
    assert serial.best_index == threaded.best_index


def test_one_se_prefers_earlier_candidate(constant_xy, constant_family, seed):
    X, y = constant_xy
    # 2.0 and 2.001 are indistinguishable; one_se keeps the first in grid order
    grid = [{"value": 2.001}, {"value": 2.0}, {"value": 5.0}]
    best = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL).fit(X, y)
    one_se = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL, select="one_se").fit(X, y)

    assert one_se.best_index == 0
    sample_sd = np.std(best.resample_scores("rmse"), ddof=1)
    assert best.results.loc[one_se.best_index, "rmse_mean"] <= (
        best.best_score + sample_sd / np.sqrt(5) + 1e-12
    )


def test_one_se_uses_sample_standard_deviation(constant_family):
    tuner = Tuner(constant_family, grid=[{"value": 1.0}, {"value": 2.0}], pool=SERIAL, select="one_se")
    # population std 0.2 over 5 resamples: SE 0.0894 with ddof=0, 0.1 with ddof=1
    results = pd.DataFrame({
        "rmse_mean": [1.095, 1.0],
        "rmse_std": [0.0, 0.2],
        "n_resamples": [5, 5],
        "eliminated": [False, False],
    })
    assert tuner._select(results) == 0


def test_default_pool_uses_all_cpus(constant_family, monkeypatch):
    monkeypatch.setattr("tuning.pool.os.cpu_count", lambda: 8)
    assert Tuner(constant_family).pool.n_jobs == 8
    assert Tuner("lasso").pool.n_jobs == 8


def test_tolerance_selection(constant_xy, constant_family, seed):
    X, y = constant_xy
    grid = [{"value": 1.0}, {"value": 2.0}]
    strict = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL,
                   select="tolerance", tolerance=0.0).fit(X, y)
    loose = Tuner(constant_family, grid=grid, resampling=kfold(5), seed=seed, pool=SERIAL,
                  select="tolerance", tolerance=10000.0).fit(X, y)
    assert strict.best_index == 1
    assert loose.best_index == 0


def test_maximized_metric(constant_xy, constant_family, seed):
    X, y = constant_xy
    result = Tuner(constant_family, grid={"value": [1, 2, 3]}, metric="r2",
                   resampling=kfold(5), seed=seed, pool=SERIAL).fit(X, y)
    assert result.maximize
    assert result.best_params == {"value": 2}


def test_invalid_selection_rule(constant_family):
    with pytest.raises(ValueError, match="selection rule"):
        Tuner(constant_family, select="median")


def test_lasso_end_to_end(xy, seed):
    X, y = xy
    result = train(X, y, "lasso", grid={"alpha": [0.001, 0.1, 5.0]}, resampling=kfold(5), seed=seed, pool=SERIAL)

    assert result.model_type == "lasso"
    assert result.best_params["alpha"] == 0.001
    pred = result.predict(X)
    assert pred.shape == (len(X),)
    assert np.sqrt(np.mean((pred - y.values) ** 2)) < 0.5

    summary = result.summary()
    assert summary["best_params"] == {"alpha": 0.001}
    assert len(summary["cv_results"]["rmse"]["all"]) == 5
    assert summary["n_failed_tasks"] == 0


def test_random_forest_deterministic_given_seed(xy, seed):
    X, y = xy
    grid = {"n_estimators": [10], "max_features": [0.5, 1.0]}
    r1 = train(X, y, "random_forest", grid=grid, resampling=kfold(3), seed=seed, pool=SERIAL)
    r2 = train(X, y, "random_forest", grid=grid, resampling=kfold(3), seed=seed, pool=SERIAL)
    assert r1.best_params == r2.best_params
    np.testing.assert_allclose(r1.results["rmse_mean"], r2.results["rmse_mean"])
    np.testing.assert_allclose(r1.predict(X), r2.predict(X))


def test_worker_pool_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unknown joblib backend"):
        WorkerPool(n_jobs=2, backend="lokky")
