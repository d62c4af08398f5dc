import numpy as np
import pandas as pd
import pytest

from experiments.cv import build_cv_plan
from experiments.models import DesignEncoder, encode_outcome
from experiments.tuning import expand_grid, select_best, tune, resolve_n_jobs


@pytest.fixture
def bodytemp_design(flu_df):
    X = flu_df.drop(columns=["BodyTemp"])
    design = DesignEncoder().fit_transform(X).to_numpy(dtype=float)
    y = encode_outcome(flu_df["BodyTemp"], "regression")
    plan = build_cv_plan(flu_df["BodyTemp"], "regression", n_splits=3, n_repeats=2, seed=123)
    return design, y, plan


def test_expand_grid_lists_and_ranges():
    grid = expand_grid({
        "max_depth": [1, 4],
        "ccp_alpha": {"start": -10, "stop": -1, "num": 5, "scale": "log"},
    })
    assert len(grid) == 10
    alphas = sorted({p["ccp_alpha"] for p in grid})
    assert alphas[0] == pytest.approx(1e-10)
    assert alphas[-1] == pytest.approx(0.1)


def test_expand_grid_integer_range_and_empty():
    grid = expand_grid({"max_features": {"start": 1, "stop": 5, "num": 5, "integer": True}})
    assert [p["max_features"] for p in grid] == [1, 2, 3, 4, 5]
    assert expand_grid(None) == [{}]


def test_resolve_n_jobs_default_leaves_one_core():
    assert resolve_n_jobs(2) == 2
    assert resolve_n_jobs() >= 1


def _table(rows):
    return pd.DataFrame(rows)


def test_select_best_prefers_best_mean():
    table = _table([
        {"config": 0, "params": {"alpha": 0.1}, "mean": 0.60, "std_err": 0.01},
        {"config": 1, "params": {"alpha": 0.01}, "mean": 0.55, "std_err": 0.05},
    ])
    assert select_best(table, "lasso", "rmse") == 1
    assert select_best(table, "lasso", "roc_auc") == 0


def test_select_best_ties_broken_by_standard_error_then_simplicity():
    table = _table([
        {"config": 0, "params": {"max_depth": 8}, "mean": 0.5, "std_err": 0.02},
        {"config": 1, "params": {"max_depth": 4}, "mean": 0.5, "std_err": 0.02},
        {"config": 2, "params": {"max_depth": 11}, "mean": 0.5, "std_err": 0.01},
    ])
    assert select_best(table, "decision_tree", "rmse") == 2

    table.loc[2, "std_err"] = 0.02
    assert select_best(table, "decision_tree", "rmse") == 1


def test_select_best_lasso_prefers_larger_penalty_on_tie():
    table = _table([
        {"config": 0, "params": {"alpha": 0.001}, "mean": 0.7, "std_err": 0.03},
        {"config": 1, "params": {"alpha": 0.1}, "mean": 0.7, "std_err": 0.03},
    ])
    assert select_best(table, "lasso", "rmse") == 1


def test_select_best_all_failed():
    table = _table([{"config": 0, "params": {}, "mean": np.nan, "std_err": np.nan}])
    with pytest.raises(ValueError, match="All 1 tuning configurations failed"):
        select_best(table, "decision_tree", "rmse")


def test_tune_decision_tree(bodytemp_design):
    design, y, plan = bodytemp_design
    outcome = tune("decision_tree", "regression", design, y, plan,
                   grid={"max_depth": [1, 3], "ccp_alpha": [0.0, 0.01]}, n_jobs=1)

    assert len(outcome.table) == 4
    assert outcome.table["selected"].sum() == 1
    assert len(outcome.fold_scores) == len(plan)
    assert outcome.metric == "rmse"
    selected = outcome.table[outcome.table["selected"]].iloc[0]
    assert selected["params"] == outcome.best_params
    assert selected["mean"] == pytest.approx(np.mean(outcome.fold_scores))
    assert outcome.failures == []


def test_tune_is_deterministic(bodytemp_design):
    design, y, plan = bodytemp_design
    grid = {"max_features": [2, 4], "min_samples_leaf": [5]}
    a = tune("random_forest", "regression", design, y, plan, grid=grid, n_jobs=1,
             fixed_params={"n_estimators": 10})
    b = tune("random_forest", "regression", design, y, plan, grid=grid, n_jobs=1,
             fixed_params={"n_estimators": 10})
    assert a.best_params == b.best_params
    np.testing.assert_array_equal(a.fold_scores, b.fold_scores)


def test_tune_parallel_matches_serial(bodytemp_design):
    design, y, plan = bodytemp_design
    grid = {"max_depth": [1, 3]}
    serial = tune("decision_tree", "regression", design, y, plan, grid=grid, n_jobs=1)
    parallel = tune("decision_tree", "regression", design, y, plan, grid=grid, n_jobs=2)
    assert serial.best_params == parallel.best_params
    np.testing.assert_allclose(serial.fold_scores, parallel.fold_scores)


def test_tune_records_failing_configurations(bodytemp_design):
    design, y, plan = bodytemp_design
    outcome = tune("decision_tree", "regression", design, y, plan,
                   grid={"max_depth": [-1, 2]}, n_jobs=1)

    failed = outcome.table[outcome.table["n_failed"] > 0]
    assert len(failed) == 1
    assert failed.iloc[0]["params"] == {"max_depth": -1}
    assert np.isnan(failed.iloc[0]["mean"])
    assert outcome.best_params == {"max_depth": 2}
    assert len(outcome.failures) == len(plan)


def test_tune_forest_clamps_max_features(bodytemp_design):
    design, y, plan = bodytemp_design
    too_many = design.shape[1] + 5
    outcome = tune("random_forest", "regression", design, y, plan,
                   grid={"max_features": [2, too_many]}, n_jobs=1,
                   fixed_params={"n_estimators": 5})
    assert len(outcome.table) == 1
    assert outcome.best_params == {"max_features": 2}


def test_tune_classification_uses_auc(flu_df):
    X = flu_df.drop(columns=["Nausea"])
    design = DesignEncoder().fit_transform(X).to_numpy(dtype=float)
    y = encode_outcome(flu_df["Nausea"], "classification", "Yes")
    plan = build_cv_plan(flu_df["Nausea"], "classification", n_splits=3, n_repeats=1, seed=123)

    outcome = tune("lasso", "classification", design, y, plan, grid={"C": [0.1, 1.0]}, n_jobs=1)
    assert outcome.metric == "roc_auc"
    assert all(0.0 <= s <= 1.0 for s in outcome.fold_scores)
