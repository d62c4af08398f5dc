import os
import json
import copy
import yaml
import joblib
import pandas as pd

from experiments.io import DatasetStore
from runners.run_models import run_models
from runners.run_processing import run_processing
from runners.run_exploration import run_exploration
from runners.run_pipeline import run_full_pipeline


def test_run_creates_required_artifacts(base_regression_config, write_yaml, flu_store):
    cfg_path = write_yaml(base_regression_config, "reg.yaml")
    run_dir, results = run_models(cfg_path)

    assert os.path.isdir(run_dir)
    for name in ["config.yaml", "metrics.json", "comparison.csv", "comparison.md",
                 "data_profile.json", "nested_anova.csv", "glance.csv", "significant_terms.csv"]:
        assert os.path.isfile(os.path.join(run_dir, name)), f"Missing artifact: {name}"

    with open(os.path.join(run_dir, "metrics.json"), "r") as f:
        metrics = json.load(f)

    for key in ["experiment_name", "seed", "target_column", "target_type", "results"]:
        assert key in metrics, f"Missing key in metrics.json: {key}"
    assert [r["name"] for r in metrics["results"]] == [r.name for r in results]

    # Saved config must contain the same target
    with open(os.path.join(run_dir, "config.yaml"), "r") as f:
        saved_cfg = yaml.safe_load(f)
    assert saved_cfg["data"]["target_column"] == "BodyTemp"

    tables = os.listdir(os.path.join(run_dir, "tables"))
    assert "linear_RunnyNose_coefficients.csv" in tables
    assert "decision_tree_all_tuning.csv" in tables
    assert "random_forest_all_importances.csv" in tables


def test_run_writes_glance_and_significant_terms(base_regression_config, write_yaml, flu_store):
    cfg_path = write_yaml(base_regression_config, "reg.yaml")
    run_dir, results = run_models(cfg_path)

    glance = pd.read_csv(os.path.join(run_dir, "glance.csv"))
    assert glance.columns[0] == "statistic"
    assert set(r.name for r in results).issubset(glance.columns)
    assert "test_rmse" in set(glance["statistic"])

    significant = pd.read_csv(os.path.join(run_dir, "significant_terms.csv"))
    assert {"model", "term", "p_value"}.issubset(significant.columns)
    assert (significant["p_value"] < 0.05).all()
    # BodyTemp sits far from zero, so every parametric intercept is significant
    parametric = {r.name for r in results if r.family in ("null", "linear")}
    assert set(significant["model"]) == parametric


def test_saved_model_predicts_like_original(base_regression_config, write_yaml, flu_store, flu_df):
    cfg_path = write_yaml(base_regression_config, "reg.yaml")
    run_dir, results = run_models(cfg_path)

    linear = next(r for r in results if r.name == "linear_all")
    loaded = joblib.load(os.path.join(run_dir, "models", "linear_all.joblib"))
    pd.testing.assert_series_equal(
        pd.Series(loaded.predict(flu_df)), pd.Series(linear.model.predict(flu_df)))


def test_classification_run_and_cv_plot(base_classification_config, write_yaml, flu_store):
    cfg = copy.deepcopy(base_classification_config)
    cfg["metrics"]["save_plots"] = True
    cfg_path = write_yaml(cfg, "clf.yaml")
    run_dir, results = run_models(cfg_path)

    assert os.path.isfile(os.path.join(run_dir, "cv_distribution.png"))
    assert not os.path.exists(os.path.join(run_dir, "nested_anova.csv"))

    comparison = pd.read_csv(os.path.join(run_dir, "comparison.csv"))
    assert list(comparison["name"]) == [r.name for r in results]
    assert "test_roc_auc" in comparison.columns


def test_data_profile_contains_required_info(base_regression_config, write_yaml, flu_store):
    cfg_path = write_yaml(base_regression_config, "profile_test.yaml")
    run_dir, _ = run_models(cfg_path)

    with open(os.path.join(run_dir, "data_profile.json"), "r") as f:
        profile = json.load(f)

    for key in ["dataset_name", "dataset_hash", "total_rows", "total_columns", "target_stats"]:
        assert key in profile, f"Missing key in data_profile.json: {key}"
    assert profile["total_rows"] == 300
    assert profile["missing_values"] == 0


def test_run_processing_writes_processed_table(processing_config, write_yaml, flu_raw_df):
    store = DatasetStore(processing_config["data"]["store_root"])
    store.save("raw", flu_raw_df)

    processed, path = run_processing(write_yaml(processing_config, "processing.yaml"))
    assert os.path.isfile(path)
    assert not processed.isnull().any().any()


def test_run_exploration_writes_tables(base_regression_config, write_yaml, flu_store):
    cfg_path = write_yaml(base_regression_config, "explore.yaml")
    tables, out_dir = run_exploration(cfg_path, outcomes=["BodyTemp", "Nausea"])

    assert os.path.isfile(os.path.join(out_dir, "summary.csv"))
    assert os.path.isfile(os.path.join(out_dir, "BodyTemp_by_RunnyNose.csv"))
    assert os.path.isfile(os.path.join(out_dir, "Nausea_by_Weakness.csv"))
    assert len(tables) == 1 + 2 * (len(flu_store.load("processed").columns) - 1)


def test_full_pipeline(processing_config, base_regression_config, base_classification_config,
                       write_yaml, flu_raw_df, tmp_path):
    DatasetStore(processing_config["data"]["store_root"]).save("raw", flu_raw_df)

    reg = copy.deepcopy(base_regression_config)
    reg["models"]["families"] = ["null", "linear", "decision_tree"]
    clf = copy.deepcopy(base_classification_config)
    clf["models"]["families"] = ["null", "logistic"]

    summary = run_full_pipeline(
        processing_config=write_yaml(processing_config, "processing.yaml"),
        analysis_configs=[write_yaml(reg, "reg.yaml"), write_yaml(clf, "clf.yaml")],
        output_dir=str(tmp_path / "pipeline"),
    )

    assert os.path.isfile(summary["processed_path"])
    assert os.path.isdir(summary["exploration_dir"])
    assert len(summary["runs"]) == 2
    for info in summary["runs"].values():
        assert info["run_dir"].startswith(str(tmp_path / "pipeline"))
        assert info["best"] is not None


def test_runners_package_sets_loky_cpu_default():
    import runners

    assert runners.run_pipeline is not None
    assert os.environ["LOKY_MAX_CPU_COUNT"]
