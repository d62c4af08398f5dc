import os
import pytest
import pandas as pd
import numpy as np

from experiments.io import DatasetStore


@pytest.fixture(scope="session")
def seed():
    return 123


@pytest.fixture
def flu_df(seed):
    """
    Small deterministic table shaped like the processed symptom data.
    Includes:
      - BodyTemp (continuous outcome), lower with RunnyNose, higher with SubjectiveFever
      - Nausea (Yes/No outcome), more likely with severe Weakness
      - Weakness (4 ordered levels) and WeaknessYN, which is fully determined by it
      - Several Yes/No symptoms
    """
    rng = np.random.default_rng(seed)
    n = 300

    def yes_no(p):
        return np.where(rng.random(n) < p, "Yes", "No")

    df = pd.DataFrame({
        "SwollenLymphNodes": yes_no(0.45),
        "ChestCongestion": yes_no(0.55),
        "Sneeze": yes_no(0.55),
        "SubjectiveFever": yes_no(0.7),
        "RunnyNose": yes_no(0.75),
        "Pharyngitis": yes_no(0.8),
        "Weakness": rng.choice(["None", "Mild", "Moderate", "Severe"], size=n, p=[0.1, 0.3, 0.4, 0.2]),
    })
    df["WeaknessYN"] = np.where(df["Weakness"] == "None", "No", "Yes")

    logit = -1.2 + 1.5 * (df["Weakness"] == "Severe") + 0.8 * (df["SubjectiveFever"] == "Yes")
    df["Nausea"] = np.where(rng.random(n) < 1 / (1 + np.exp(-logit)), "Yes", "No")

    df["BodyTemp"] = (
        98.9
        - 0.5 * (df["RunnyNose"] == "Yes")
        + 0.8 * (df["SubjectiveFever"] == "Yes")
        + 0.3 * (df["Sneeze"] == "No")
        + rng.normal(0.0, 0.5, size=n)
    ).round(1)

    return df


@pytest.fixture
def flu_raw_df(flu_df):
    """flu_df plus the columns and incomplete rows the processing step removes."""
    raw = flu_df.copy()
    n = len(raw)
    raw["ScorePos"] = np.arange(n) % 7
    raw["TotalSymp1"] = np.arange(n) % 11
    raw["RapidFluA"] = "Negative"
    raw["PCRFluB"] = "Negative"
    raw["Dxname1"] = np.where(np.arange(n) % 3 == 0, None, "Influenza")
    raw["ActivityLevel"] = np.arange(n) % 10
    raw["Unique.Visit"] = [f"visit_{i}" for i in range(n)]
    raw.loc[[0, 5, 9], "BodyTemp"] = np.nan
    raw.loc[[3], "RunnyNose"] = None
    return raw


@pytest.fixture
def flu_store(tmp_path, flu_df):
    """Dataset store under tmp_path holding flu_df as the processed table."""
    store = DatasetStore(str(tmp_path / "data"))
    store.save("processed", flu_df)
    return store


@pytest.fixture
def base_regression_config(tmp_path, seed):
    """
    Minimal config for the BodyTemp comparison, small grids so tests stay fast.
    """
    cfg = {
        "experiment": {
            "name": "pytest_bodytemp",
            "seed": seed,
            "output_dir": str(tmp_path / "results")
        },
        "data": {
            "store_root": str(tmp_path / "data"),
            "processed_name": "processed",
            "target_column": "BodyTemp",
            "target_type": "regression",
            "main_predictor": "RunnyNose"
        },
        "split": {
            "train_fraction": 0.7,
            "stratify": True
        },
        "cross_validation": {
            "n_splits": 3,
            "n_repeats": 2,
            "stratify": True
        },
        "models": {
            "families": ["null", "linear", "decision_tree", "lasso", "random_forest"],
            "params": {
                "random_forest": {"n_estimators": 20}
            },
            "grids": {
                "decision_tree": {"max_depth": [1, 3], "ccp_alpha": [0.0, 0.01]},
                "lasso": {"alpha": {"start": -3, "stop": -1, "num": 3, "scale": "log"}},
                "random_forest": {"max_features": [2, 4], "min_samples_leaf": [5]}
            }
        },
        "tuning": {"n_jobs": 1},
        "comparison": {"metric": "rmse", "split": "test"},
        "metrics": {"save_plots": False}
    }
    return cfg


@pytest.fixture
def base_classification_config(tmp_path, seed):
    cfg = {
        "experiment": {
            "name": "pytest_nausea",
            "seed": seed,
            "output_dir": str(tmp_path / "results")
        },
        "data": {
            "store_root": str(tmp_path / "data"),
            "processed_name": "processed",
            "target_column": "Nausea",
            "target_type": "classification",
            "positive_class": "Yes",
            "main_predictor": "RunnyNose"
        },
        "split": {
            "train_fraction": 0.7,
            "stratify": True
        },
        "cross_validation": {
            "n_splits": 3,
            "n_repeats": 2,
            "stratify": True
        },
        "models": {
            "families": ["null", "logistic", "decision_tree", "lasso", "random_forest"],
            "params": {
                "random_forest": {"n_estimators": 20}
            },
            "grids": {
                "decision_tree": {"max_depth": [1, 3]},
                "lasso": {"C": [0.1, 1.0]},
                "random_forest": {"max_features": [2], "min_samples_leaf": [5, 10]}
            }
        },
        "tuning": {"n_jobs": 1},
        "comparison": {"metric": "roc_auc", "split": "test"},
        "metrics": {"save_plots": False}
    }
    return cfg


@pytest.fixture
def processing_config(tmp_path):
    return {
        "data": {
            "store_root": str(tmp_path / "data"),
            "raw_name": "raw",
            "processed_name": "processed"
        },
        "preprocessing": {
            "exclude_patterns": ["Score", "Total", "FluA", "FluB", "Dxname", "Activity", "Unique.Visit"],
            "expected_columns": ["RunnyNose", "BodyTemp", "Nausea"]
        }
    }


@pytest.fixture
def write_yaml(tmp_path):
    import yaml
    def _write(cfg, name="temp.yaml"):
        p = tmp_path / name
        with open(p, "w") as f:
            yaml.safe_dump(cfg, f, default_flow_style=False)
        return str(p)
    return _write


@pytest.fixture(scope="session")
def reference_processed_path():
    """Processed reference dataset, when present in the working tree."""
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    path = os.path.join(root, "data", "processed_data", "processeddata.pkl")
    if not os.path.exists(path):
        pytest.skip("Reference processed dataset not available")
    return path
