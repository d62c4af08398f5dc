import pandas as pd

# Columns whose name contains any of these substrings are removed from the raw
# symptom table (scores, totals, lab results, diagnoses, activity, visit id)
EXCLUDE_PATTERNS = (
    "Score",
    "Total",
    "FluA",
    "FluB",
    "Dxname",
    "Activity",
    "Unique.Visit",
)

EXPECTED_PROCESSED_COLUMNS = [
    "SwollenLymphNodes", "ChestCongestion", "ChillsSweats", "NasalCongestion",
    "CoughYN", "Sneeze", "Fatigue", "SubjectiveFever", "Headache", "Weakness",
    "WeaknessYN", "CoughIntensity", "CoughYN2", "Myalgia", "MyalgiaYN",
    "RunnyNose", "AbPain", "ChestPain", "Diarrhea", "EyePn", "Insomnia",
    "ItchyEye", "Nausea", "EarPn", "Hearing", "Pharyngitis", "Breathless",
    "ToothPn", "Vision", "Vomit", "Wheeze", "BodyTemp",
]

REFERENCE_SHAPE = (730, 32)


class SchemaError(Exception):
    """Raised when the processed table does not have the expected columns or shape."""
    pass


def exclude_columns(df, patterns=EXCLUDE_PATTERNS, ignore_case=False):
    """Remove every column whose name contains one of the patterns (case-sensitive unless ignore_case)."""
    patterns = [p.lower() if ignore_case else p for p in patterns]

    def _name(c):
        return str(c).lower() if ignore_case else str(c)

    dropped = [c for c in df.columns if any(p in _name(c) for p in patterns)]
    return df.drop(columns=dropped)


def drop_incomplete_rows(df):
    """Keep complete cases only."""
    return df.dropna(axis=0, how='any').reset_index(drop=True)


def check_schema(df, expected_columns):
    missing = [c for c in expected_columns if c not in df.columns]
    if missing:
        raise SchemaError(
            f"Expected columns missing after filtering: {missing}. "
            f"Available: {list(df.columns)}"
        )
    return True


def check_reference_shape(df, expected_shape=REFERENCE_SHAPE):
    """Regression check for the reference dataset (730 rows x 32 columns)."""
    if tuple(df.shape) != tuple(expected_shape):
        raise SchemaError(
            f"Processed table has shape {df.shape}, expected {tuple(expected_shape)}"
        )
    return True


def prepare(raw_table, exclude_patterns=EXCLUDE_PATTERNS, expected_columns=None, ignore_case=False):
    """
    Turn the raw symptom table into the processed table.

    Steps:
    - drop columns matching any exclusion pattern
    - drop rows with at least one missing value in the remaining columns
    - optionally verify that the expected columns survived

    The result never contains a missing cell, and prepare(prepare(df)) == prepare(df),
    including when no complete row survives (a 0-row table passes through).
    """
    if raw_table is None or len(raw_table.columns) == 0:
        raise ValueError("Raw table is empty")

    filtered = exclude_columns(raw_table, exclude_patterns, ignore_case)
    processed = drop_incomplete_rows(filtered)

    if expected_columns is not None:
        check_schema(processed, expected_columns)

    return processed


def missing_summary(df):
    """Missing cell count per column, only columns that have any."""
    counts = df.isnull().sum()
    return counts[counts > 0].sort_values(ascending=False)


def process_dataset(config, store=None):
    """
    Load the raw table from the dataset store, prepare it and save the processed table.

    Nothing is saved when a schema check fails.
    """
    from experiments.io import DatasetStore

    data_cfg = config['data']
    prep_cfg = config.get('preprocessing', {})

    store = store or DatasetStore.from_config(config)
    raw = store.load(data_cfg.get('raw_name', 'raw'))
    print(f"Raw table: {raw.shape[0]} rows x {raw.shape[1]} columns")

    missing = missing_summary(raw)
    if len(missing) > 0:
        print(f"Columns with missing values: {missing.to_dict()}")

    patterns = prep_cfg.get('exclude_patterns', list(EXCLUDE_PATTERNS))
    expected = prep_cfg.get('expected_columns')
    processed = prepare(raw, patterns, expected_columns=expected,
                        ignore_case=prep_cfg.get('ignore_case', False))

    if prep_cfg.get('check_reference_shape', False):
        check_reference_shape(processed)

    print(f"Processed table: {processed.shape[0]} rows x {processed.shape[1]} columns")
    path = store.save(data_cfg.get('processed_name', 'processed'), processed)
    print(f"Processed data saved to: {path}")
    return processed, path
