# Exploration Module
# Descriptive statistics of every variable, alone and against the outcomes

import os

import numpy as np
import pandas as pd
from typing import Dict, List


def _is_continuous(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


def summary_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    One-row-per-variable summary of a table.

    Continuous columns get N, mean, sd, min, p25, p75, max. Categorical
    columns get one row per level with its count and percent.

    Returns:
        DataFrame with columns variable, level, n, percent, mean, sd, min, p25, p75, max
    """
    rows = []
    for col in df.columns:
        series = df[col].dropna()
        if _is_continuous(series):
            rows.append({
                'variable': col,
                'level': '',
                'n': int(series.size),
                'percent': np.nan,
                'mean': float(series.mean()),
                'sd': float(series.std()),
                'min': float(series.min()),
                'p25': float(series.quantile(0.25)),
                'p75': float(series.quantile(0.75)),
                'max': float(series.max()),
            })
            continue

        counts = series.astype(str).value_counts().sort_index()
        for level, count in counts.items():
            rows.append({
                'variable': col,
                'level': level,
                'n': int(count),
                'percent': float(count / series.size * 100) if series.size else np.nan,
                'mean': np.nan, 'sd': np.nan, 'min': np.nan,
                'p25': np.nan, 'p75': np.nan, 'max': np.nan,
            })

    return pd.DataFrame(rows)


def outcome_by_variable(df: pd.DataFrame, outcome: str, variable: str) -> pd.DataFrame:
    """
    Distribution of an outcome across the levels of one variable.

    Continuous outcome: count, mean, sd and median of the outcome per level
    (the numbers behind a boxplot). Categorical outcome: row proportions of
    each outcome level per variable level (the numbers behind a stacked bar).
    A continuous variable is cut into quartiles first.
    """
    if outcome not in df.columns or variable not in df.columns:
        raise ValueError(f"Columns '{outcome}' and '{variable}' must both be in the table")

    groups = df[variable]
    if _is_continuous(groups) and groups.nunique() > 10:
        groups = pd.qcut(groups, q=4, duplicates='drop').astype(str)
    else:
        groups = groups.astype(str)

    if _is_continuous(df[outcome]):
        table = df[outcome].groupby(groups).agg(['count', 'mean', 'std', 'median'])
        table = table.rename(columns={'std': 'sd'})
    else:
        table = pd.crosstab(groups, df[outcome].astype(str), normalize='index')
        table.columns = [f"prop_{c}" for c in table.columns]
        table.insert(0, 'count', groups.value_counts().reindex(table.index).to_numpy())

    table.index.name = variable
    return table.reset_index()


def explore(df: pd.DataFrame, outcomes: List[str]) -> Dict[str, pd.DataFrame]:
    """
    Full exploration: overall summary plus every variable against each outcome.

    Returns:
        Dict mapping 'summary' and '<outcome>_by_<variable>' to tables
    """
    print("Generating exploration tables...")
    tables = {'summary': summary_table(df)}

    for outcome in outcomes:
        for variable in df.columns:
            if variable == outcome:
                continue
            tables[f"{outcome}_by_{variable}"] = outcome_by_variable(df, outcome, variable)

    print(f"  {len(tables)} tables for {len(df.columns)} variables and {len(outcomes)} outcomes")
    return tables


def save_exploration(tables: Dict[str, pd.DataFrame], output_dir: str) -> List[str]:
    """Write every exploration table to <output_dir>/<name>.csv."""
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    for name, table in tables.items():
        path = os.path.join(output_dir, f"{name}.csv")
        table.to_csv(path, index=False)
        paths.append(path)
    return paths
