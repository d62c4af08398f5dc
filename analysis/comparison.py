# Model Comparison Module
# Coefficient tables, goodness-of-fit side by side, nested model tests

import numpy as np
import pandas as pd
from typing import Dict, List, Optional
from statsmodels.stats.anova import anova_lm


def coefficient_table(result) -> Optional[pd.DataFrame]:
    """Coefficient table of a ModelResult (None for trees and forests)."""
    if result.coefficients is None:
        return None
    table = result.coefficients.copy()
    table.insert(0, 'model', result.name)
    return table


def significant_terms(coefficients: pd.DataFrame, alpha: float = 0.05) -> pd.DataFrame:
    """
    Terms whose p-value is below alpha.

    Undefined (aliased) terms are never significant.
    """
    if 'p_value' not in coefficients.columns:
        raise ValueError("Coefficient table has no p-values")
    mask = coefficients['p_value'].notna() & (coefficients['p_value'] < alpha)
    return coefficients[mask].reset_index(drop=True)


def glance_table(results: List) -> pd.DataFrame:
    """
    Goodness of fit of several candidates side by side.

    Rows are statistics (aic, bic, loglik, r2, ... and the train/test
    metrics), columns are candidate names.
    """
    columns = {}
    for result in results:
        stats: Dict[str, float] = dict(result.fit_stats)
        for metric, value in result.train_metrics.items():
            stats[f'train_{metric}'] = value
        for metric, value in result.test_metrics.items():
            stats[f'test_{metric}'] = value
        columns[result.name] = pd.Series(stats, dtype=float)

    table = pd.DataFrame(columns)
    table.index.name = 'statistic'
    return table.reset_index()


def nested_anova(small, large) -> pd.DataFrame:
    """
    F-test between two nested linear fits on the same rows.

    Args:
        small, large: ModelResults of the 'linear' family, small nested in large

    Returns:
        statsmodels ANOVA table (df_resid, ssr, df_diff, ss_diff, F, Pr(>F))
    """
    for result in (small, large):
        if (result.task != 'regression' or result.family not in ('null', 'linear')
                or result.model is None or result.model.results is None):
            raise ValueError(f"Nested ANOVA needs fitted linear models, got '{result.name}'")

    if not set(small.predictors).issubset(large.predictors):
        raise ValueError(f"'{small.name}' is not nested in '{large.name}'")

    table = anova_lm(small.model.results, large.model.results)
    table.index = [small.name, large.name]
    return table


def format_comparison_markdown(table: pd.DataFrame, metric_column: Optional[str] = None,
                               lower_is_better: bool = True, digits: int = 4) -> str:
    """Format a comparison DataFrame as Markdown, best value of metric_column in bold."""
    best_idx = None
    if metric_column is not None and metric_column in table.columns and table[metric_column].notna().any():
        best_idx = table[metric_column].idxmin() if lower_is_better else table[metric_column].idxmax()

    lines = []
    lines.append('| ' + ' | '.join(str(c) for c in table.columns) + ' |')
    lines.append('|' + '|'.join(['---'] * len(table.columns)) + '|')

    for idx, row in table.iterrows():
        row_vals = []
        for col, val in row.items():
            if isinstance(val, (float, np.floating)):
                val = 'NA' if np.isnan(val) else f"{val:.{digits}f}"
            if col == metric_column and idx == best_idx:
                row_vals.append(f'**{val}**')
            else:
                row_vals.append(str(val))
        lines.append('| ' + ' | '.join(row_vals) + ' |')

    return '\n'.join(lines)
