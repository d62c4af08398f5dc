# Analysis Module
# Exploration tables and model comparison reports

from .exploration import (
    summary_table,
    outcome_by_variable,
    explore,
    save_exploration
)

from .comparison import (
    coefficient_table,
    significant_terms,
    glance_table,
    nested_anova,
    format_comparison_markdown
)

__all__ = [
    'summary_table',
    'outcome_by_variable',
    'explore',
    'save_exploration',
    'coefficient_table',
    'significant_terms',
    'glance_table',
    'nested_anova',
    'format_comparison_markdown'
]
