"""
Descriptive summary of the analytic table by draft round.

Produces the "Table 1" numbers: mean (SD) of each numeric variable and level
counts of each categorical variable, per draft round and overall. Missing
values are excluded from each statistic rather than failing the summary.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from nba_draft_ts.constants import (
    DRAFT_ROUND_LABELS,
    DRAFT_ROUND_LEVELS,
    OVERALL_LABEL,
    SUMMARY_CATEGORICAL_VARIABLES,
    SUMMARY_NUMERIC_VARIABLES,
)

logger = logging.getLogger(__name__)

MISSING_LEVEL = "Missing"


@dataclass
class DescriptiveSummary:
    """Long-form statistics plus the formatted wide table."""
    stats: pd.DataFrame
    table: pd.DataFrame
    group_sizes: Dict[str, int]

    @property
    def groups(self) -> List[str]:
        return list(self.group_sizes)


def format_mean_sd(mean: float, sd: float, decimals: int = 2) -> str:
    """'0.55 (0.06)' style cell; NA when the statistic is undefined."""
    if pd.isna(mean):
        return "NA"
    if pd.isna(sd):
        return f"{mean:.{decimals}f} (NA)"
    return f"{mean:.{decimals}f} ({sd:.{decimals}f})"


def format_count(count: int, total: int) -> str:
    pct = 100.0 * count / total if total else 0.0
    return f"{count} ({pct:.1f}%)"


def _numeric_stats(values: pd.Series) -> Dict[str, float]:
    values = pd.to_numeric(values, errors="coerce")
    return {
        "n": int(values.notna().sum()),
        "mean": float(values.mean(skipna=True)) if values.notna().any() else np.nan,
        "sd": float(values.std(skipna=True)) if values.notna().sum() > 1 else np.nan,
    }


def _levels(series: pd.Series) -> List[str]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [str(c) for c in series.cat.categories]
    return sorted(str(v) for v in series.dropna().unique())


def summarize(
    table: pd.DataFrame,
    variables: Sequence[str] = SUMMARY_NUMERIC_VARIABLES,
    categorical: Optional[Sequence[str]] = SUMMARY_CATEGORICAL_VARIABLES,
    group_col: str = "draft_round_combined",
) -> DescriptiveSummary:
    """
    Summarize variables by draft round plus an Overall column.

    Args:
        table: Derived analytic table
        variables: Numeric columns reported as mean (SD)
        categorical: Categorical columns reported as n (%) per level
        group_col: Grouping column holding DraftRoundCategory values

    Returns:
        DescriptiveSummary
    """
    categorical = list(categorical or [])
    missing = [c for c in [group_col, *variables, *categorical] if c not in table.columns]
    if missing:
        raise KeyError(f"Columns not in table: {missing}")

    group_keys = table[group_col].astype(str)
    groups: Dict[str, pd.DataFrame] = {}
    for level in DRAFT_ROUND_LEVELS:
        subset = table.loc[group_keys == level]
        if len(subset):
            groups[DRAFT_ROUND_LABELS[level]] = subset
    groups[OVERALL_LABEL] = table

    stat_rows = []
    for label, subset in groups.items():
        for var in variables:
            stat_rows.append({
                "group": label, "variable": var, "level": None,
                **_numeric_stats(subset[var]),
                "count": np.nan, "pct": np.nan,
            })
        for var in categorical:
            total = len(subset)
            levels = _levels(table[var])
            counts = subset[var].astype(object).value_counts(dropna=True)
            n_missing = int(subset[var].isna().sum())
            for level in levels:
                count = int(counts.get(level, 0))
                stat_rows.append({
                    "group": label, "variable": var, "level": level,
                    "n": total, "mean": np.nan, "sd": np.nan,
                    "count": count, "pct": 100.0 * count / total if total else 0.0,
                })
            if table[var].isna().any():
                stat_rows.append({
                    "group": label, "variable": var, "level": MISSING_LEVEL,
                    "n": total, "mean": np.nan, "sd": np.nan,
                    "count": n_missing, "pct": 100.0 * n_missing / total if total else 0.0,
                })

    stats = pd.DataFrame(stat_rows)
    group_sizes = {label: len(subset) for label, subset in groups.items()}

    # Wide, formatted table
    columns = list(groups)
    rows = {("N", ""): {label: str(group_sizes[label]) for label in columns}}
    for _, row in stats.iterrows():
        if pd.isna(row["level"]):
            key = (row["variable"], "Mean (SD)")
            cell = format_mean_sd(row["mean"], row["sd"])
        else:
            key = (row["variable"], row["level"])
            cell = format_count(int(row["count"]), int(row["n"]))
        rows.setdefault(key, {})[row["group"]] = cell

    formatted = pd.DataFrame.from_dict(rows, orient="index")[columns]
    formatted.index = pd.MultiIndex.from_tuples(list(formatted.index), names=["variable", "statistic"])

    logger.info(
        f"Summarized {len(variables)} numeric and {len(categorical)} categorical variables "
        f"across {len(columns)} groups"
    )
    return DescriptiveSummary(stats=stats, table=formatted, group_sizes=group_sizes)
