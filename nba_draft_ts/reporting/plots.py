"""
Figures for the TS% by draft round analysis.

Thin matplotlib wrappers around the numbers produced by the core pipeline.
Every function returns the Figure and saves a PNG when `path` is given.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from nba_draft_ts.constants import DRAFT_ROUND_LABELS, DRAFT_ROUND_LEVELS, SUMMARY_NUMERIC_VARIABLES
from nba_draft_ts.validation.diagnostics import RandomEffectDiagnostics, ResidualDiagnostics

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

ROUND_COLORS = {"1": "#1f77b4", "2": "#ff7f0e", "Undrafted": "#2ca02c"}


def _save(fig: plt.Figure, path: Optional[PathLike]) -> plt.Figure:
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved figure: {path}")
    return fig


def plot_ts_by_season(table: pd.DataFrame, path: Optional[PathLike] = None) -> plt.Figure:
    """Mean TS% per season, one line per draft round."""
    means = (
        table.groupby(["season_continuous", table["draft_round_combined"].astype(str)])["ts_pct"]
        .mean()
        .unstack()
    )
    fig, ax = plt.subplots(figsize=(10, 5))
    for level in DRAFT_ROUND_LEVELS:
        if level in means.columns:
            ax.plot(means.index, means[level], marker="o", markersize=3,
                    color=ROUND_COLORS[level], label=DRAFT_ROUND_LABELS[level])
    ax.set_xlabel("Season (start year)")
    ax.set_ylabel("Mean TS%")
    ax.set_title("True shooting by draft round over time")
    ax.legend()
    ax.grid(alpha=0.3)
    return _save(fig, path)


def plot_ts_boxplot(table: pd.DataFrame, path: Optional[PathLike] = None) -> plt.Figure:
    """TS% distribution per draft round."""
    rounds = table["draft_round_combined"].astype(str)
    levels = [lvl for lvl in DRAFT_ROUND_LEVELS if (rounds == lvl).any()]
    data = [table.loc[rounds == lvl, "ts_pct"].dropna().to_numpy() for lvl in levels]

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.boxplot(data)
    ax.set_xticks(range(1, len(levels) + 1))
    ax.set_xticklabels([DRAFT_ROUND_LABELS[lvl] for lvl in levels])
    ax.set_ylabel("TS%")
    ax.set_title("TS% by draft round")
    return _save(fig, path)


def plot_height_scatter(table: pd.DataFrame, path: Optional[PathLike] = None) -> plt.Figure:
    """Player height vs TS%, coloured by draft round."""
    fig, ax = plt.subplots(figsize=(8, 5))
    rounds = table["draft_round_combined"].astype(str)
    for level in DRAFT_ROUND_LEVELS:
        subset = table.loc[rounds == level]
        if len(subset):
            ax.scatter(subset["player_height"], subset["ts_pct"], s=6, alpha=0.4,
                       color=ROUND_COLORS[level], label=DRAFT_ROUND_LABELS[level])
    ax.set_xlabel("Height")
    ax.set_ylabel("TS%")
    ax.set_title("Height vs TS%")
    ax.legend(markerscale=3)
    return _save(fig, path)


def plot_variable_histograms(
    table: pd.DataFrame,
    variables: Sequence[str] = SUMMARY_NUMERIC_VARIABLES,
    bins: int = 30,
    path: Optional[PathLike] = None,
) -> plt.Figure:
    """One histogram per numeric variable."""
    n = len(variables)
    cols = min(3, n)
    rows = int(np.ceil(n / cols))
    fig, axes = plt.subplots(rows, cols, figsize=(4 * cols, 3 * rows), squeeze=False)
    for ax, var in zip(axes.flat, variables):
        ax.hist(table[var].dropna(), bins=bins, color="#4c72b0", edgecolor="white")
        ax.set_title(var)
    for ax in list(axes.flat)[n:]:
        ax.set_visible(False)
    fig.tight_layout()
    return _save(fig, path)


def plot_residuals(diag: ResidualDiagnostics, path: Optional[PathLike] = None) -> plt.Figure:
    """Residual vs fitted, normal Q-Q and residual histogram side by side."""
    fig, (ax1, ax2, ax3) = plt.subplots(1, 3, figsize=(15, 4))

    ax1.scatter(diag.frame["fitted"], diag.frame["residual"], s=5, alpha=0.4)
    ax1.axhline(0, color="red", lw=1)
    ax1.set_xlabel("Fitted")
    ax1.set_ylabel("Residual")
    ax1.set_title("Residuals vs fitted")

    qq = diag.qq.points
    ax2.scatter(qq["theoretical"], qq["sample"], s=5, alpha=0.5)
    line_x = np.array([qq["theoretical"].min(), qq["theoretical"].max()])
    ax2.plot(line_x, diag.qq.intercept + diag.qq.slope * line_x, color="red", lw=1)
    ax2.set_xlabel("Theoretical quantiles")
    ax2.set_ylabel("Sample quantiles")
    ax2.set_title("Normal Q-Q")

    hist = diag.histogram
    ax3.stairs(hist.counts, hist.edges, fill=True, alpha=0.7)
    ax3.set_xlabel("Residual")
    ax3.set_title("Residual histogram")

    fig.suptitle(diag.model)
    fig.tight_layout()
    return _save(fig, path)


def plot_random_effects(diag: RandomEffectDiagnostics, path: Optional[PathLike] = None) -> plt.Figure:
    """Histogram and Q-Q plot of per-player random intercepts."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 4))

    ax1.stairs(diag.histogram.counts, diag.histogram.edges, fill=True, alpha=0.7)
    ax1.set_xlabel("Random intercept")
    ax1.set_title("Player intercepts")

    qq = diag.qq.points
    ax2.scatter(qq["theoretical"], qq["sample"], s=5, alpha=0.5)
    line_x = np.array([qq["theoretical"].min(), qq["theoretical"].max()])
    ax2.plot(line_x, diag.qq.intercept + diag.qq.slope * line_x, color="red", lw=1)
    ax2.set_xlabel("Theoretical quantiles")
    ax2.set_title("Normal Q-Q")

    fig.suptitle(diag.model)
    fig.tight_layout()
    return _save(fig, path)
