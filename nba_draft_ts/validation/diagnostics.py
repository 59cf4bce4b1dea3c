"""
Post-fit diagnostics for fitted models.

Three independent, read-only checks over a FittedModel:
1. Residuals - residual vs fitted, normal quantiles, histogram, fit metrics
2. Random effects - distribution of per-player intercepts
3. Multicollinearity - VIF per design column and generalized VIF per term

None of these change the model. VIF flags are for human review; terms are
never removed automatically.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from statsmodels.stats.outliers_influence import variance_inflation_factor

from nba_draft_ts.config import settings
from nba_draft_ts.models.mixed_effects import FittedModel

logger = logging.getLogger(__name__)

INTERCEPT = "Intercept"


@dataclass
class Histogram:
    counts: np.ndarray
    edges: np.ndarray

    @classmethod
    def of(cls, values: np.ndarray, bins: int) -> "Histogram":
        counts, edges = np.histogram(values, bins=bins)
        return cls(counts=counts, edges=edges)


@dataclass
class QuantileComparison:
    """Normal Q-Q pairs plus the least-squares line through them."""
    points: pd.DataFrame  # theoretical, sample
    slope: float
    intercept: float
    r: float

    @classmethod
    def of(cls, values: np.ndarray) -> "QuantileComparison":
        (osm, osr), (slope, intercept, r) = stats.probplot(values, dist="norm")
        points = pd.DataFrame({"theoretical": osm, "sample": osr})
        return cls(points=points, slope=float(slope), intercept=float(intercept), r=float(r))


@dataclass
class ResidualDiagnostics:
    model: str
    frame: pd.DataFrame  # fitted, residual
    qq: QuantileComparison
    histogram: Histogram
    metrics: Dict[str, float]


@dataclass
class RandomEffectDiagnostics:
    model: str
    intercepts: pd.Series
    summary: Dict[str, float]
    qq: QuantileComparison
    histogram: Histogram


@dataclass
class MulticollinearityReport:
    model: str
    threshold: float
    column_vif: pd.DataFrame
    term_gvif: pd.DataFrame
    flagged: List[str] = field(default_factory=list)


# =============================================================================
# RESIDUALS
# =============================================================================

def residual_diagnostics(model: FittedModel, bins: Optional[int] = None) -> ResidualDiagnostics:
    """
    Descriptive residual checks (heteroscedasticity, normality, spread).

    Metrics are on the model's response scale. `abs_resid_fitted_spearman`
    is a rough heteroscedasticity indicator: residual spread that grows with
    the fitted value shows up as a positive correlation.
    """
    bins = bins or settings.HISTOGRAM_BINS
    resid = model.residuals.to_numpy(dtype=float)
    fitted = model.fitted_values.to_numpy(dtype=float)
    observed = fitted + resid

    spearman = stats.spearmanr(np.abs(resid), fitted)
    metrics = {
        "rmse": float(np.sqrt(mean_squared_error(observed, fitted))),
        "mae": float(mean_absolute_error(observed, fitted)),
        "r2": float(r2_score(observed, fitted)),
        "residual_mean": float(np.mean(resid)),
        "residual_sd": float(np.std(resid, ddof=1)),
        "skewness": float(stats.skew(resid)),
        "excess_kurtosis": float(stats.kurtosis(resid)),
        "abs_resid_fitted_spearman": float(spearman[0]),
    }

    return ResidualDiagnostics(
        model=model.name,
        frame=pd.DataFrame({"fitted": fitted, "residual": resid}, index=model.residuals.index),
        qq=QuantileComparison.of(resid),
        histogram=Histogram.of(resid, bins),
        metrics=metrics,
    )


# =============================================================================
# RANDOM EFFECTS
# =============================================================================

def random_effect_diagnostics(model: FittedModel, bins: Optional[int] = None) -> RandomEffectDiagnostics:
    """Distribution of the per-player random intercepts."""
    if not model.is_mixed or model.random_effects is None:
        raise ValueError(f"{model.name} has no random intercept")

    bins = bins or settings.HISTOGRAM_BINS
    intercepts = model.random_effects
    values = intercepts.to_numpy(dtype=float)
    summary = {
        "n_players": int(len(values)),
        "mean": float(np.mean(values)),
        "sd": float(np.std(values, ddof=1)) if len(values) > 1 else np.nan,
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "variance_component": float(model.random_intercept_variance),
    }
    return RandomEffectDiagnostics(
        model=model.name,
        intercepts=intercepts,
        summary=summary,
        qq=QuantileComparison.of(values),
        histogram=Histogram.of(values, bins),
    )


# =============================================================================
# MULTICOLLINEARITY
# =============================================================================

def column_vif(design: pd.DataFrame) -> pd.DataFrame:
    """Classic VIF for every non-intercept design column."""
    exog = design.to_numpy(dtype=float)
    rows = []
    for i, col in enumerate(design.columns):
        if col == INTERCEPT:
            continue
        rows.append({"column": col, "vif": float(variance_inflation_factor(exog, i))})
    return pd.DataFrame(rows, columns=["column", "vif"])


def _logdet(matrix: np.ndarray) -> float:
    if matrix.size == 0:
        return 0.0
    sign, logdet = np.linalg.slogdet(matrix)
    if sign <= 0:
        return -np.inf
    return float(logdet)


def term_gvif(design: pd.DataFrame, term_slices: Dict[str, slice]) -> pd.DataFrame:
    """
    Generalized VIF per formula term (Fox & Monette 1992).

    GVIF = det(R11) * det(R22) / det(R), where R is the correlation matrix of
    the non-intercept design columns and R11 the block for the term. For a
    one-column term this is the ordinary VIF. GVIF^(1/(2*df)) is comparable
    across terms with different numbers of columns.
    """
    columns = [c for c in design.columns if c != INTERCEPT]
    if not columns:
        return pd.DataFrame(columns=["term", "df", "gvif", "adjusted_gvif"])

    corr = np.corrcoef(design[columns].to_numpy(dtype=float), rowvar=False)
    corr = np.atleast_2d(corr)
    position = {c: i for i, c in enumerate(columns)}
    logdet_all = _logdet(corr)

    rows = []
    for term, slc in term_slices.items():
        term_cols = [c for c in design.columns[slc] if c != INTERCEPT]
        if not term_cols:
            continue
        idx = [position[c] for c in term_cols]
        rest = [i for i in range(len(columns)) if i not in idx]
        log_gvif = (
            _logdet(corr[np.ix_(idx, idx)])
            + _logdet(corr[np.ix_(rest, rest)])
            - logdet_all
        )
        gvif = float(np.exp(log_gvif))
        df = len(idx)
        rows.append({
            "term": term,
            "df": df,
            "gvif": gvif,
            "adjusted_gvif": gvif ** (1.0 / (2 * df)),
        })
    return pd.DataFrame(rows)


def multicollinearity(model: FittedModel, threshold: Optional[float] = None) -> MulticollinearityReport:
    """
    VIF-style multicollinearity check for a fitted model's fixed effects.

    A term is flagged when GVIF^(1/df) exceeds the threshold (the usual VIF
    rule of thumb, 5 or 10, for single-column terms).
    """
    threshold = threshold if threshold is not None else settings.VIF_THRESHOLD
    columns = column_vif(model.design)
    terms = term_gvif(model.design, model.term_slices)
    if not terms.empty:
        terms["flagged"] = terms["adjusted_gvif"] ** 2 > threshold
        flagged = terms.loc[terms["flagged"], "term"].tolist()
    else:
        terms["flagged"] = pd.Series(dtype=bool)
        flagged = []

    if flagged:
        logger.warning(
            f"[{model.name}] Terms above VIF threshold {threshold}: {flagged} (review, not removed)"
        )
    return MulticollinearityReport(
        model=model.name,
        threshold=threshold,
        column_vif=columns,
        term_gvif=terms,
        flagged=flagged,
    )
