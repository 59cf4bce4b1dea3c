"""
Mixed-Effects Models for True Shooting Percentage
=================================================

Fits

    response ~ season_term * draft_round_combined
               + height_terms + weight_terms + age_term
               + (1 | player_name)

with statsmodels MixedLM. Models are fit by maximum likelihood (not REML) so
AIC and likelihood-ratio tests are defined across variants that differ in
their fixed effects.

Convergence contract: one optimizer, configured explicitly. If it does not
converge, or the design matrix is rank deficient, ModelFitError is raised.
Nothing is retried with different settings.

Usage:
    from nba_draft_ts.models.mixed_effects import fit, fit_all
    from nba_draft_ts.models.specs import DEFAULT_MODEL_SPECS

    model = fit(table, season_term="season_continuous", age_term="age", shape_term="spline")
    batch = fit_all(table, DEFAULT_MODEL_SPECS)
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm

from nba_draft_ts.config import Settings, settings
from nba_draft_ts.constants import GROUP_COLUMN, LOGIT_RESPONSE_COLUMN, RESPONSE_COLUMN
from nba_draft_ts.schemas import CoefficientRecord, ModelSpec

logger = logging.getLogger(__name__)


class ModelFitError(Exception):
    """Raised when a model cannot be fit (non-convergence, rank deficiency)."""
    pass


class DomainError(ValueError):
    """Raised when a transform is undefined for the data (logit of 0 or 1)."""
    pass


DRAFT_TERM = "draft_round_combined"
HEIGHT_COLUMN = "player_height"
WEIGHT_COLUMN = "player_weight"

SHAPE_TEMPLATES = {
    "linear": "{col}",
    "polynomial": "{col} + I({col} ** 2)",
    "spline": "bs({col}, df=3)",
}

SEASON_TERMS = {
    "season": "C(season)",
    "season_continuous": "season_continuous",
}


# =============================================================================
# RESULT CONTAINER
# =============================================================================

@dataclass
class FittedModel:
    """
    Numeric results of one fitted model variant.

    Everything a report renderer needs is exposed as plain pandas objects;
    the raw statsmodels result is kept on `result` for ad hoc inspection.
    """
    name: str
    spec: ModelSpec
    formula: str
    coefficients: pd.DataFrame
    random_intercept_variance: Optional[float]
    random_effects: Optional[pd.Series]
    residuals: pd.Series
    fitted_values: pd.Series
    log_likelihood: float
    n_params: int
    nobs: int
    n_groups: int
    design: pd.DataFrame = field(repr=False)
    fit_warnings: List[str] = field(default_factory=list)
    result: object = field(default=None, repr=False)

    @property
    def response(self) -> str:
        return self.spec.response

    @property
    def is_mixed(self) -> bool:
        return self.spec.random_intercept

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def aic(self) -> float:
        return self.deviance + 2.0 * self.n_params

    @property
    def bic(self) -> float:
        return self.deviance + math.log(self.nobs) * self.n_params

    @property
    def term_slices(self) -> Dict[str, slice]:
        """Design columns belonging to each formula term."""
        return dict(self.design.design_info.term_name_slices)

    def coefficient_records(self) -> List[CoefficientRecord]:
        records = []
        for row in self.coefficients.itertuples(index=False):
            records.append(CoefficientRecord(
                model=self.name,
                term=row.term,
                estimate=row.estimate,
                std_error=_none_if_nan(row.std_error),
                statistic=_none_if_nan(row.statistic),
                p_value=_none_if_nan(row.p_value),
            ))
        return records


@dataclass
class FitBatch:
    """Outcome of fitting a list of specs: successes and per-variant failures."""
    models: Dict[str, FittedModel]
    failures: Dict[str, str]

    def __len__(self) -> int:
        return len(self.models)


def _none_if_nan(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


# =============================================================================
# RESPONSE TRANSFORMS
# =============================================================================

def logit(p: float) -> float:
    """
    Log-odds of a proportion.

    Examples:
        >>> round(logit(0.55), 4)
        0.2007

    Raises:
        DomainError: If p is not strictly between 0 and 1
    """
    if not 0.0 < p < 1.0:
        raise DomainError(f"logit undefined for {p}")
    return math.log(p / (1.0 - p))


def add_logit_response(table: pd.DataFrame, column: str = RESPONSE_COLUMN) -> pd.DataFrame:
    """
    Copy of the table with `ts_pct_logit = ln(ts_pct / (1 - ts_pct))`.

    Raises:
        DomainError: If any non-missing value lies outside (0, 1)
    """
    values = table[column]
    bad = values.notna() & ((values <= 0) | (values >= 1))
    if bad.any():
        examples = values[bad].unique()[:5].tolist()
        raise DomainError(
            f"{int(bad.sum())} rows have {column} outside (0, 1); "
            f"logit is undefined (e.g. {examples})"
        )
    out = table.copy()
    out[LOGIT_RESPONSE_COLUMN] = np.log(values / (1.0 - values))
    return out


# =============================================================================
# FORMULA / DESIGN
# =============================================================================

def build_formula(spec: ModelSpec) -> str:
    """Patsy formula for the fixed-effect part of a spec."""
    season = SEASON_TERMS[spec.season_term]
    shape = SHAPE_TEMPLATES[spec.shape_term]
    height = shape.format(col=HEIGHT_COLUMN)
    weight = shape.format(col=WEIGHT_COLUMN)
    return f"{spec.response} ~ {season} * {DRAFT_TERM} + {height} + {weight} + {spec.age_term}"


def _required_columns(spec: ModelSpec) -> List[str]:
    return [
        spec.response, spec.season_term, DRAFT_TERM,
        HEIGHT_COLUMN, WEIGHT_COLUMN, spec.age_term, GROUP_COLUMN,
    ]


def _model_frame(table: pd.DataFrame, spec: ModelSpec) -> pd.DataFrame:
    """Complete-case rows for the variant's columns, unused levels dropped."""
    if spec.response == LOGIT_RESPONSE_COLUMN and LOGIT_RESPONSE_COLUMN not in table.columns:
        table = add_logit_response(table)

    columns = list(dict.fromkeys(_required_columns(spec)))
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise KeyError(f"Table is missing model columns: {missing}")

    frame = table[columns].dropna()
    dropped = len(table) - len(frame)
    if dropped:
        logger.info(f"[{spec.name}] Dropped {dropped:,} rows with missing model inputs")

    frame = frame.copy()
    for col in frame.columns:
        if isinstance(frame[col].dtype, pd.CategoricalDtype):
            frame[col] = frame[col].cat.remove_unused_categories()
    return frame


def build_design(table: pd.DataFrame, spec: ModelSpec) -> Tuple[pd.Series, pd.DataFrame, pd.Series]:
    """
    Response, fixed-effect design matrix and grouping key for a spec.

    Raises:
        ModelFitError: If the design matrix is rank deficient
    """
    frame = _model_frame(table, spec)
    if frame.empty:
        raise ModelFitError(f"[{spec.name}] No complete rows to fit")

    try:
        y, X = patsy.dmatrices(build_formula(spec), frame, return_type="dataframe")
    except patsy.PatsyError as e:
        raise ModelFitError(f"[{spec.name}] Could not build design matrix: {e}") from e
    groups = frame.loc[X.index, GROUP_COLUMN].astype(str)

    rank = np.linalg.matrix_rank(X.values)
    if rank < X.shape[1]:
        raise ModelFitError(
            f"[{spec.name}] Design matrix is rank deficient "
            f"(rank {rank} < {X.shape[1]} columns)"
        )
    return y.iloc[:, 0], X, groups


# =============================================================================
# FITTING
# =============================================================================

def _optimize(model: sm.MixedLM, cfg: Settings):
    """Single-optimizer MixedLM fit."""
    return model.fit(
        reml=cfg.USE_REML,
        method=[cfg.MIXEDLM_METHOD],
        maxiter=cfg.MIXEDLM_MAXITER,
    )


def _coefficient_table(params: pd.Series, bse, stat, pvalues) -> pd.DataFrame:
    # Fixed effects come first in every statsmodels parameter vector
    k = len(params)
    return pd.DataFrame({
        "term": list(params.index),
        "estimate": np.asarray(params, dtype=float),
        "std_error": np.asarray(bse, dtype=float)[:k],
        "statistic": np.asarray(stat, dtype=float)[:k],
        "p_value": np.asarray(pvalues, dtype=float)[:k],
    })


def fit_spec(table: pd.DataFrame, spec: ModelSpec, cfg: Settings = settings) -> FittedModel:
    """
    Fit one model variant.

    Args:
        table: Derived analytic table
        spec: Model variant
        cfg: Settings (optimizer, iterations, REML)

    Returns:
        FittedModel

    Raises:
        ModelFitError: Rank-deficient design, non-convergence or numerical failure
        DomainError: Logit response requested with TS% at 0 or 1
    """
    y, X, groups = build_design(table, spec)
    formula = build_formula(spec)
    logger.info(
        f"[{spec.name}] Fitting {'MixedLM' if spec.random_intercept else 'OLS'}: "
        f"{formula} ({len(y):,} rows, {groups.nunique():,} players, {X.shape[1]} fixed effects)"
    )

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            if spec.random_intercept:
                model = sm.MixedLM(endog=y, exog=X, groups=groups)
                result = _optimize(model, cfg)
            else:
                result = sm.OLS(y, X).fit()
        except (np.linalg.LinAlgError, ValueError) as e:
            raise ModelFitError(f"[{spec.name}] Numerical failure while fitting: {e}") from e

    fit_warnings = [str(w.message) for w in caught]
    for msg in fit_warnings:
        logger.warning(f"[{spec.name}] {msg}")

    if spec.random_intercept and not getattr(result, "converged", False):
        raise ModelFitError(
            f"[{spec.name}] Optimizer '{cfg.MIXEDLM_METHOD}' did not converge "
            f"within {cfg.MIXEDLM_MAXITER} iterations"
        )

    if spec.random_intercept:
        fe = pd.Series(np.asarray(result.fe_params, dtype=float), index=X.columns)
        coefficients = _coefficient_table(fe, result.bse_fe, result.tvalues, result.pvalues)
        re_variance = float(np.asarray(result.cov_re)[0, 0])
        random_effects = pd.Series(
            {g: float(np.asarray(v)[0]) for g, v in result.random_effects.items()},
            name="random_intercept",
        ).sort_index()
        random_effects.index.name = GROUP_COLUMN
        # fixed effects + random-intercept variance + residual scale
        n_params = len(result.params) + 1
    else:
        params = pd.Series(np.asarray(result.params, dtype=float), index=X.columns)
        coefficients = _coefficient_table(params, result.bse, result.tvalues, result.pvalues)
        re_variance = None
        random_effects = None
        n_params = len(result.params) + 1

    fitted = FittedModel(
        name=spec.name,
        spec=spec,
        formula=formula,
        coefficients=coefficients,
        random_intercept_variance=re_variance,
        random_effects=random_effects,
        residuals=pd.Series(np.asarray(result.resid), index=y.index, name="residual"),
        fitted_values=pd.Series(np.asarray(result.fittedvalues), index=y.index, name="fitted"),
        log_likelihood=float(result.llf),
        n_params=n_params,
        nobs=len(y),
        n_groups=int(groups.nunique()),
        design=X,
        fit_warnings=fit_warnings,
        result=result,
    )
    logger.info(
        f"[{spec.name}] logLik={fitted.log_likelihood:.2f} AIC={fitted.aic:.2f} "
        f"params={fitted.n_params}"
    )
    return fitted


def fit(
    table: pd.DataFrame,
    season_term: str = "season_continuous",
    age_term: str = "age",
    shape_term: str = "linear",
    response: str = RESPONSE_COLUMN,
    random_intercept: bool = True,
    name: Optional[str] = None,
    cfg: Settings = settings,
) -> FittedModel:
    """Fit a single variant described by keyword terms (see fit_spec)."""
    spec = ModelSpec(
        name=name or f"{response}:{season_term}:{age_term}:{shape_term}",
        season_term=season_term,
        age_term=age_term,
        shape_term=shape_term,
        response=response,
        random_intercept=random_intercept,
    )
    return fit_spec(table, spec, cfg=cfg)


def fit_all(
    table: pd.DataFrame,
    specs: Sequence[ModelSpec],
    cfg: Settings = settings,
) -> FitBatch:
    """
    Fit every spec independently.

    A variant that fails to fit is recorded in `failures` and does not stop
    the remaining variants.
    """
    names = [s.name for s in specs]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate model spec names: {duplicates}")

    models: Dict[str, FittedModel] = {}
    failures: Dict[str, str] = {}
    for spec in specs:
        try:
            models[spec.name] = fit_spec(table, spec, cfg=cfg)
        except (ModelFitError, DomainError) as e:
            logger.error(f"[{spec.name}] Fit failed: {e}")
            failures[spec.name] = str(e)

    logger.info(f"Fitted {len(models)}/{len(specs)} model variants")
    return FitBatch(models=models, failures=failures)
