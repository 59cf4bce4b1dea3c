"""
Model Comparison
================

AIC ranking for every fitted variant and likelihood-ratio (ANOVA-style)
tests for nested variants only.

Two models are nested here when they share the response scale, the
random-effect structure, the season and age encodings and the rows they were
fit on, and differ only in the height/weight functional form
(linear ⊂ polynomial ⊂ spline). Raw-scale and logit-scale models are never
nested: they are compared by AIC alone and an LR test between them raises
NonNestedModelsError.

Usage:
    from nba_draft_ts.models.comparison import compare_models

    comparison = compare_models(batch.models)
    print(comparison.aic_table)
    for family, table in comparison.anova_tables.items():
        print(family, table)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from nba_draft_ts.models.mixed_effects import FittedModel

logger = logging.getLogger(__name__)


class NonNestedModelsError(ValueError):
    """Raised when a likelihood-ratio test is requested for non-nested models."""
    pass


SHAPE_ORDER = {"linear": 0, "polynomial": 1, "spline": 2}

Models = Union[Mapping[str, FittedModel], Iterable[FittedModel]]


@dataclass
class LikelihoodRatioResult:
    """One likelihood-ratio test between a smaller and a larger model."""
    smaller: str
    larger: str
    df_diff: int
    chi_square: float
    p_value: float

    def to_dict(self) -> dict:
        return {
            "smaller": self.smaller,
            "larger": self.larger,
            "df_diff": self.df_diff,
            "chi_square": self.chi_square,
            "p_value": self.p_value,
        }


@dataclass
class ComparisonResult:
    """AIC ranking for all models plus LR tables for each nested family."""
    aic_table: pd.DataFrame
    best_model: str
    anova_tables: Dict[str, pd.DataFrame] = field(default_factory=dict)
    skipped: Dict[str, str] = field(default_factory=dict)


def _as_list(models: Models) -> List[FittedModel]:
    if isinstance(models, Mapping):
        return list(models.values())
    return list(models)


def nesting_key(model: FittedModel) -> Tuple:
    """Everything that must match for two models to be nested."""
    spec = model.spec
    return (
        spec.response,
        spec.random_intercept,
        spec.season_term,
        spec.age_term,
        model.nobs,
        model.n_groups,
    )


def family_label(model: FittedModel) -> str:
    spec = model.spec
    structure = "mixed" if spec.random_intercept else "ols"
    return f"{spec.response}|{structure}|{spec.season_term}|{spec.age_term}"


def is_nested(a: FittedModel, b: FittedModel) -> bool:
    """True if one model is a restriction of the other."""
    if nesting_key(a) != nesting_key(b):
        return False
    if a.spec.shape_term == b.spec.shape_term or a.n_params == b.n_params:
        return False
    small, large = sorted([a, b], key=lambda m: m.n_params)
    return SHAPE_ORDER[small.spec.shape_term] < SHAPE_ORDER[large.spec.shape_term]


def _nesting_problem(a: FittedModel, b: FittedModel) -> str:
    if a.spec.response != b.spec.response:
        return f"different response scales ({a.spec.response} vs {b.spec.response})"
    if a.spec.random_intercept != b.spec.random_intercept:
        return "different random-effect structures"
    if (a.spec.season_term, a.spec.age_term) != (b.spec.season_term, b.spec.age_term):
        return "different season/age encodings"
    if (a.nobs, a.n_groups) != (b.nobs, b.n_groups):
        return f"fit on different rows ({a.nobs} vs {b.nobs})"
    return "same fixed-effect structure"


def likelihood_ratio_test(smaller: FittedModel, larger: FittedModel) -> LikelihoodRatioResult:
    """
    Likelihood-ratio test between two nested ML fits.

    Argument order does not matter; the model with fewer parameters is
    treated as the restricted one.

    Raises:
        NonNestedModelsError: If the models are not nested
    """
    if not is_nested(smaller, larger):
        raise NonNestedModelsError(
            f"Cannot LR-test {smaller.name} against {larger.name}: "
            f"{_nesting_problem(smaller, larger)}. Compare by AIC instead."
        )
    small, large = sorted([smaller, larger], key=lambda m: m.n_params)
    df_diff = large.n_params - small.n_params
    chi_square = max(0.0, 2.0 * (large.log_likelihood - small.log_likelihood))
    p_value = float(stats.chi2.sf(chi_square, df_diff))
    return LikelihoodRatioResult(
        smaller=small.name,
        larger=large.name,
        df_diff=df_diff,
        chi_square=chi_square,
        p_value=p_value,
    )


def aic_table(models: Models) -> pd.DataFrame:
    """AIC (with BIC and log-likelihood) for every model, best first."""
    models = _as_list(models)
    if not models:
        raise ValueError("No models to compare")

    rows = []
    for m in models:
        if not math.isfinite(m.aic):
            raise ValueError(f"AIC is not finite for {m.name} (logLik={m.log_likelihood})")
        rows.append({
            "model": m.name,
            "response": m.spec.response,
            "random_intercept": m.spec.random_intercept,
            "n_params": m.n_params,
            "nobs": m.nobs,
            "log_likelihood": m.log_likelihood,
            "deviance": m.deviance,
            "aic": m.aic,
            "bic": m.bic,
        })
    table = pd.DataFrame(rows).sort_values("aic").reset_index(drop=True)
    table["delta_aic"] = table["aic"] - table["aic"].min()
    return table


def best_model(models: Models) -> str:
    """Name of the model with the lowest AIC."""
    return str(aic_table(models).iloc[0]["model"])


def anova(models: Models) -> pd.DataFrame:
    """
    Sequential likelihood-ratio table, R anova() style.

    Models are ordered by parameter count; each row is tested against the
    row above it.

    Raises:
        NonNestedModelsError: If any adjacent pair is not nested
    """
    ordered = sorted(_as_list(models), key=lambda m: m.n_params)
    if len(ordered) < 2:
        raise ValueError("anova needs at least two models")

    rows = []
    previous = None
    for m in ordered:
        row = {
            "model": m.name,
            "n_params": m.n_params,
            "aic": m.aic,
            "bic": m.bic,
            "log_likelihood": m.log_likelihood,
            "deviance": m.deviance,
            "chi_square": np.nan,
            "df_diff": np.nan,
            "p_value": np.nan,
        }
        if previous is not None:
            lrt = likelihood_ratio_test(previous, m)
            row.update(chi_square=lrt.chi_square, df_diff=lrt.df_diff, p_value=lrt.p_value)
        rows.append(row)
        previous = m
    return pd.DataFrame(rows)


def compare_models(models: Models) -> ComparisonResult:
    """
    Rank all models by AIC and LR-test within nested families.

    Models without a nested counterpart are listed in `skipped` and only
    take part in the AIC ranking.
    """
    models = _as_list(models)
    if len(models) < 2:
        raise ValueError(f"Need at least two fitted models to compare, got {len(models)}")

    table = aic_table(models)
    best = str(table.iloc[0]["model"])

    families: Dict[Tuple, List[FittedModel]] = {}
    for m in models:
        families.setdefault(nesting_key(m), []).append(m)

    anova_tables: Dict[str, pd.DataFrame] = {}
    skipped: Dict[str, str] = {}
    for members in families.values():
        shapes = {m.spec.shape_term for m in members}
        if len(members) < 2 or len(shapes) < len(members):
            for m in members:
                skipped[m.name] = "no nested counterpart; AIC only"
            continue
        label = family_label(members[0])
        anova_tables[label] = anova(members)
        logger.info(f"LR tests for {label}: {[m.name for m in members]}")

    logger.info(f"Best model by AIC: {best} (AIC={table.iloc[0]['aic']:.2f})")
    if skipped:
        logger.info(f"AIC-only models: {sorted(skipped)}")
    return ComparisonResult(aic_table=table, best_model=best, anova_tables=anova_tables, skipped=skipped)
