"""
Tests for AIC ranking and likelihood-ratio tests.
"""

import math
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from nba_draft_ts.models.comparison import (
    NonNestedModelsError,
    aic_table,
    anova,
    best_model,
    compare_models,
    is_nested,
    likelihood_ratio_test,
)
from nba_draft_ts.models.mixed_effects import FittedModel
from nba_draft_ts.schemas import ModelSpec


def make_model(
    name,
    shape="linear",
    llf=100.0,
    n_params=10,
    response="ts_pct",
    random_intercept=True,
    nobs=200,
    n_groups=40,
):
    """FittedModel carrying only what comparison needs."""
    spec = ModelSpec(
        name=name,
        shape_term=shape,
        response=response,
        random_intercept=random_intercept,
    )
    empty = pd.Series(dtype=float)
    return FittedModel(
        name=name,
        spec=spec,
        formula="",
        coefficients=pd.DataFrame(),
        random_intercept_variance=None,
        random_effects=None,
        residuals=empty,
        fitted_values=empty,
        log_likelihood=llf,
        n_params=n_params,
        nobs=nobs,
        n_groups=n_groups,
        design=pd.DataFrame(),
    )


class TestLikelihoodRatio:

    def test_statistic_and_p_value(self):
        small = make_model("linear", llf=100.0, n_params=10)
        large = make_model("poly", shape="polynomial", llf=103.0, n_params=12)

        result = likelihood_ratio_test(small, large)

        assert result.chi_square == pytest.approx(6.0)
        assert result.df_diff == 2
        # chi2 with 2 df: sf(x) = exp(-x / 2)
        assert result.p_value == pytest.approx(math.exp(-3.0))

    def test_argument_order_irrelevant(self):
        small = make_model("linear", llf=100.0, n_params=10)
        large = make_model("poly", shape="polynomial", llf=103.0, n_params=12)

        forward = likelihood_ratio_test(small, large)
        backward = likelihood_ratio_test(large, small)

        assert backward.smaller == "linear"
        assert backward.chi_square == forward.chi_square

    def test_worse_fit_clamps_to_zero(self):
        small = make_model("linear", llf=100.0, n_params=10)
        large = make_model("poly", shape="polynomial", llf=99.9, n_params=12)

        result = likelihood_ratio_test(small, large)

        assert result.chi_square == 0.0
        assert result.p_value == pytest.approx(1.0)

    def test_raw_vs_logit_rejected(self):
        raw = make_model("raw")
        logit = make_model("logit", shape="polynomial", response="ts_pct_logit", n_params=12)

        assert not is_nested(raw, logit)
        with pytest.raises(NonNestedModelsError, match="response"):
            likelihood_ratio_test(raw, logit)

    def test_ols_vs_mixed_rejected(self):
        ols = make_model("ols", random_intercept=False, n_params=9)
        mixed = make_model("mixed", shape="polynomial", n_params=12)

        with pytest.raises(NonNestedModelsError, match="random-effect"):
            likelihood_ratio_test(ols, mixed)

    def test_different_rows_rejected(self):
        a = make_model("a", nobs=200)
        b = make_model("b", shape="spline", n_params=14, nobs=199)

        with pytest.raises(NonNestedModelsError, match="different rows"):
            likelihood_ratio_test(a, b)

    def test_same_shape_rejected(self):
        a = make_model("a")
        b = make_model("b", llf=101.0)

        assert not is_nested(a, b)
        with pytest.raises(NonNestedModelsError):
            likelihood_ratio_test(a, b)


class TestAicTable:

    def test_sorted_with_delta(self):
        models = [
            make_model("a", llf=100.0, n_params=10),
            make_model("b", llf=110.0, n_params=12),
            make_model("c", llf=90.0, n_params=8),
        ]
        table = aic_table(models)

        assert list(table["model"]) == ["b", "a", "c"]
        assert table["delta_aic"].iloc[0] == 0.0
        assert (table["delta_aic"].diff().dropna() >= 0).all()
        assert best_model(models) == "b"

    def test_mixed_scales_ranked_together(self):
        models = {
            "raw": make_model("raw", llf=500.0),
            "logit": make_model("logit", response="ts_pct_logit", llf=300.0),
        }
        table = aic_table(models)
        assert set(table["response"]) == {"ts_pct", "ts_pct_logit"}

    def test_non_finite_aic_rejected(self):
        with pytest.raises(ValueError, match="not finite"):
            aic_table([make_model("bad", llf=-np.inf)])

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            aic_table([])


class TestAnova:

    def test_sequential_table(self):
        models = [
            make_model("spline", shape="spline", llf=104.0, n_params=14),
            make_model("linear", llf=100.0, n_params=10),
            make_model("poly", shape="polynomial", llf=103.0, n_params=12),
        ]
        table = anova(models)

        assert list(table["model"]) == ["linear", "poly", "spline"]
        assert np.isnan(table["chi_square"].iloc[0])
        assert table["chi_square"].iloc[1] == pytest.approx(6.0)
        assert table["chi_square"].iloc[2] == pytest.approx(2.0)
        assert list(table["df_diff"].iloc[1:]) == [2, 2]

    def test_needs_two_models(self):
        with pytest.raises(ValueError):
            anova([make_model("only")])


class TestCompareModels:

    def test_families_and_skipped(self):
        models = [
            make_model("linear", llf=100.0, n_params=10),
            make_model("poly", shape="polynomial", llf=103.0, n_params=12),
            make_model("logit", response="ts_pct_logit", llf=50.0, n_params=10),
        ]
        result = compare_models(models)

        assert list(result.anova_tables) == ["ts_pct|mixed|season_continuous|age"]
        assert set(result.skipped) == {"logit"}
        assert result.best_model == "poly"

    def test_needs_two_models(self):
        with pytest.raises(ValueError):
            compare_models([make_model("only")])

    def test_default_variants(self, fitted_batch):
        result = compare_models(fitted_batch.models)

        assert len(result.aic_table) == len(fitted_batch.models)
        assert result.best_model in fitted_batch.models
        assert set(result.skipped) == {
            "ols_baseline",
            "mixed_season_categorical",
            "mixed_career_stage",
            "mixed_logit",
        }

        (table,) = result.anova_tables.values()
        assert list(table["model"]) == ["mixed_season_continuous", "mixed_polynomial", "mixed_spline"]
        assert list(table["df_diff"].iloc[1:]) == [2, 2]
        assert table["p_value"].iloc[1:].between(0, 1).all()
