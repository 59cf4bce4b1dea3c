"""
Tests for post-fit diagnostics.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from nba_draft_ts.models.mixed_effects import fit
from nba_draft_ts.validation.diagnostics import (
    column_vif,
    multicollinearity,
    random_effect_diagnostics,
    residual_diagnostics,
    term_gvif,
)


class TestResidualDiagnostics:

    def test_shapes(self, fitted_batch):
        model = fitted_batch.models["mixed_season_continuous"]
        diag = residual_diagnostics(model, bins=20)

        assert len(diag.frame) == model.nobs
        assert len(diag.qq.points) == model.nobs
        assert len(diag.histogram.counts) == 20
        assert diag.histogram.counts.sum() == model.nobs

    def test_metrics(self, fitted_batch):
        diag = residual_diagnostics(fitted_batch.models["mixed_season_continuous"])
        metrics = diag.metrics

        assert set(metrics) >= {"rmse", "mae", "r2", "skewness", "excess_kurtosis"}
        assert metrics["rmse"] >= metrics["mae"] > 0
        assert 0 < metrics["r2"] < 1
        # Simulated within-player noise SD is 0.02
        assert metrics["residual_sd"] == pytest.approx(0.02, abs=0.01)

    def test_gaussian_residuals_look_normal(self, fitted_batch):
        diag = residual_diagnostics(fitted_batch.models["mixed_season_continuous"])
        assert diag.qq.r > 0.95


class TestRandomEffectDiagnostics:

    def test_summary(self, fitted_batch):
        model = fitted_batch.models["mixed_season_continuous"]
        diag = random_effect_diagnostics(model)

        assert diag.summary["n_players"] == model.n_groups
        assert diag.summary["variance_component"] == model.random_intercept_variance
        # BLUPs are shrunk toward zero around a zero mean
        assert abs(diag.summary["mean"]) < 0.01

    def test_ols_rejected(self, fitted_batch):
        with pytest.raises(ValueError, match="no random intercept"):
            random_effect_diagnostics(fitted_batch.models["ols_baseline"])


class TestMulticollinearity:

    def test_single_column_gvif_equals_vif(self, fitted_batch):
        model = fitted_batch.models["mixed_season_continuous"]
        columns = column_vif(model.design).set_index("column")["vif"]
        terms = term_gvif(model.design, model.term_slices).set_index("term")

        for term in ["player_height", "player_weight", "age"]:
            assert terms.loc[term, "df"] == 1
            assert terms.loc[term, "gvif"] == pytest.approx(columns[term], rel=1e-6)

    def test_multi_column_terms(self, fitted_batch):
        model = fitted_batch.models["mixed_spline"]
        terms = term_gvif(model.design, model.term_slices).set_index("term")

        assert terms.loc["bs(player_height, df=3)", "df"] == 3
        assert "Intercept" not in terms.index

    def test_collinear_predictors_flagged(self, derived_table):
        table = derived_table.copy()
        rng = np.random.default_rng(0)
        table["player_weight"] = 3.0 * table["player_height"] + rng.normal(0, 0.05, len(table))
        model = fit(table, random_intercept=False, name="collinear")

        report = multicollinearity(model, threshold=5.0)

        assert "player_height" in report.flagged
        assert "player_weight" in report.flagged
        assert report.term_gvif["flagged"].any()

    def test_threshold_controls_flags(self, fitted_batch):
        report = multicollinearity(fitted_batch.models["mixed_season_continuous"], threshold=1e12)
        assert report.flagged == []
        assert not report.term_gvif["flagged"].any()

    def test_terms_not_removed(self, fitted_batch):
        model = fitted_batch.models["mixed_season_continuous"]
        before = list(model.design.columns)
        multicollinearity(model, threshold=1.0)
        assert list(model.design.columns) == before
