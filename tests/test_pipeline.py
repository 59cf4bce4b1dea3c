"""
End-to-end tests: pipeline, artifacts and CLI.
"""

import sys
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent))

from nba_draft_ts.cli import app
from nba_draft_ts.config import Settings
from nba_draft_ts.features.derivation import DerivationConfig
from nba_draft_ts.models.specs import DEFAULT_MODEL_SPECS, get_spec
from nba_draft_ts.pipeline import run_pipeline, write_artifacts

SMALL_SPECS = [
    get_spec("ols_baseline"),
    get_spec("mixed_season_continuous"),
    get_spec("mixed_polynomial"),
]


@pytest.fixture
def dirty_panel(player_seasons):
    """Synthetic panel plus one row for each exclusion rule."""
    extra = player_seasons.head(3).copy()
    extra["gp"] = [10, 60, 60]
    extra["draft_round"] = ["1", "4", "1"]
    extra["season"] = ["2016-17", "2016-17", "20xx-yy"]
    return pd.concat([player_seasons, extra], ignore_index=True)


@pytest.fixture
def csv_path(tmp_path, player_seasons):
    path = tmp_path / "all_seasons.csv"
    player_seasons.to_csv(path)
    return path


class TestRunPipeline:

    def test_full_run(self, dirty_panel, player_seasons):
        result = run_pipeline(dirty_panel, specs=SMALL_SPECS)

        assert result.derivation.removed["participation_strict"] == 1
        assert result.derivation.removed["invalid_draft_round"] == 1
        assert result.derivation.removed["malformed_season"] == 1
        assert len(result.table) == len(player_seasons)

        assert set(result.fits.models) == {s.name for s in SMALL_SPECS}
        assert result.comparison is not None
        assert set(result.residuals) == set(result.fits.models)
        assert set(result.random_effects) == {"mixed_season_continuous", "mixed_polynomial"}
        assert set(result.collinearity) == set(result.fits.models)

    def test_settings_drive_derivation(self, player_seasons):
        cfg = Settings(PARTICIPATION_THRESHOLD=0.8)
        result = run_pipeline(player_seasons, specs=[get_spec("ols_baseline")], cfg=cfg)

        assert (result.table["gp_pct"] > 0.8).all()
        assert len(result.table) < len(player_seasons)

    def test_explicit_config_wins_over_settings(self, player_seasons):
        cfg = Settings(PARTICIPATION_THRESHOLD=0.8)
        config = DerivationConfig(participation_threshold=0.5)
        result = run_pipeline(player_seasons, specs=[get_spec("ols_baseline")], config=config, cfg=cfg)

        assert len(result.table) == len(player_seasons)

    def test_single_model_skips_comparison(self, player_seasons):
        result = run_pipeline(player_seasons, specs=[get_spec("ols_baseline")])
        assert result.comparison is None

    def test_from_csv(self, csv_path):
        result = run_pipeline(csv_path, specs=[get_spec("ols_baseline")])
        assert len(result.fits.models) == 1


class TestWriteArtifacts:

    def test_tables_and_figures(self, player_seasons, tmp_path):
        result = run_pipeline(player_seasons, specs=SMALL_SPECS)
        written = write_artifacts(result, tmp_path / "out", include_plots=True)
        names = {p.name for p in written}

        for name in [
            "derived_table.csv",
            "filter_counts.csv",
            "descriptive_summary.csv",
            "coefficients.csv",
            "aic_table.csv",
            "anova_1.csv",
            "vif.csv",
            "ts_by_season.png",
            "ts_boxplot.png",
            "height_vs_ts.png",
            "histograms.png",
            "residuals_ols_baseline.png",
            "random_effects_mixed_polynomial.png",
        ]:
            assert name in names
            assert (tmp_path / "out" / name).exists()

        assert "random_effects_ols_baseline.png" not in names
        assert "fit_failures.csv" not in names

        coefficients = pd.read_csv(tmp_path / "out" / "coefficients.csv")
        assert set(coefficients["model"]) == {s.name for s in SMALL_SPECS}

    def test_without_plots(self, player_seasons, tmp_path):
        result = run_pipeline(player_seasons, specs=[get_spec("ols_baseline")])
        written = write_artifacts(result, tmp_path, include_plots=False)
        assert not any(p.suffix == ".png" for p in written)


class TestCli:
    """Typer commands."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_specs_lists_defaults(self, runner):
        result = runner.invoke(app, ["specs"])

        assert result.exit_code == 0
        for spec in DEFAULT_MODEL_SPECS:
            assert spec.name in result.output

    def test_summarize(self, runner, csv_path):
        result = runner.invoke(app, ["summarize", str(csv_path)])

        assert result.exit_code == 0
        assert "1st Round" in result.output
        assert "Overall" in result.output

    def test_summarize_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["summarize", str(tmp_path / "missing.csv")])
        assert result.exit_code == 1

    def test_summarize_unreadable_path(self, runner, tmp_path):
        result = runner.invoke(app, ["summarize", str(tmp_path)])
        assert result.exit_code == 1

    def test_fit_selected_specs(self, runner, csv_path):
        result = runner.invoke(
            app, ["fit", str(csv_path), "-s", "ols_baseline", "-s", "mixed_season_continuous"]
        )

        assert result.exit_code == 0
        assert "ols_baseline" in result.output
        assert "mixed_season_continuous" in result.output

    def test_fit_unknown_spec(self, runner, csv_path):
        result = runner.invoke(app, ["fit", str(csv_path), "-s", "nope"])
        assert result.exit_code == 1
