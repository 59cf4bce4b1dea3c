"""
End-to-end analysis pipeline.

    load -> derive -> summarize
                   -> fit all specs -> compare -> diagnostics

`run_pipeline` returns every numeric result in memory; `write_artifacts`
renders them to CSV tables and PNG figures. Fitted model objects are never
persisted.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import matplotlib.pyplot as plt
import pandas as pd

from nba_draft_ts.analysis.summary import DescriptiveSummary, summarize
from nba_draft_ts.config import Settings, settings
from nba_draft_ts.data.loader import load_player_seasons
from nba_draft_ts.features.derivation import DerivationConfig, DerivationResult, derive
from nba_draft_ts.models.comparison import ComparisonResult, compare_models
from nba_draft_ts.models.mixed_effects import FitBatch, fit_all
from nba_draft_ts.models.specs import DEFAULT_MODEL_SPECS
from nba_draft_ts.reporting import plots
from nba_draft_ts.schemas import ModelSpec
from nba_draft_ts.validation.diagnostics import (
    MulticollinearityReport,
    RandomEffectDiagnostics,
    ResidualDiagnostics,
    multicollinearity,
    random_effect_diagnostics,
    residual_diagnostics,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    derivation: DerivationResult
    summary: DescriptiveSummary
    fits: FitBatch
    comparison: Optional[ComparisonResult] = None
    residuals: Dict[str, ResidualDiagnostics] = field(default_factory=dict)
    random_effects: Dict[str, RandomEffectDiagnostics] = field(default_factory=dict)
    collinearity: Dict[str, MulticollinearityReport] = field(default_factory=dict)

    @property
    def table(self) -> pd.DataFrame:
        return self.derivation.table


def run_pipeline(
    source: Union[str, Path, pd.DataFrame],
    specs: Sequence[ModelSpec] = DEFAULT_MODEL_SPECS,
    config: Optional[DerivationConfig] = None,
    cfg: Settings = settings,
) -> PipelineResult:
    """
    Run the full analysis.

    Args:
        source: CSV path or an already-loaded raw table
        specs: Model variants to fit
        config: Derivation lookups and thresholds (defaults from cfg)
        cfg: Settings (optimizer, VIF threshold, bins)

    Returns:
        PipelineResult
    """
    raw = source if isinstance(source, pd.DataFrame) else load_player_seasons(source)
    derivation = derive(raw, config=config or DerivationConfig.from_settings(cfg))
    for step, count in derivation.removed.items():
        logger.info(f"  {step}: {count:,} rows removed")

    summary = summarize(derivation.table)
    fits = fit_all(derivation.table, specs, cfg=cfg)

    comparison = None
    if len(fits.models) >= 2:
        comparison = compare_models(fits.models)
    else:
        logger.warning(f"Only {len(fits.models)} model(s) fit; skipping comparison")

    result = PipelineResult(derivation=derivation, summary=summary, fits=fits, comparison=comparison)
    for name, model in fits.models.items():
        result.residuals[name] = residual_diagnostics(model, bins=cfg.HISTOGRAM_BINS)
        if model.is_mixed:
            result.random_effects[name] = random_effect_diagnostics(model, bins=cfg.HISTOGRAM_BINS)
        result.collinearity[name] = multicollinearity(model, threshold=cfg.VIF_THRESHOLD)
    return result


def write_artifacts(
    result: PipelineResult,
    output_dir: Union[str, Path],
    include_plots: bool = True,
) -> List[Path]:
    """Write tables (CSV) and figures (PNG) for a pipeline run."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []

    def _csv(frame: pd.DataFrame, name: str, index: bool = False) -> None:
        path = output_dir / name
        frame.to_csv(path, index=index)
        written.append(path)

    _csv(result.table, "derived_table.csv")
    _csv(pd.DataFrame([result.derivation.removed]), "filter_counts.csv")
    _csv(result.summary.table, "descriptive_summary.csv", index=True)

    coefficient_frames = []
    for name, model in result.fits.models.items():
        frame = model.coefficients.copy()
        frame.insert(0, "model", name)
        coefficient_frames.append(frame)
    if coefficient_frames:
        _csv(pd.concat(coefficient_frames, ignore_index=True), "coefficients.csv")

    if result.fits.failures:
        failures = pd.DataFrame(
            [{"model": k, "error": v} for k, v in result.fits.failures.items()]
        )
        _csv(failures, "fit_failures.csv")

    if result.comparison is not None:
        _csv(result.comparison.aic_table, "aic_table.csv")
        for i, (family, table) in enumerate(result.comparison.anova_tables.items(), start=1):
            table = table.copy()
            table.insert(0, "family", family)
            _csv(table, f"anova_{i}.csv")

    vif_frames = []
    for name, report in result.collinearity.items():
        frame = report.term_gvif.copy()
        frame.insert(0, "model", name)
        vif_frames.append(frame)
    if vif_frames:
        _csv(pd.concat(vif_frames, ignore_index=True), "vif.csv")

    if include_plots:
        figures = {
            "ts_by_season.png": lambda p: plots.plot_ts_by_season(result.table, p),
            "ts_boxplot.png": lambda p: plots.plot_ts_boxplot(result.table, p),
            "height_vs_ts.png": lambda p: plots.plot_height_scatter(result.table, p),
            "histograms.png": lambda p: plots.plot_variable_histograms(result.table, path=p),
        }
        for name, diag in result.residuals.items():
            figures[f"residuals_{name}.png"] = lambda p, d=diag: plots.plot_residuals(d, p)
        for name, diag in result.random_effects.items():
            figures[f"random_effects_{name}.png"] = lambda p, d=diag: plots.plot_random_effects(d, p)

        for filename, draw in figures.items():
            path = output_dir / filename
            fig = draw(path)
            plt.close(fig)
            written.append(path)

    logger.info(f"Wrote {len(written)} artifacts to {output_dir}")
    return written
