"""Command-line interface for the NBA draft-round TS% analysis."""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer

from nba_draft_ts.analysis.summary import summarize
from nba_draft_ts.config import settings
from nba_draft_ts.data.loader import DataSourceError, load_player_seasons
from nba_draft_ts.features.derivation import derive
from nba_draft_ts.models.comparison import aic_table
from nba_draft_ts.models.mixed_effects import fit_all
from nba_draft_ts.models.specs import DEFAULT_MODEL_SPECS, get_spec
from nba_draft_ts.pipeline import run_pipeline, write_artifacts

app = typer.Typer(help="NBA TS% by draft round: mixed-effects analysis (1996-97 to 2022-23)")

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

INPUT_HELP = "Player-season CSV (defaults to the configured input file)"


def _input_path(input_file: Optional[Path]) -> Path:
    return input_file or settings.DEFAULT_INPUT_FILE


@app.command(name="summarize")
def summarize_table(
    input_file: Optional[Path] = typer.Argument(None, help=INPUT_HELP),
) -> None:
    """Print the descriptive table by draft round.

    Examples:
        nba-draft-ts summarize data/raw/all_seasons.csv
    """
    try:
        raw = load_player_seasons(_input_path(input_file))
        result = derive(raw)
        summary = summarize(result.table)
        with pd.option_context("display.width", 160, "display.max_columns", 10):
            typer.echo(summary.table.to_string())
        typer.echo(f"\nRows: {result.rows_in:,} raw -> {result.rows_out:,} analysed")
    except (DataSourceError, KeyError, ValueError) as e:
        logger.error(f"Summary failed: {e}")
        raise typer.Exit(code=1)


@app.command()
def fit(
    input_file: Optional[Path] = typer.Argument(None, help=INPUT_HELP),
    spec: Optional[List[str]] = typer.Option(None, "--spec", "-s", help="Spec name (repeatable)"),
) -> None:
    """Fit model variants and print the AIC ranking.

    Examples:
        nba-draft-ts fit data/raw/all_seasons.csv
        nba-draft-ts fit data/raw/all_seasons.csv -s mixed_season_continuous -s mixed_spline
    """
    try:
        selected = [get_spec(name) for name in spec] if spec else DEFAULT_MODEL_SPECS
        raw = load_player_seasons(_input_path(input_file))
        table = derive(raw).table
        batch = fit_all(table, selected)

        if batch.models:
            typer.echo(aic_table(batch.models).to_string(index=False))
        for name, error in batch.failures.items():
            typer.echo(f"FAILED {name}: {error}")
        if not batch.models:
            raise typer.Exit(code=1)
    except (DataSourceError, KeyError, ValueError) as e:
        logger.error(f"Model fitting failed: {e}")
        raise typer.Exit(code=1)


@app.command()
def run(
    input_file: Optional[Path] = typer.Argument(None, help=INPUT_HELP),
    output_dir: Optional[Path] = typer.Option(None, help="Where to write tables and figures"),
    plots: bool = typer.Option(True, "--plots/--no-plots", help="Render PNG figures"),
) -> None:
    """Run the full pipeline and write tables and figures.

    Examples:
        nba-draft-ts run data/raw/all_seasons.csv --output-dir reports/ts_draft
    """
    try:
        settings.ensure_dirs()
        result = run_pipeline(_input_path(input_file))
        written = write_artifacts(result, output_dir or settings.REPORTS_DIR, include_plots=plots)

        if result.comparison is not None:
            typer.echo(result.comparison.aic_table.to_string(index=False))
            typer.echo(f"\nBest model by AIC: {result.comparison.best_model}")
        for name, error in result.fits.failures.items():
            typer.echo(f"FAILED {name}: {error}")
        typer.echo(f"Wrote {len(written)} files")
    except (DataSourceError, KeyError, ValueError) as e:
        logger.error(f"Pipeline failed: {e}")
        raise typer.Exit(code=1)


@app.command()
def specs() -> None:
    """List the default model variants."""
    for s in DEFAULT_MODEL_SPECS:
        structure = "mixed" if s.random_intercept else "ols"
        typer.echo(
            f"{s.name:<26} {structure:<5} response={s.response:<12} season={s.season_term:<17} "
            f"age={s.age_term:<12} shape={s.shape_term:<10} {s.description}"
        )


if __name__ == "__main__":
    app()
