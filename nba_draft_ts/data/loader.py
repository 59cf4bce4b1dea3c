"""
Player-Season Table Loader

Single entry point for reading the raw per-player-per-season table.

Usage:
    from nba_draft_ts.data.loader import load_player_seasons, DataSourceError

    df = load_player_seasons("data/raw/all_seasons.csv")
"""

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd

from nba_draft_ts.constants import INDEX_COLUMN_NAMES, NUMERIC_COLUMNS, REQUIRED_COLUMNS
from nba_draft_ts.schemas import PlayerSeasonRecord

logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Raised when the input table cannot be loaded or lacks required columns."""
    pass


def validate_columns(df: pd.DataFrame, required: List[str] = REQUIRED_COLUMNS) -> None:
    """
    Check that every required column is present.

    Raises:
        DataSourceError: listing the missing columns
    """
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataSourceError(
            f"Input is missing required columns: {missing}. "
            f"Found: {list(df.columns)}"
        )


def _drop_index_column(df: pd.DataFrame) -> pd.DataFrame:
    """Drop a leftover row-index column written by a previous export."""
    leftovers = [c for c in df.columns if c in INDEX_COLUMN_NAMES or str(c).startswith("Unnamed: ")]
    if leftovers:
        logger.debug(f"Dropping leftover index columns: {leftovers}")
        df = df.drop(columns=leftovers)
    return df


def load_player_seasons(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load the raw player-season table.

    Season labels and draft rounds are kept as string tokens; numeric
    columns are coerced (bad strings -> NaN). Nothing is derived here.

    Args:
        path: CSV file path

    Returns:
        Raw DataFrame, one row per player per season

    Raises:
        DataSourceError: If the file is missing, unreadable, or lacks
            required columns
    """
    path = Path(path)
    if not path.exists():
        raise DataSourceError(f"Input file not found: {path}")

    try:
        df = pd.read_csv(path, dtype={"season": str, "draft_round": str})
    except pd.errors.EmptyDataError as e:
        raise DataSourceError(f"Input file is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataSourceError(f"Could not parse {path}: {e}") from e
    except OSError as e:
        raise DataSourceError(f"Could not read {path}: {e}") from e

    df = _drop_index_column(df)
    validate_columns(df)

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    df["season"] = df["season"].str.strip()
    df["draft_round"] = df["draft_round"].str.strip()

    logger.info(f"Loaded {len(df):,} player-season rows ({df.shape[1]} columns) from {path}")
    return df


def records_from_frame(df: pd.DataFrame) -> List[PlayerSeasonRecord]:
    """Convert a raw table into typed PlayerSeasonRecord rows."""
    validate_columns(df)
    clean = df.astype(object).where(df.notna(), None)
    records = []
    for row in clean.to_dict(orient="records"):
        if row.get("gp") is not None:
            row["gp"] = int(row["gp"])
        records.append(PlayerSeasonRecord(**{str(k): v for k, v in row.items()}))
    return records
