"""
Filter & Derivation Engine

THIS IS THE SINGLE PLACE WHERE ANALYTIC COLUMNS ARE DERIVED.

Turns the raw player-season table into the read-only analytic table used by
the summary, the models and the diagnostics. Steps run in a fixed order
because later columns depend on earlier ones:

    1. gp_season                 season schedule length (lockout lookup)
    2. draft_round_combined      {"1", "2", "Undrafted"}; other codes dropped
    3. gp_pct                    gp / gp_season
    4. participation filter      gp_pct > threshold
    5. season_continuous         first four characters of the season label
    6. draft_round_combined_new  {"1", "2_or_Undrafted"}
    7. participation filter      gp_pct >= threshold (second pass)
    8. career_stage              Rookie / Mid-Career / Veteran from age

Step 7 can never remove a row that survived step 4. It is kept so row
counts line up with the historical workflow.

Usage:
    from nba_draft_ts.features.derivation import derive

    result = derive(raw_df)
    table = result.table
    print(result.removed)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

import numpy as np
import pandas as pd

from nba_draft_ts.config import Settings, settings
from nba_draft_ts.constants import (
    CAREER_STAGE_LEVELS,
    DRAFT_ROUND_BINARY_LEVELS,
    DRAFT_ROUND_LEVELS,
    GROUP_COLUMN,
    DraftRoundBinary,
    DraftRoundCategory,
)

logger = logging.getLogger(__name__)


class MalformedSeasonError(ValueError):
    """Raised when a season label does not start with a four-digit year."""
    pass


class InvalidCategoryError(ValueError):
    """Raised when a raw draft round is outside {0, 1, 2, "Undrafted"}."""
    pass


# Lockout-shortened seasons; everything else is a full schedule
LOCKOUT_SEASON_LENGTHS: Dict[str, int] = {
    "1998-99": 50,
    "2011-12": 66,
}


@dataclass(frozen=True)
class DerivationConfig:
    """
    Lookup tables and thresholds used by the derivation engine.

    Inject a custom instance to analyse other eras or alternate bucketings.
    """
    season_lengths: Mapping[str, int] = field(
        default_factory=lambda: dict(LOCKOUT_SEASON_LENGTHS)
    )
    default_season_length: int = 82
    career_stage_bounds: Tuple[float, float] = (25, 30)
    participation_threshold: float = 0.5
    # Study window (start years); seasons outside it are kept but logged
    season_range: Tuple[int, int] = (1996, 2022)

    def __post_init__(self):
        lengths = list(self.season_lengths.values()) + [self.default_season_length]
        if any(n <= 0 for n in lengths):
            raise ValueError(f"Season lengths must be positive, got {lengths}")
        lower, upper = self.career_stage_bounds
        if not lower < upper:
            raise ValueError(
                f"Career stage bounds must be increasing, got {self.career_stage_bounds}"
            )
        first, last = self.season_range
        if first > last:
            raise ValueError(f"Season range must be ordered, got {self.season_range}")

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "DerivationConfig":
        return cls(
            default_season_length=cfg.DEFAULT_SEASON_GAMES,
            participation_threshold=cfg.PARTICIPATION_THRESHOLD,
            season_range=(cfg.FIRST_SEASON, cfg.LAST_SEASON),
        )

    def out_of_range(self, start_years: pd.Series) -> pd.Series:
        """Mask of season start years outside the study window."""
        first, last = self.season_range
        return (start_years < first) | (start_years > last)

    @property
    def career_stage_bins(self) -> list:
        lower, upper = self.career_stage_bounds
        return [-np.inf, lower, upper, np.inf]


@dataclass
class DerivationResult:
    """Derived table plus how many rows each step removed."""
    table: pd.DataFrame
    removed: Dict[str, int]
    rows_in: int

    @property
    def rows_out(self) -> int:
        return len(self.table)

    @property
    def total_removed(self) -> int:
        return sum(self.removed.values())


# =============================================================================
# ROW-LEVEL RULES
# =============================================================================

def season_length(label: Any, config: Optional[DerivationConfig] = None) -> int:
    """Games in the regular-season schedule for a season label."""
    config = config or DerivationConfig()
    return int(config.season_lengths.get(label, config.default_season_length))


def map_draft_round(value: Any) -> str:
    """
    Combine a raw draft round code into a DraftRoundCategory value.

    Examples:
        >>> map_draft_round(0)
        'Undrafted'
        >>> map_draft_round("2")
        '2'

    Raises:
        InvalidCategoryError: For anything outside {0, 1, 2, "Undrafted"}
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        raise InvalidCategoryError("Draft round is missing")

    token = str(value).strip()
    if token.endswith(".0"):
        token = token[:-2]

    if token == "0" or token.lower() == DraftRoundCategory.UNDRAFTED.value.lower():
        return DraftRoundCategory.UNDRAFTED.value
    if token in (DraftRoundCategory.FIRST.value, DraftRoundCategory.SECOND.value):
        return token
    raise InvalidCategoryError(f"Unrecognised draft round: {value!r}")


def collapse_draft_round(category: str) -> str:
    """First round vs. second round or undrafted."""
    if category == DraftRoundCategory.FIRST.value:
        return DraftRoundBinary.FIRST.value
    if category in (DraftRoundCategory.SECOND.value, DraftRoundCategory.UNDRAFTED.value):
        return DraftRoundBinary.SECOND_OR_UNDRAFTED.value
    raise InvalidCategoryError(f"Not a combined draft round: {category!r}")


def parse_season_start(label: Any) -> int:
    """
    Starting year of a season label.

    Examples:
        >>> parse_season_start("2011-12")
        2011

    Raises:
        MalformedSeasonError: If the first four characters are not a year
    """
    if not isinstance(label, str):
        raise MalformedSeasonError(f"Season label must be a string, got {label!r}")
    head = label.strip()[:4]
    if len(head) != 4 or not head.isdigit():
        raise MalformedSeasonError(f"Cannot parse season start year from {label!r}")
    return int(head)


def career_stage_for_age(age: float, config: Optional[DerivationConfig] = None) -> Optional[str]:
    """Bucket an age into a CareerStage value (right-closed intervals)."""
    if age is None or pd.isna(age):
        return None
    lower, upper = (config or DerivationConfig()).career_stage_bounds
    if age <= lower:
        return CAREER_STAGE_LEVELS[0]
    if age <= upper:
        return CAREER_STAGE_LEVELS[1]
    return CAREER_STAGE_LEVELS[2]


def _map_unique(
    values: pd.Series,
    func: Callable[[Any], Any],
    error_cls: Type[Exception],
    strict: bool,
) -> pd.Series:
    """Apply a row rule once per distinct value; failures map to NaN."""
    mapping = {}
    for value in values.dropna().unique():
        try:
            mapping[value] = func(value)
        except error_cls:
            if strict:
                raise
            mapping[value] = None
    if strict and values.isna().any():
        # Let the rule produce its own error for a missing value
        func(None)
    return values.map(mapping)


def _apply_filter(df: pd.DataFrame, keep: pd.Series, step: str, removed: Dict[str, int]) -> pd.DataFrame:
    dropped = int((~keep).sum())
    removed[step] = dropped
    if dropped:
        logger.info(f"[DERIVE] {step}: removed {dropped:,} rows ({len(df):,} -> {len(df) - dropped:,})")
    else:
        logger.debug(f"[DERIVE] {step}: removed 0 rows")
    return df.loc[keep].copy()


# =============================================================================
# TABLE-LEVEL ENGINE
# =============================================================================

def derive(
    table: pd.DataFrame,
    config: Optional[DerivationConfig] = None,
    strict: bool = False,
) -> DerivationResult:
    """
    Filter the raw table and attach every derived column.

    The input frame is not modified. Re-running on the output yields the
    same table.

    Args:
        table: Raw player-season table (see data.loader)
        config: Lookup tables and thresholds (defaults from settings)
        strict: Raise on the first bad draft round or season label instead
            of excluding the row

    Returns:
        DerivationResult with the analytic table and per-step removal counts
    """
    config = config or DerivationConfig.from_settings()
    threshold = config.participation_threshold
    removed: Dict[str, int] = {}
    rows_in = len(table)

    df = table.reset_index(drop=True)

    # 1. Schedule length
    df["gp_season"] = df["season"].map(lambda s: season_length(s, config)).astype(int)

    # 2. Draft round categories (invalid codes are an implicit filter)
    combined = _map_unique(df["draft_round"], map_draft_round, InvalidCategoryError, strict)
    df = _apply_filter(df, combined.notna(), "invalid_draft_round", removed)
    df["draft_round_combined"] = pd.Categorical(
        combined.loc[df.index], categories=DRAFT_ROUND_LEVELS
    )

    # 3. Participation ratio
    df["gp_pct"] = df["gp"] / df["gp_season"]

    # 4. Participation filter (strict)
    df = _apply_filter(df, df["gp_pct"] > threshold, "participation_strict", removed)

    # 5. Continuous season index
    start_years = _map_unique(df["season"], parse_season_start, MalformedSeasonError, strict)
    df = _apply_filter(df, start_years.notna(), "malformed_season", removed)
    df["season_continuous"] = start_years.loc[df.index].astype(int)
    outside = config.out_of_range(df["season_continuous"])
    if outside.any():
        first, last = config.season_range
        logger.warning(
            f"[DERIVE] {int(outside.sum()):,} rows have seasons outside {first}-{last}: "
            f"{sorted(df.loc[outside, 'season'].unique())[:5]}"
        )

    # 6. Binary draft round
    df["draft_round_combined_new"] = pd.Categorical(
        df["draft_round_combined"].astype(str).map(collapse_draft_round),
        categories=DRAFT_ROUND_BINARY_LEVELS,
    )

    # 7. Participation filter again (non-strict); see module docstring
    df = _apply_filter(df, df["gp_pct"] >= threshold, "participation_non_strict", removed)

    # 8. Career stage
    df["career_stage"] = pd.cut(
        df["age"],
        bins=config.career_stage_bins,
        labels=CAREER_STAGE_LEVELS,
        right=True,
    )

    # Player identity is the random-effect grouping key from here on
    df[GROUP_COLUMN] = df[GROUP_COLUMN].astype(str).astype("category")

    df = df.reset_index(drop=True)

    result = DerivationResult(table=df, removed=removed, rows_in=rows_in)
    logger.info(
        f"Derived analytic table: {result.rows_in:,} -> {result.rows_out:,} rows "
        f"({result.total_removed:,} removed)"
    )
    return result
