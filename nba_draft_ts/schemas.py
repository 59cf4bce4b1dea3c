"""Pydantic schemas for strict data contracts across the pipeline."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


SeasonTerm = Literal["season", "season_continuous"]
AgeTerm = Literal["age", "career_stage"]
ShapeTerm = Literal["linear", "polynomial", "spline"]
ResponseColumn = Literal["ts_pct", "ts_pct_logit"]


class PlayerSeasonRecord(BaseModel):
    """One player in one season, as read from the raw table."""

    player_name: str
    season: str
    draft_round: Optional[str] = None
    gp: Optional[int] = None
    ts_pct: Optional[float] = None
    player_height: Optional[float] = None
    player_weight: Optional[float] = None
    age: Optional[float] = None

    # Usage/points and friends ride along untouched
    model_config = ConfigDict(extra="allow", frozen=True)

    @field_validator("draft_round", "season", mode="before")
    @classmethod
    def coerce_token(cls, v: Union[str, int, float, None]) -> Optional[str]:
        """Raw tokens may come through as numbers ("1" vs 1)."""
        if v is None:
            return v
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v).strip()


class ModelSpec(BaseModel):
    """Declarative description of one model variant.

    The fixed-effect structure is always
    ``response ~ season_term * draft_round_combined + height + weight + age_term``;
    each variant picks the season encoding, the age encoding, the functional form
    used for height and weight, the response scale and whether a per-player
    random intercept is included.
    """

    name: str
    season_term: SeasonTerm = "season_continuous"
    age_term: AgeTerm = "age"
    shape_term: ShapeTerm = "linear"
    response: ResponseColumn = "ts_pct"
    random_intercept: bool = True
    description: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Model spec name must not be empty")
        return v.strip()


class CoefficientRecord(BaseModel):
    """Fixed-effect estimate as handed to report renderers."""

    model: str
    term: str
    estimate: float
    std_error: Optional[float] = None
    statistic: Optional[float] = None
    p_value: Optional[float] = Field(default=None, ge=0.0, le=1.0)
