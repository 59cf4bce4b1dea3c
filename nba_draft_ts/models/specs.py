"""
Model Variants - Single Source of Truth

Every variant the analysis fits is declared here. Fitting code never builds
ad hoc variants; add a ModelSpec to DEFAULT_MODEL_SPECS instead.

Sequence (mirrors how the functional form was chosen):
    1. OLS baseline (no random intercept)
    2. Mixed model, season as a category
    3. Mixed model, season as a continuous year
    4. Mixed model, career stage instead of raw age
    5. Mixed model on the logit scale
    6. Mixed model, quadratic height/weight
    7. Mixed model, spline height/weight
"""

from typing import Dict, List

from nba_draft_ts.schemas import ModelSpec


DEFAULT_MODEL_SPECS: List[ModelSpec] = [
    ModelSpec(
        name="ols_baseline",
        season_term="season_continuous",
        random_intercept=False,
        description="Pooled OLS, no player effect",
    ),
    ModelSpec(
        name="mixed_season_categorical",
        season_term="season",
        description="Random intercept per player, season as a factor",
    ),
    ModelSpec(
        name="mixed_season_continuous",
        season_term="season_continuous",
        description="Random intercept per player, linear season trend",
    ),
    ModelSpec(
        name="mixed_career_stage",
        season_term="season_continuous",
        age_term="career_stage",
        description="Career stage buckets instead of age",
    ),
    ModelSpec(
        name="mixed_logit",
        season_term="season_continuous",
        response="ts_pct_logit",
        description="Logit-transformed TS%",
    ),
    ModelSpec(
        name="mixed_polynomial",
        season_term="season_continuous",
        shape_term="polynomial",
        description="Quadratic height and weight",
    ),
    ModelSpec(
        name="mixed_spline",
        season_term="season_continuous",
        shape_term="spline",
        description="Cubic B-spline (3 df) height and weight",
    ),
]

SPECS_BY_NAME: Dict[str, ModelSpec] = {s.name: s for s in DEFAULT_MODEL_SPECS}


def get_spec(name: str) -> ModelSpec:
    """Look up a default spec by name."""
    if name not in SPECS_BY_NAME:
        raise ValueError(f"Unknown model spec: {name}. Valid: {list(SPECS_BY_NAME)}")
    return SPECS_BY_NAME[name]
