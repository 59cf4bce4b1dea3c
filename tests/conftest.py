"""
Shared fixtures: a synthetic player-season panel with a known structure.

60 players over six seasons, 20 per draft round, with a per-player shooting
level (random intercept), a small upward season trend and a round effect.
Every season x draft round cell is populated, so all model variants are
identifiable.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from nba_draft_ts.features.derivation import derive
from nba_draft_ts.models.mixed_effects import fit_all
from nba_draft_ts.models.specs import DEFAULT_MODEL_SPECS

SEASONS = ["2014-15", "2015-16", "2016-17", "2017-18", "2018-19", "2019-20"]
ROUND_EFFECTS = {"1": 0.01, "2": 0.0, "Undrafted": -0.01}
N_PLAYERS = 60


def make_player_seasons(n_players: int = N_PLAYERS, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rounds = ["1", "2", "Undrafted"]
    rows = []
    for i in range(n_players):
        draft = rounds[i % 3]
        # Half the undrafted players carry the raw "0" code
        raw_round = "0" if draft == "Undrafted" and i % 2 == 0 else draft
        player_level = rng.normal(0, 0.03)
        height = rng.normal(200, 8)
        weight = 0.5 * height + rng.normal(0, 8)
        start_age = rng.uniform(19, 31)

        for j, season in enumerate(SEASONS):
            ts = (
                0.54
                + player_level
                + ROUND_EFFECTS[draft]
                + 0.002 * j
                + 0.0005 * (height - 200)
                + rng.normal(0, 0.02)
            )
            rows.append({
                "player_name": f"Player {i:03d}",
                "season": season,
                "draft_round": raw_round,
                "gp": int(rng.integers(45, 83)),
                "ts_pct": float(np.clip(ts, 0.35, 0.70)),
                "player_height": round(height, 2),
                "player_weight": round(weight, 2),
                "age": round(start_age + j, 1),
                "pts": round(float(rng.uniform(2, 25)), 1),
            })
    return pd.DataFrame(rows)


@pytest.fixture
def player_seasons():
    """Fresh raw panel (safe to mutate)."""
    return make_player_seasons()


@pytest.fixture(scope="session")
def derived_table():
    """Derived analytic table for the synthetic panel (do not mutate)."""
    return derive(make_player_seasons()).table


@pytest.fixture(scope="session")
def fitted_batch(derived_table):
    """Every default model variant fit once per test session."""
    return fit_all(derived_table, DEFAULT_MODEL_SPECS)
