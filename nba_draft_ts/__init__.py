"""NBA Draft-Round True Shooting Analysis.

Longitudinal mixed-effects analysis of NBA True Shooting Percentage by draft
round, 1996-97 through 2022-23.
"""

__version__ = "0.1.0"

from nba_draft_ts.data.loader import load_player_seasons
from nba_draft_ts.features.derivation import DerivationConfig, derive
from nba_draft_ts.models.mixed_effects import fit, fit_all

__all__ = ["load_player_seasons", "DerivationConfig", "derive", "fit", "fit_all"]
