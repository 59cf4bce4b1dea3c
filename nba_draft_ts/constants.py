"""
NBA Draft-Round Constants

Column names and categorical levels shared by the loader, the derivation
engine and the models. If it names a column or a category level, it should
reference these constants.
"""

from enum import Enum


class DraftRoundCategory(str, Enum):
    """Draft round after combining raw round codes."""
    FIRST = "1"
    SECOND = "2"
    UNDRAFTED = "Undrafted"


class DraftRoundBinary(str, Enum):
    """Two-level collapse: first round vs everybody else."""
    FIRST = "1"
    SECOND_OR_UNDRAFTED = "2_or_Undrafted"


class CareerStage(str, Enum):
    ROOKIE = "Rookie"
    MID_CAREER = "Mid-Career"
    VETERAN = "Veteran"


DRAFT_ROUND_LEVELS = [c.value for c in DraftRoundCategory]
DRAFT_ROUND_BINARY_LEVELS = [c.value for c in DraftRoundBinary]
CAREER_STAGE_LEVELS = [c.value for c in CareerStage]

# Display labels used by the descriptive summary
DRAFT_ROUND_LABELS = {
    DraftRoundCategory.FIRST.value: "1st Round",
    DraftRoundCategory.SECOND.value: "2nd Round",
    DraftRoundCategory.UNDRAFTED.value: "Undrafted",
}
OVERALL_LABEL = "Overall"

# Raw columns every input file must provide
REQUIRED_COLUMNS = [
    "season",
    "draft_round",
    "gp",
    "ts_pct",
    "player_height",
    "player_weight",
    "age",
    "player_name",
]

NUMERIC_COLUMNS = ["gp", "ts_pct", "player_height", "player_weight", "age"]

# Leftover index column written by pandas/R exports
INDEX_COLUMN_NAMES = ["Unnamed: 0", ""]

# Grouping key for the random intercept
GROUP_COLUMN = "player_name"

RESPONSE_COLUMN = "ts_pct"
LOGIT_RESPONSE_COLUMN = "ts_pct_logit"

SUMMARY_NUMERIC_VARIABLES = ["ts_pct", "player_height", "player_weight", "age", "gp_pct"]
SUMMARY_CATEGORICAL_VARIABLES = ["career_stage"]
