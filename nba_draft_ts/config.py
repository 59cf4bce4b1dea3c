"""Configuration and constants for the NBA draft-round TS% pipeline."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for the analysis pipeline."""

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = PROJECT_ROOT / "data"
    RAW_DATA_DIR: Path = DATA_DIR / "raw"
    REPORTS_DIR: Path = PROJECT_ROOT / "reports"
    DEFAULT_INPUT_FILE: Path = RAW_DATA_DIR / "all_seasons.csv"

    # Seasons covered by the study
    FIRST_SEASON: int = 1996
    LAST_SEASON: int = 2022

    # Derivation
    DEFAULT_SEASON_GAMES: int = 82
    PARTICIPATION_THRESHOLD: float = 0.5

    # Mixed model fitting
    MIXEDLM_METHOD: str = "lbfgs"
    MIXEDLM_MAXITER: int = 500
    USE_REML: bool = False  # ML fits keep AIC and LR tests defined

    # Diagnostics
    VIF_THRESHOLD: float = 5.0
    HISTOGRAM_BINS: int = 30

    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic config."""

        env_file = ".env"
        env_prefix = "NBA_TS_"
        case_sensitive = False

    def ensure_dirs(self) -> None:
        """Ensure all required directories exist."""
        for dir_path in [self.DATA_DIR, self.RAW_DATA_DIR, self.REPORTS_DIR]:
            dir_path.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
