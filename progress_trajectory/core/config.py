"""
Settings and environment management module for the progress trajectory pipeline.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults matching the portfolio monitoring conventions
- Singleton pattern via @lru_cache for efficient access
- Logging bootstrap shared by scripts and notebooks

Environment Variables:
- HIERARCHY_DELIMITER: Separator between parent and child contract ids (default: "/")
- SMOOTHING_POINTS: Dense resample size for each smoothed curve (default: 100)
- THICKNESS_MIN / THICKNESS_MAX: Recency weight range for smoothed curves
- DECIMAL_SEPARATOR: Decimal separator used in display labels (default: ",")
- ON_TRACK_TOLERANCE: Percentage-point band around the ideal diagonal
- STALLED_COMPLETION_THRESHOLD: Completion % at or below which a started contract is stalled
- LOG_LEVEL: Root logging level (default: INFO)

Usage:
    from progress_trajectory.core.config import get_settings

    settings = get_settings()
    delimiter = settings.hierarchy_delimiter
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables.

    Attributes:
        hierarchy_delimiter: Separator between a parent contract id and its child suffix.
        smoothing_points: Number of points in each dense smoothed curve.
        thickness_min: Thinnest recency weight (oldest observation).
        thickness_max: Thickest recency weight (most recent observation).
        decimal_separator: Decimal separator for angle/prediction labels.
        on_track_tolerance: Half-width, in percentage points, of the on-track band.
        stalled_completion_threshold: Completion % at or below which a started
            contract is considered stalled.
        log_level: Root logging level used by configure_logging.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Contract hierarchy
    # =========================================================================

    # "PROJ_01/A" aggregates into "PROJ_01"
    hierarchy_delimiter: str = Field(default='/', min_length=1)

    # =========================================================================
    # Smoothing
    # =========================================================================

    smoothing_points: int = Field(default=100, ge=2)
    thickness_min: float = 0.2
    thickness_max: float = 1.2

    # =========================================================================
    # Presentation defaults
    # =========================================================================

    decimal_separator: str = ','
    on_track_tolerance: float = Field(default=5.0, ge=0.0)
    stalled_completion_threshold: float = Field(default=1.0, ge=0.0)

    # =========================================================================
    # Logging
    # =========================================================================

    log_level: str = 'INFO'


@lru_cache()
def get_settings() -> Settings:
    """
    Get the pipeline settings singleton.

    Returns:
        Settings: The cached settings instance.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value
            (e.g. SMOOTHING_POINTS=1).

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for scripts that drive the pipeline.

    Args:
        level: Logging level name. Defaults to Settings.log_level.
    """
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
    )
