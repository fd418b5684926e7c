"""
Folio Analytics Configuration

Calculation constants, scheduling and storage settings loaded from
environment variables (prefix ``FOLIO_``), an optional ``.env`` file and an
optional YAML config file.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ErrorCodes, FolioError

logger = logging.getLogger(__name__)


class FolioSettings(BaseSettings):
    """
    Analytics engine settings.

    The beta and market-return values are placeholders used by the
    cross-sectional risk metrics; a real beta needs a benchmark series.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FOLIO_",
        case_sensitive=False,
        extra="ignore",
    )

    # Performance calculator
    RISK_FREE_RATE: float = Field(
        default=0.02,
        ge=0.0,
        le=1.0,
        description="Annual risk-free rate used by Sharpe and Sortino.",
    )
    TRADING_DAYS_PER_YEAR: int = Field(
        default=252,
        ge=1,
        le=366,
        description="Annualization factor for daily return volatility.",
    )
    DAYS_PER_YEAR: float = Field(
        default=365.25,
        gt=0,
        description="Calendar days per year used to compound annualized return.",
    )

    # Cross-sectional risk
    VAR_Z_SCORE: float = Field(
        default=1.65,
        gt=0,
        description="One-tailed normal z-score for value at risk (95%).",
    )
    DEFAULT_BETA: float = Field(
        default=1.0,
        description="Placeholder portfolio and sector beta.",
    )
    ASSUMED_MARKET_RETURN: float = Field(
        default=10.0,
        description="Assumed market return in percent for the alpha placeholder.",
    )

    # Snapshot scheduling
    SNAPSHOT_DEBOUNCE_SECONDS: float = Field(
        default=5.0,
        ge=0.0,
        le=3600.0,
        description="Delay after a position change before auto-capturing a snapshot.",
    )
    DAILY_CHECK_HOUR: int = Field(default=0, ge=0, le=23)
    DAILY_CHECK_MINUTE: int = Field(default=1, ge=0, le=59)

    # Storage
    HISTORY_STORAGE_KEY: str = Field(
        default="portfolioHistory",
        min_length=1,
        description="Key under which the snapshot sequence is saved.",
    )
    STORAGE_DIR: Path = Field(
        default=Path.home() / ".folio",
        description="Directory used by the file storage backend.",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


def _read_yaml(config_path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(config_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise FolioError(
            ErrorCodes.SYSTEM_CONFIG_ERROR,
            detail=f"Cannot read config file {path}",
            original_error=e,
        ) from e

    if not isinstance(data, dict):
        raise FolioError(
            ErrorCodes.SYSTEM_CONFIG_ERROR,
            detail=f"Config file {path} must contain a mapping",
        )
    # YAML keys may be written in lower case
    return {str(k).upper(): v for k, v in data.items()}


def load_settings(config_path: Optional[Union[str, Path]] = None) -> FolioSettings:
    """
    Build settings from the environment, overlaid with a YAML config file.

    Args:
        config_path: Optional YAML file whose keys override environment values

    Returns:
        FolioSettings instance
    """
    if config_path is None:
        return get_settings()

    overrides = _read_yaml(config_path)
    logger.info("Loaded Folio config from %s", config_path)
    return FolioSettings(**overrides)


@lru_cache()
def get_settings() -> FolioSettings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return FolioSettings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing or when environment variables change.
    """
    get_settings.cache_clear()
