"""
Garden Notifier Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from garden_notifier.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Data Paths:
    Notifier preferences are stored in {instance_root}/userdata/notifier/:
    - shop-notifs.v1.json: Popup preference flags per catalog item
    - weather-notifs.v1.json: Notify flag and last sighting per weather
    - shop-notifs-rules.v1.json: Audio rules per id
    - notifier-loop-defaults.v1.json: Stop/loop defaults per context

Environment Variables:
    GARDEN_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    GARDEN_DEBUG: Legacy debug flag (enables DEBUG level if set)
    GARDEN_LOG_JSON: Output logs as JSON
    GARDEN_INSTANCE_ROOT: Instance root override
    GARDEN_DATA_DIR: Notifier data directory override
    GARDEN_CATALOG_PATH: Static catalog YAML override
    GARDEN_MIN_LOOP_INTERVAL_MS: Floor applied to loop intervals
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path | None:
    """
    Find the project root by searching upward for pyproject.toml.

    Returns:
        Directory containing pyproject.toml, or None if not found
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break  # Reached filesystem root
        current = parent

    return None


def _find_project_env_file() -> Path | None:
    """Find .env in the project root, if any."""
    root = _find_project_root()
    if root is None:
        return None
    env_file = root / ".env"
    return env_file if env_file.exists() else None


def _find_instance_root() -> Path:
    """
    Find the instance root directory.

    Resolution order:
    1. GARDEN_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    import os

    override = os.environ.get("GARDEN_INSTANCE_ROOT")
    if override:
        return Path(override)

    return _find_project_root() or Path.cwd()


# Resolve paths at module load time
_ENV_FILE = _find_project_env_file()
_INSTANCE_ROOT = _find_instance_root()


class GardenSettings(BaseSettings):
    """
    Notifier configuration settings with validation.

    Environment variables are automatically loaded with the GARDEN_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="GARDEN_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for notifier components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default=_INSTANCE_ROOT,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    data_dir: Optional[Path] = Field(
        default=None,
        description="Override for the notifier preference directory",
    )

    catalog_path: Optional[Path] = Field(
        default=None,
        description="Override for the static catalog YAML file",
    )

    # =========================================================================
    # Audio Defaults
    # =========================================================================

    min_loop_interval_ms: int = Field(
        default=150,
        ge=1,
        description="Minimum interval between loop alert repetitions",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy GARDEN_DEBUG.

        Priority:
        1. Explicit GARDEN_LOG_LEVEL
        2. GARDEN_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def notifier_data_dir(self) -> Path:
        """Directory holding the persisted notifier stores."""
        if self.data_dir is not None:
            return self.data_dir
        return self.instance_root / "userdata" / "notifier"

    @property
    def resolved_catalog_path(self) -> Path:
        """Path to the static catalog YAML."""
        if self.catalog_path is not None:
            return self.catalog_path
        return self.instance_root / "reference" / "catalog.yaml"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> GardenSettings:
    """
    Get the singleton settings instance.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        GardenSettings instance with validated configuration
    """
    return GardenSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_settings().effective_log_level == "DEBUG"
