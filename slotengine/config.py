"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_SLOT_GRANULARITY_MINUTES,
    DEFAULT_TIMEZONE,
)
from .records import HOLDING_STATUSES, TenantSettings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DefaultsConfig(BaseModel):
    """Default slot settings, used when a tenant does not override them."""
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES

    @field_validator("slot_granularity_minutes")
    @classmethod
    def validate_granularity(cls, value: int) -> int:
        """Ensure the slot step is positive."""
        if value <= 0:
            raise ValueError("slot_granularity_minutes must be greater than zero")
        return value

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        """Ensure the buffer is not negative."""
        if value < 0:
            raise ValueError("buffer_minutes must not be negative")
        return value

    def for_tenant(self, settings: TenantSettings) -> "DefaultsConfig":
        """Apply a tenant's slot_duration / buffer_time overrides."""
        return DefaultsConfig(
            slot_granularity_minutes=settings.slot_duration or self.slot_granularity_minutes,
            buffer_minutes=(
                settings.buffer_time if settings.buffer_time is not None else self.buffer_minutes
            ),
        )


class AppConfig(BaseModel):
    """Application configuration."""
    data_file: Path = Path("data.json")
    timezone: str = DEFAULT_TIMEZONE
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    holding_statuses: List[str] = Field(default_factory=lambda: list(HOLDING_STATUSES))
    log_level: str = "WARNING"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("holding_statuses")
    @classmethod
    def validate_holding_statuses(cls, value: List[str]) -> List[str]:
        """Normalise statuses and drop duplicates, preserving order."""
        if not value:
            raise ValueError("holding_statuses must not be empty")
        seen: set[str] = set()
        deduped: List[str] = []
        for status in value:
            key = status.strip().lower()
            if key not in seen:
                deduped.append(key)
                seen.add(key)
        return deduped

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative data_file is resolved against the config file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
