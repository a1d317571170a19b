"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from datetime import timedelta
from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator


class NotificationConfig(BaseModel):
    """Delivery and reminder scheduling settings."""
    max_attempts: int = 3
    reminder_interval_minutes: int = 60
    failure_backoff_minutes: int = 5

    @field_validator("max_attempts", "reminder_interval_minutes", "failure_backoff_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counters and intervals are positive."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    def reminder_interval(self) -> timedelta:
        return timedelta(minutes=self.reminder_interval_minutes)

    def failure_backoff(self) -> timedelta:
        return timedelta(minutes=self.failure_backoff_minutes)


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    store_path: Path = Path("slotbooker_data.json")
    log_level: str = "WARNING"
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

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

        return cls(**data)


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
