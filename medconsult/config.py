"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class SchedulingDefaults(BaseModel):
    """Slot and booking settings."""
    window_days: int = Field(default=7, ge=1)
    booking_horizon_days: int = Field(default=30, ge=1)
    enforce_start_time: bool = True
    start_grace_minutes: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_horizon(self) -> "SchedulingDefaults":
        """A booking horizon shorter than the slot window would reject listed slots."""
        if self.booking_horizon_days < self.window_days:
            raise ValueError("booking_horizon_days must be at least window_days")
        return self


class DirectoryDefaults(BaseModel):
    """Doctor search settings."""
    page_limit: int = Field(default=10, ge=1)
    max_page_limit: int = Field(default=100, ge=1)
    preview_slots: int = Field(default=4, ge=0)
    annotation_workers: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def validate_limits(self) -> "DirectoryDefaults":
        if self.page_limit > self.max_page_limit:
            raise ValueError("page_limit must not exceed max_page_limit")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    scheduling: SchedulingDefaults = Field(default_factory=SchedulingDefaults)
    directory: DirectoryDefaults = Field(default_factory=DirectoryDefaults)
    data_file: Optional[Path] = None
    consultations_file: Optional[Path] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the business timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: '{value}'") from exc
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative ``data_file`` and ``consultations_file`` paths are resolved
        against the directory containing the config file.

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
        base_dir = config_path.parent
        for name in ("data_file", "consultations_file"):
            path = getattr(config, name)
            if path is not None and not path.is_absolute():
                setattr(config, name, base_dir / path)
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
