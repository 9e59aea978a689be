"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILE_NAME = "freeslots.yaml"


class DefaultsConfig(BaseModel):
    """Default settings for free-slot searches."""
    range_days: int = 7
    min_duration_minutes: int = 0

    @field_validator("range_days")
    @classmethod
    def validate_range_days(cls, value: int) -> int:
        """Ensure the default search range is at least one day."""
        if value <= 0:
            raise ValueError("range_days must be greater than zero")
        return value

    @field_validator("min_duration_minutes")
    @classmethod
    def validate_min_duration(cls, value: int) -> int:
        if value < 0:
            raise ValueError("min_duration_minutes must not be negative")
        return value


class Owner(BaseModel):
    """Owner alias configuration."""
    name: str  # Used as alias
    owner_id: str


class AppConfig(BaseModel):
    """Application configuration."""
    data_file: Path = Path("freeslots.json")
    log_level: str = "WARNING"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    owners: List[Owner] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard logging level names in any case."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("owners")
    @classmethod
    def validate_owners(cls, value: List[Owner]) -> List[Owner]:
        """Ensure owner aliases are unique."""
        seen_names: set[str] = set()
        for owner in value:
            name_key = owner.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate owner name detected: {owner.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``data_file`` is resolved against the config file's
        directory.

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
                f"Please create a {CONFIG_FILE_NAME} file. See freeslots.example.yaml for reference."
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
            config = config.model_copy(
                update={"data_file": config_path.parent / config.data_file}
            )
        return config

    def find_owner_by_name(self, name: str) -> Owner | None:
        """Find an owner by their name (alias)."""
        for owner in self.owners:
            if owner.name.lower() == name.lower():
                return owner
        return None

    def resolve_owner(self, identifier: str) -> str:
        """
        Resolve an owner identifier (alias or raw id) to an owner id.

        Identifiers that match no alias are taken to be owner ids already.
        """
        owner = self.find_owner_by_name(identifier)
        if owner:
            return owner.owner_id
        return identifier


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for the config in the current directory
    config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILE_NAME

    return config_path
