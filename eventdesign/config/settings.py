"""
Configuration management system for eventdesign.

Provides a hierarchical configuration with support for YAML files,
environment variables and runtime overrides.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from enum import Enum

from ..core.exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SplineSpacing(str, Enum):
    """Placement strategies for spline knots."""
    LINEAR = "linear"
    LOG = "log"
    LOGREVERSE = "logreverse"
    QUANTILES = "quantiles"


class CodingSchema(str, Enum):
    """Coding schemes for categorical predictors."""
    REFERENCE = "reference"
    EFFECTS = "effects"


class DesignConfig(BaseModel):
    """Design matrix construction options."""
    model_config = ConfigDict(validate_assignment=True)

    categorical: List[str] = Field(default_factory=list)
    splinespacing: SplineSpacing = SplineSpacing.QUANTILES
    codingschema: CodingSchema = CodingSchema.REFERENCE

    @field_validator("categorical", mode="before")
    @classmethod
    def validate_categorical(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return list(v)

    @field_validator("splinespacing", mode="before")
    @classmethod
    def validate_splinespacing(cls, v):
        # the original toolbox spells it 'quantile'
        if isinstance(v, str) and v.lower() == "quantile":
            return SplineSpacing.QUANTILES
        return v.lower() if isinstance(v, str) else v

    @field_validator("codingschema", mode="before")
    @classmethod
    def validate_codingschema(cls, v):
        if isinstance(v, str) and v.lower() in ("references", "treatment"):
            return CodingSchema.REFERENCE
        return v.lower() if isinstance(v, str) else v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    model_config = ConfigDict(validate_assignment=True)

    level: LogLevel = LogLevel.INFO
    file_logging: bool = False
    log_file: Optional[Path] = None
    console_logging: bool = True
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class EventDesignConfig(BaseModel):
    """Main configuration class for eventdesign."""
    model_config = ConfigDict(validate_assignment=True)

    design: DesignConfig = Field(default_factory=DesignConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def __init__(self, config_file: Optional[Union[str, Path]] = None, **kwargs):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML configuration file
            **kwargs: Override specific configuration values
        """
        config_data: Dict[str, Any] = {}
        if config_file:
            config_data = self._load_config_file(config_file)

        _merge_sections(config_data, self._load_environment_variables())
        _merge_sections(config_data, kwargs)

        try:
            super().__init__(**config_data)
        except ValidationError as e:
            raise _configuration_error(e) from e

    @staticmethod
    def _load_config_file(config_file: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_environment_variables() -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings = {
            "EVENTDESIGN_LOG_LEVEL": ("logging", "level"),
            "EVENTDESIGN_CODING_SCHEMA": ("design", "codingschema"),
            "EVENTDESIGN_SPLINE_SPACING": ("design", "splinespacing"),
        }

        for env_var, (section, key) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                config.setdefault(section, {})[key] = value

        return config

    def save_config(self, config_file: Union[str, Path]) -> None:
        """Save current configuration to YAML file."""
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, indent=2)

    def design_options(self, **overrides) -> DesignConfig:
        """
        Return a copy of the design options with per-call overrides applied.

        ``None`` overrides are ignored so callers can forward optional
        keyword arguments unchanged.
        """
        data = self.design.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return DesignConfig(**data)
        except ValidationError as e:
            raise _configuration_error(e) from e


def _merge_sections(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """Merge nested configuration dictionaries section by section."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            target[key].update(value)
        else:
            target[key] = value


def _configuration_error(error: ValidationError) -> ConfigurationError:
    first = error.errors()[0]
    key = ".".join(str(part) for part in first.get("loc", ()))
    allowed = None
    if key.endswith("splinespacing"):
        allowed = [s.value for s in SplineSpacing]
    elif key.endswith("codingschema"):
        allowed = [c.value for c in CodingSchema]
    return ConfigurationError(config_key=key, value=first.get("input"), allowed=allowed)


# Default configuration instance
_default_config: Optional[EventDesignConfig] = None


def get_default_config() -> EventDesignConfig:
    """Get the default configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = EventDesignConfig()
    return _default_config


def reset_default_config() -> None:
    """Drop the cached default configuration so it is rebuilt on next use."""
    global _default_config
    _default_config = None
