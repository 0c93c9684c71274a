"""
Pydantic models for fndash

Operator settings (read from the environment) and the timing summary
returned by the instrumentation layer.
"""

import logging
import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fndash.contracts import ConfigurationError

ENV_PREFIX = "FNDASH_"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class OperatorSettings(BaseModel):
    """Process-wide switches for the runtime checks"""
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    strict_returns: bool = Field(
        True,
        description="Check every returned value against the function's return annotation"
    )
    check_element_types: bool = Field(
        True,
        description="Check input elements against the function's parameter annotation before iterating"
    )
    collect_metrics: bool = Field(
        True,
        description="Record per-operator execution times"
    )
    log_level: str = Field(
        "WARNING",
        description="Level of the fndash logger"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is a known logging level name"""
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OperatorSettings":
        """Build settings from ``FNDASH_*`` environment variables"""
        environ = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            key = f"{ENV_PREFIX}{field_name.upper()}"
            if key in environ:
                values[field_name] = environ[key]
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {ENV_PREFIX}* environment settings: {e}") from e


class OperationStats(BaseModel):
    """Aggregated timings of one operator"""
    call_count: int = Field(..., ge=0)
    avg_time: float = Field(..., ge=0)
    min_time: float = Field(..., ge=0)
    max_time: float = Field(..., ge=0)
    total_time: float = Field(..., ge=0)


_settings: Optional[OperatorSettings] = None


def _apply(settings: OperatorSettings) -> OperatorSettings:
    global _settings
    previous = _settings
    _settings = settings
    # Leave the logger alone unless the level setting itself moved
    if previous is None:
        changed = "log_level" in settings.model_fields_set
    else:
        changed = previous.log_level != settings.log_level
    if changed:
        logging.getLogger("fndash").setLevel(settings.log_level)
    return settings


def get_settings() -> OperatorSettings:
    """Current settings, loaded from the environment on first use."""
    if _settings is None:
        return _apply(OperatorSettings.from_env())
    return _settings


def configure(**overrides: Any) -> OperatorSettings:
    """Replace selected settings; unknown names are rejected."""
    return _apply(OperatorSettings(**{**get_settings().model_dump(), **overrides}))


def reset_settings() -> OperatorSettings:
    """Drop overrides and reload settings from the environment."""
    return _apply(OperatorSettings.from_env())
