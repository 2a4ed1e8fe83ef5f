"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding
(``TRADE_JOURNAL_ANALYTICS__MIN_SAMPLE_SIZE=5``).
"""

from __future__ import annotations

from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .errors import ConfigError


def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class AnalyticsConfig(BaseModel):
    min_sample_size: int = Field(default=3, ge=1)  # Smallest group eligible as a "top" group
    breakdown_limit: int = Field(default=3, ge=1)
    day_trade_window_hours: float = Field(default=24.0, gt=0)
    allow_day_trade_override: bool = True
    timezone: str = "UTC"  # Calendar-day grouping, entry hours, "today" window

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        try:
            _zone(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone '{v}'") from exc
        return v

    @property
    def tzinfo(self) -> tzinfo:
        return _zone(self.timezone)

    @property
    def day_trade_window(self) -> timedelta:
        return timedelta(hours=self.day_trade_window_hours)


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"


class CacheConfig(BaseModel):
    settings_ttl_seconds: float = Field(default=60.0, ge=0)


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = {"env_prefix": "TRADE_JOURNAL_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: the file is unreadable or a value is invalid.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        import tomli

        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
