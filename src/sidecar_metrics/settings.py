"""
Settings Management Module

Provides pydantic-based configuration management with:
- YAML configuration file loading
- Environment-specific overlays (config.{environment}.yaml)
- Environment variable overrides (SIDECAR_*, nested with "__")

Settings are loaded once at startup and treated as read-only afterwards.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import DEFAULT_SPAN_NAME_PREFIX
from .exceptions import TracingConfigError


class HoneycombSettings(BaseModel):
    """Handler tracing settings.

    ``functions`` maps a logical function name to a regular expression matched
    against the start of the request path. Mappings are tried in declaration
    order and the first match wins.
    """

    enabled: bool = False
    service_name: str = "sidecar"
    span_name_prefix: str = DEFAULT_SPAN_NAME_PREFIX

    functions: dict[str, str] = Field(default_factory=dict)
    root_fields: dict[str, Any] = Field(default_factory=dict)


class Settings(BaseSettings):
    """
    Main sidecar settings with multi-environment support.

    Configuration hierarchy (lowest to highest precedence):
    1. settings/config.yaml (base)
    2. settings/config.{environment}.yaml (environment-specific)
    3. Environment variables (SIDECAR_*)

    Examples:
        >>> settings = get_settings()
        >>> settings.honeycomb.enabled
        False

        Enable tracing from the environment:
        $ export SIDECAR_HONEYCOMB__ENABLED=true
        $ export SIDECAR_HONEYCOMB__SERVICE_NAME=sidecar-svc
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDECAR_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="allow",
    )

    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"

    honeycomb: HoneycombSettings = Field(default_factory=HoneycombSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment variables win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load_from_yaml(cls, config_path: Path | None = None) -> "Settings":
        """
        Load settings from YAML configuration file.

        Args:
            config_path: Path to config file (default: settings/config.yaml
                in the working directory)

        Returns:
            Settings instance

        Raises:
            TracingConfigError: If a config file exists but cannot be parsed
        """
        if config_path is None:
            config_path = Path.cwd() / "settings" / "config.yaml"

        if not config_path.exists():
            # Return default settings if config doesn't exist
            return cls()

        config_data = cls._read_yaml(config_path)

        # Load environment-specific overrides
        env = os.getenv("SIDECAR_ENVIRONMENT", config_data.get("environment", "development"))
        env_config_path = config_path.parent / f"config.{env}.yaml"

        if env_config_path.exists():
            env_config = cls._read_yaml(env_config_path)
            config_data = cls._deep_merge(config_data, env_config)

        return cls(**config_data)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        """Read a YAML mapping, raising TracingConfigError on bad content."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise TracingConfigError(
                f"Cannot read configuration file: {e}", context={"path": str(path)}
            ) from e
        if not isinstance(data, dict):
            raise TracingConfigError(
                "Configuration file must contain a mapping", context={"path": str(path)}
            )
        return data

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Settings._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


@lru_cache
def get_settings(config_path: Path | None = None) -> Settings:
    """
    Get cached settings instance.

    Args:
        config_path: Optional path to config file

    Returns:
        Settings instance
    """
    return Settings.load_from_yaml(config_path)


def reload_settings() -> Settings:
    """Reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "Settings",
    "HoneycombSettings",
    "get_settings",
    "reload_settings",
]
