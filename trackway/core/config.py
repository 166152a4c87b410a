"""
Configuration Settings.

This module defines the trackway configuration using Pydantic's BaseSettings.
Values are resolved from, in order of priority:

1. keyword arguments,
2. environment variables prefixed with ``TRACKWAY_`` (``__`` separates nested
   properties, e.g. ``TRACKWAY_OPENAI__KEY``),
3. a ``.env`` file in the working directory,
4. the persisted user config file (``~/.config/trackway/config.json`` unless
   ``TRACKWAY_CONFIG_DIR`` points elsewhere), written by ``trackway config``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from ..errors import TrackwayRuntimeError
from ..llm.openai import DEFAULT_BASE_URL, DEFAULT_MODEL

CONFIG_FILE_NAME = "config.json"


def get_config_path() -> Path:
    """Return the path of the persisted user config file."""
    config_dir = os.getenv("TRACKWAY_CONFIG_DIR")
    base = Path(config_dir) if config_dir else Path.home() / ".config" / "trackway"
    return base / CONFIG_FILE_NAME


# =====================================================================
# Configuration Models
# =====================================================================


class OpenAIConfig(BaseModel):
    """OpenAI API configuration."""

    key: Optional[str] = Field(default=None, description="OpenAI API key for authentication")
    model: str = Field(default=DEFAULT_MODEL, description="Chat completion model to use")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="OpenAI-compatible API base URL")
    timeout: float = Field(default=60.0, gt=0, description="Request timeout in seconds")


class OpenAIUserConfig(BaseModel):
    """The persisted subset of :class:`OpenAIConfig`."""

    model_config = ConfigDict(extra="ignore")

    key: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None


class UserConfig(BaseModel):
    """Shape of the persisted user config file."""

    model_config = ConfigDict(extra="ignore")

    openai: OpenAIUserConfig = Field(default_factory=OpenAIUserConfig)


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Runtime settings model.

    All properties are automatically bound from environment variables, the
    ``.env`` file and the user config file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKWAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai: OpenAIConfig = Field(default_factory=OpenAIConfig, description="OpenAI provider configuration")
    log_level: str = Field(
        default="WARNING",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(default="simple", description="Console log format (simple, detailed, json)")
    log_file: Optional[str] = Field(default=None, description="Optional file receiving every record at DEBUG level")
    compiler: str = Field(default="kottoc", description="Executable producing declaration artifacts")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=get_config_path()),
            file_secret_settings,
        )


# =====================================================================
# Persisted user config
# =====================================================================

CONFIG_ATTRIBUTES = ("openai.key", "openai.model", "openai.base_url")


def load_user_config(path: Optional[Path] = None) -> UserConfig:
    """Read the persisted user config, returning defaults when the file does not exist.

    Raises:
        TrackwayRuntimeError: If the file exists but is not a valid config.
    """
    path = path or get_config_path()
    if not path.is_file():
        return UserConfig()
    try:
        return UserConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise TrackwayRuntimeError(f"invalid configuration file {path}: {exc}") from exc


def set_config(attr: str, value: str, path: Optional[Path] = None) -> Path:
    """Persist one configuration attribute.

    Args:
        attr: Dotted attribute name, one of ``CONFIG_ATTRIBUTES``.
        value: The value to store.
        path: Config file to update. Defaults to :func:`get_config_path`.

    Returns:
        The path of the written file.

    Raises:
        TrackwayRuntimeError: For unknown attributes or an empty key.
    """
    if attr not in CONFIG_ATTRIBUTES:
        raise TrackwayRuntimeError(f"unknown configuration attribute '{attr}'")
    if not value.strip():
        raise TrackwayRuntimeError(f"{attr} cannot be empty")

    path = path or get_config_path()
    config = load_user_config(path)
    section, field = attr.split(".", 1)
    setattr(getattr(config, section), field, value)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
    return path
