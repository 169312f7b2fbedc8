"""Application settings using pydantic-settings."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from agent_sandbox.errors import ConfigError


APP_NAME = "Agent Sandbox"
APP_VERSION = "1.0.0"

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: float | int | str) -> float:
    """Convert a duration to seconds.

    Accepts plain numbers (seconds) or strings such as ``"500ms"``, ``"30s"``,
    ``"5m"`` and ``"1h"``.
    """
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit or "s"]


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    keep_alive_timeout: float = 30.0
    shutdown_timeout: float = 30.0

    @field_validator("keep_alive_timeout", "shutdown_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class SandboxSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    workspace_dir: Path = Path("/tmp/agent-sandbox")
    max_file_size: int = Field(default=100 * 1024 * 1024, ge=0)  # 100MB
    shell_timeout: float = Field(default=300.0, gt=0)
    # Canonicalize paths and reject anything resolving outside workspace_dir
    confine_paths: bool = True
    key_store: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./agent-sandbox.db"

    @field_validator("shell_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)


class LogSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    format: Literal["json", "text"] = "json"

    @field_validator("level", "format", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.lower() if isinstance(value, str) else value


class Settings(BaseSettings):
    """Application configuration.

    Values come from (highest priority first) constructor arguments,
    ``AGENT_SANDBOX_*`` environment variables, a ``.env`` file, and the TOML
    file named by ``toml_file`` when one is configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENT_SANDBOX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = APP_NAME
    app_version: str = APP_VERSION

    # ==========================================================================
    # Sections
    # ==========================================================================
    server: ServerSettings = Field(default_factory=ServerSettings)
    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings, optionally layering a TOML config file under env vars.

    Raises:
        ConfigError: the file does not exist, is not valid TOML, or holds
            values that fail validation.
    """
    if config_path is None:
        try:
            return Settings()
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"failed to read config file: {path}")

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=path)

    try:
        return FileSettings()
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {path}: {e}") from e
    except ValueError as e:
        # tomllib.TOMLDecodeError subclasses ValueError
        raise ConfigError(f"failed to parse config file {path}: {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
