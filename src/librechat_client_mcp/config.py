"""Server configuration management.

Configuration sources (in priority order):
1. Command-line flags (passed as init values)
2. Environment variables (LIBRECHAT_MCP_ prefix, nested with __)
3. Legacy environment variables (GITHUB_PERSONAL_ACCESS_TOKEN,
   MCP_TRANSPORT_MODE, PORT, MCP_PORT, MCP_HOST, MCP_CORS_ORIGINS)
4. Config file (YAML, from --config or LIBRECHAT_MCP_CONFIG_FILE)
5. Defaults
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_ENV = "LIBRECHAT_MCP_CONFIG_FILE"

# (environment variable, settings field); earlier entries win
LEGACY_ENV_VARS: tuple[tuple[str, str], ...] = (
    ("GITHUB_PERSONAL_ACCESS_TOKEN", "github_token"),
    ("MCP_TRANSPORT_MODE", "mode"),
    ("PORT", "port"),
    ("MCP_PORT", "port"),
    ("MCP_HOST", "host"),
    ("MCP_CORS_ORIGINS", "cors_origins"),
)

_config_file_override: Path | None = None


class TransportMode(str, Enum):
    """How the server is reached by clients."""

    STDIO = "stdio"  # pipe, single implicit session
    SSE = "sse"  # push-stream, one session per open stream
    HTTP = "http"  # streamable HTTP request/response
    DUAL = "dual"  # HTTP plus stdio when stdin is piped


class RepositoryConfig(BaseModel):
    """Remote repository coordinates and HTTP client settings."""

    owner: str = "danny-avila"
    name: str = "LibreChat"
    branch: str = "main"
    base_path: str = "packages/client"

    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    timeout: float = 30.0
    user_agent: str = "Mozilla/5.0 (compatible; LibreChatClientMCP/1.0.0)"


class CacheConfig(BaseModel):
    """Response cache configuration."""

    ttl_seconds: float = Field(default=300.0, gt=0)
    max_entries: int = Field(default=1000, ge=1)


class RetryConfig(BaseModel):
    """Retry policy for transient GitHub failures."""

    max_attempts: int = Field(default=4, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=8.0, ge=0)


class LegacyEnvSettingsSource(PydanticBaseSettingsSource):
    """Reads the un-prefixed environment variable names used by older deployments."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for env_name, field_name in LEGACY_ENV_VARS:
            if field_name in values:
                continue
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value
        return values


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRECHAT_MCP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    mode: TransportMode = TransportMode.STDIO
    host: str = "0.0.0.0"
    port: int = Field(default=7424, ge=1, le=65535)
    # Comma-separated; "*" allows any origin
    cors_origins: str = "*"
    github_token: str | None = None

    log_level: str = "INFO"
    log_json: bool = False

    # Directories deeper than this many path segments are not expanded
    tree_max_depth: int = Field(default=6, ge=1)

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("github_token")
    @classmethod
    def _blank_token_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def allowed_origins(self) -> list[str]:
        """CORS origins as a list."""
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]

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
            LegacyEnvSettingsSource(settings_cls),
            YamlConfigSettingsSource(settings_cls, yaml_file=_config_file_path()),
        )


def _config_file_path() -> Path | None:
    """Resolve the YAML config file, if one is configured and exists."""
    for candidate in (_config_file_override, os.environ.get(CONFIG_FILE_ENV)):
        if not candidate:
            continue
        path = Path(candidate).expanduser()
        if path.is_file():
            return path
    return None


def load_settings(
    overrides: dict[str, Any] | None = None,
    *,
    config_file: str | Path | None = None,
) -> Settings:
    """Build settings from flags, environment, config file and defaults.

    Args:
        overrides: Values from command-line flags; ``None`` entries are ignored
            so that unset flags fall through to the environment.
        config_file: Optional YAML file path (takes precedence over
            LIBRECHAT_MCP_CONFIG_FILE).
    """
    global _config_file_override
    _config_file_override = Path(config_file) if config_file else None
    try:
        init_values = {k: v for k, v in (overrides or {}).items() if v is not None}
        return Settings(**init_values)
    finally:
        _config_file_override = None
