"""Environment configuration for the Sonarr MCP server."""

import os
from typing import Dict, Literal, Mapping, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConnectionConfig(BaseModel):
    """How to reach the Sonarr instance."""
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Sonarr base URL, without /api/v3")
    api_key: str = Field(min_length=1, description="Sonarr API key")
    timeout_seconds: float = Field(default=30, ge=1, le=300)
    max_retries: int = Field(default=3, ge=0, le=10)
    verify_tls: bool = True

    @field_validator("base_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid Sonarr API URL")
        return value.rstrip("/")


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "sonarr-mcp"
    version: str = "1.0.0"
    log_level: Literal["ERROR", "WARN", "INFO", "DEBUG"] = "INFO"
    transport: Literal["http", "stdio"] = "http"
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("transport", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.lower() if isinstance(value, str) else value


class FeatureConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enable_file_operations: bool = False
    max_concurrent_requests: int = Field(default=10, ge=1, le=100)


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sonarr: ConnectionConfig
    server: ServerConfig = Field(default_factory=ServerConfig)
    features: FeatureConfig = Field(default_factory=FeatureConfig)


# (section, field) -> environment variable
ENV_VARS: Dict[Tuple[str, str], str] = {
    ("sonarr", "base_url"): "SONARR_API_URL",
    ("sonarr", "api_key"): "SONARR_API_KEY",
    ("sonarr", "timeout_seconds"): "SONARR_TIMEOUT",
    ("sonarr", "max_retries"): "SONARR_MAX_RETRIES",
    ("sonarr", "verify_tls"): "SONARR_VERIFY_SSL",
    ("server", "name"): "MCP_SERVER_NAME",
    ("server", "version"): "MCP_SERVER_VERSION",
    ("server", "log_level"): "MCP_LOG_LEVEL",
    ("server", "transport"): "MCP_TRANSPORT",
    ("server", "host"): "HOST",
    ("server", "port"): "PORT",
    ("features", "enable_file_operations"): "ENABLE_FILE_OPERATIONS",
    ("features", "max_concurrent_requests"): "MAX_CONCURRENT_REQUESTS",
}

# Older deployments set SONARR_URL
FALLBACK_VARS = {"SONARR_API_URL": "SONARR_URL"}


def _describe(error: dict) -> str:
    loc = tuple(str(part) for part in error["loc"][:2])
    name = ENV_VARS.get(loc, ".".join(loc))
    return f"{name}: {error['msg']}"


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build and validate configuration from environment variables.

    Args:
        environ: Mapping to read instead of os.environ (tests)

    Returns:
        Validated AppConfig

    Raises:
        ConfigError: Listing every invalid variable and the constraint it broke
    """
    env = os.environ if environ is None else environ

    raw: Dict[str, Dict[str, str]] = {"sonarr": {}, "server": {}, "features": {}}
    for (section, field), var in ENV_VARS.items():
        value = env.get(var)
        if value is None and var in FALLBACK_VARS:
            value = env.get(FALLBACK_VARS[var])
        if value is not None and value != "":
            raw[section][field] = value

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        issues = "\n".join(_describe(err) for err in e.errors())
        raise ConfigError(f"Environment validation failed:\n{issues}") from e
