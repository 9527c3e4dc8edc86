"""
Configuration for the YNAB MCP server.

Sources, highest precedence first:
    CLI flags > environment variables (and .env) > JSON config file > defaults

The JSON config file defaults to ~/.config/ynab-mcp/config.json and is only
read when it exists, unless a path is given explicitly.
"""
import json
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ynab_mcp.ynab.client import RetryPolicy, YNABClient

load_dotenv()

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "ynab-mcp" / "config.json"


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


class Settings(BaseSettings):
    """
    Server settings. Environment variables use the YNAB_MCP_ prefix;
    YNAB_ACCESS_TOKEN and MCP_AUTH_TOKEN are also accepted without it.
    """
    ynab_access_token: str = Field(
        default="",
        validation_alias=AliasChoices("YNAB_ACCESS_TOKEN", "YNAB_MCP_YNAB_ACCESS_TOKEN", "ynab_access_token"),
    )
    mcp_auth_token: str = Field(
        default="",
        validation_alias=AliasChoices("MCP_AUTH_TOKEN", "YNAB_MCP_MCP_AUTH_TOKEN", "mcp_auth_token"),
    )
    transport_mode: Literal["stdio", "http"] = "stdio"
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    log_level: str = "info"

    ynab_base_url: str = YNABClient.BASE_URL
    max_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=1.0, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    retry_server_errors: bool = False

    model_config = SettingsConfigDict(
        env_prefix="YNAB_MCP_",
        env_file=".env",
        extra="ignore",  # Allow extra fields in .env file
        populate_by_name=True,
    )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.backoff_base_seconds,
            timeout=self.request_timeout_seconds,
            retry_server_errors=self.retry_server_errors,
        )


def _read_config_file(path: Path, required: bool) -> dict:
    if not path.exists():
        if required:
            raise ConfigError(f"failed to read config file: {path} does not exist")
        return {}
    try:
        with open(path) as f:
            values = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        if required:
            raise ConfigError(f"failed to read config file: {e}") from e
        return {}
    if not isinstance(values, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return values


def load_settings(config_path: Optional[str] = None, **overrides) -> Settings:
    """
    Build settings from all sources.

    Args:
        config_path: Explicit JSON config file; an error if unreadable
        **overrides: Values from CLI flags (None values are ignored)

    Raises:
        ConfigError: if the YNAB access token is missing or the file is bad
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    settings = Settings(**overrides)

    path = Path(config_path).expanduser() if config_path else DEFAULT_CONFIG_FILE
    file_values = _read_config_file(path, required=config_path is not None)

    # File values only fill fields no higher-precedence source provided
    missing = {
        key: value
        for key, value in file_values.items()
        if key in Settings.model_fields and key not in settings.model_fields_set
    }
    if missing:
        settings = Settings(**missing, **overrides)

    if not settings.ynab_access_token:
        raise ConfigError(
            "YNAB access token is required (set YNAB_ACCESS_TOKEN env var or add to config file)"
        )

    return settings


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def configure(settings: Settings) -> None:
    """Install settings built by the CLI (flags applied) as the process-wide settings."""
    global _settings
    _settings = settings


def reset_settings_cache() -> None:
    global _settings
    _settings = None
