"""Configuration management for the Simple-API MCP server.

Settings come from, in order of precedence: ``--name=value`` command line
flags, ``IOB_*`` environment variables (and ``.env``), an optional YAML file
named by ``IOB_CONFIG_PATH``, and the defaults below. Settings are built once
at startup and passed explicitly to the components that need them.
"""

import os
from typing import Optional, Sequence

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_HOST = "http://localhost:8082"
DEFAULT_CONFIG_PATH = "config/settings.yaml"

# CLI flag name -> settings field
CLI_FLAGS = {
    "authType": "auth_type",
    "user": "user",
    "pass": "IOB_PASS",  # validation alias of Settings.password
    "token": "token",
    "host": "host",
    "timeout": "timeout",
    "logLevel": "log_level",
    "jsonLogs": "json_logs",
    "auditLogPath": "audit_log_path",
    "enableDocsTool": "enable_docs_tool",
}


class Settings(BaseSettings):
    """Process-wide settings, read-only after startup."""

    # Backend
    host: str = Field(default=DEFAULT_HOST, description="Simple API base URL")
    timeout: float = Field(
        default=30.0, ge=0, description="HTTP timeout in seconds, 0 disables it"
    )

    # Authentication
    auth_type: Optional[str] = Field(default=None, description="query, basic or bearer")
    user: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None, validation_alias="IOB_PASS", repr=False)
    token: Optional[str] = Field(default=None, repr=False)

    # Logging and audit
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    audit_log_path: Optional[str] = Field(default=None)

    enable_docs_tool: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="IOB_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_path = os.environ.get("IOB_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_path),
            file_secret_settings,
        )

    @property
    def http_timeout(self) -> Optional[float]:
        """Timeout for httpx, None when disabled."""
        return self.timeout or None


def parse_cli_args(argv: Sequence[str]) -> dict[str, str]:
    """
    Extract ``--name=value`` flags into settings overrides.

    Unknown flags, flags without ``=`` and empty values are ignored, so an
    empty ``--user=`` falls back to the environment.
    """
    overrides: dict[str, str] = {}

    for arg in argv:
        if not arg.startswith("--") or "=" not in arg:
            continue
        name, value = arg[2:].split("=", 1)
        field = CLI_FLAGS.get(name)
        if field and value:
            overrides[field] = value

    return overrides


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Build settings from CLI flags, environment and YAML file."""
    overrides = parse_cli_args(argv or [])
    return Settings(**overrides)

