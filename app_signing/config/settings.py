"""
Configuration system using Pydantic for type-safe settings management.

This module provides configuration classes for the build service connection,
the account the credentials belong to, and build defaults.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from app_signing.enums import FlowMode
from app_signing.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = "~/.appsign/config.yaml"


class ServiceConfig(BaseModel):
    """Build service connection.

    Supports credential references for api_token:
    - api_token: "@keyring:appsign/api_token"
    - api_token: "${APPSIGN_TOKEN}"
    """

    base_url: HttpUrl = Field(default="https://builds.example.com/api/v2", description="Base URL of the build service")
    api_token: str = Field(
        default="@keyring:appsign/api_token",
        description="API token for authentication (supports @keyring:, ${ENV})",
    )
    timeout: float = Field(default=60.0, gt=0, description="Request timeout in seconds")


class AccountConfig(BaseModel):
    """Account that owns the apps."""

    username: str | None = Field(default=None, description="Account name; app.json owner wins when set")


class BuildConfig(BaseModel):
    """Build defaults."""

    ios_flow: FlowMode = Field(default=FlowMode.BATCH, description="Batch or legacy iOS credential flow")
    project_dir: str = Field(default=".", description="Default project directory")


class AppSigningSettings(BaseSettings):
    """Main app-signing settings.

    Values come from a YAML file (``from_yaml``) and can be overridden with
    ``APPSIGN_`` prefixed environment variables, e.g.
    ``APPSIGN_SERVICE__BASE_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="APPSIGN_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    account: AccountConfig = Field(default_factory=AccountConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)

    @property
    def project_path(self) -> Path:
        return Path(self.build.project_dir).expanduser()

    @classmethod
    def load(cls, config_path: str | None = None) -> AppSigningSettings:
        """Load settings from ``config_path``, or defaults when no file exists.

        An explicitly given path must exist; the default path is optional.
        """
        if config_path:
            return cls.from_yaml(config_path)

        default = Path(DEFAULT_CONFIG_PATH).expanduser()
        if default.exists():
            return cls.from_yaml(str(default))
        return cls()

    @classmethod
    def from_yaml(cls, config_path: str) -> AppSigningSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            AppSigningSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
