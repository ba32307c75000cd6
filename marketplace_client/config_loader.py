"""Config Loader - Builds ClientConfig from YAML files or the environment.

YAML files support ${ENV_VAR} substitution in every string value, so
credentials can stay out of the file itself.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from marketplace_client.models import ClientConfig


class ConfigError(Exception):
    """Raised when configuration loading fails."""


DEFAULT_BASE_URL = "http://127.0.0.1:8000"


def load_client_config(config_path: Path) -> ClientConfig:
    """Load a ClientConfig from YAML with ${ENV_VAR} substitution."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    raw_config = _substitute_env_vars(raw_config)

    try:
        return ClientConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid config structure: {e}") from e


def config_from_env(environ: Mapping[str, str] | None = None) -> ClientConfig:
    """Build a ClientConfig from API_* environment variables.

    API_BASE_URL falls back to the local development server.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {"base": env.get("API_BASE_URL") or DEFAULT_BASE_URL}

    optional = {
        "API_VERSION": "version",
        "API_TOKEN": "token",
        "API_USERNAME": "username",
        "API_PASSWORD": "password",
        "API_TIMEOUT": "timeout",
    }
    for var_name, field_name in optional.items():
        value = env.get(var_name)
        if value:
            raw[field_name] = value

    try:
        return ClientConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid environment configuration: {e}") from e


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return pattern.sub(replacer, s)
