"""Configuration loading and schema.

Configuration is read from a YAML file, ``${VAR}`` placeholders are replaced
from the environment, and the result is validated into :class:`ModelGateConfig`.

Lookup order for the file: explicit path, ``$MODELGATE_CONFIG``, then
``~/.modelgate/config.yaml``. A missing file yields the defaults.

Example::

    catalog:
      source: http
      url: https://catalog.internal/models.json
      free_models: [gpt-4o, grok-3]
    credentials:
      backend: yaml
      path: ~/.modelgate/credentials.yaml
      lookup_timeout: 2.0
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from modelgate.exceptions import ConfigError

CONFIG_ENV_VAR = "MODELGATE_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".modelgate" / "config.yaml"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_FREE_MODELS = [
    "openrouter:deepseek/deepseek-r1:free",
    "openrouter:meta-llama/llama-3.3-8b-instruct:free",
    "pixtral-large-latest",
    "mistral-large-latest",
    "grok-3",
    "o3",
    "gpt-4o",
]

DEFAULT_SUPPORTED_PROVIDERS = [
    "openai",
    "mistral",
    "deepseek",
    "anthropic",
    "xai",
    "perplexity",
    "google",
    "openrouter",
]


class CatalogConfig(BaseModel):
    """Where model descriptors come from."""

    source: str = "bundled"
    path: Optional[str] = None
    url: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0)
    retries: int = Field(default=3, ge=1)
    free_models: List[str] = Field(default_factory=lambda: list(DEFAULT_FREE_MODELS))

    @field_validator("source")
    @classmethod
    def _check_source(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"bundled", "file", "http"}:
            raise ValueError("catalog.source must be one of: bundled, file, http")
        return normalized

    @model_validator(mode="after")
    def _check_location(self) -> "CatalogConfig":
        if self.source == "file" and not self.path:
            raise ValueError("catalog.path is required when catalog.source is 'file'")
        if self.source == "http" and not self.url:
            raise ValueError("catalog.url is required when catalog.source is 'http'")
        return self


class CredentialsConfig(BaseModel):
    """Which credential store answers provider-key lookups."""

    backend: str = "yaml"
    path: Optional[str] = None
    lookup_timeout: Optional[float] = Field(default=None, gt=0)
    keys: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"yaml", "memory", "none"}:
            raise ValueError("credentials.backend must be one of: yaml, memory, none")
        return normalized


class ProvidersConfig(BaseModel):
    supported: List[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_PROVIDERS))


class LoggingConfig(BaseModel):
    level: str = "INFO"
    components: Dict[str, str] = Field(default_factory=dict)


class ModelGateConfig(BaseModel):
    """Top-level configuration."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def resolve_env_vars(value: Any) -> Any:
    """Replace ``${VAR}`` patterns in strings, recursing into dicts and lists.

    Unset variables resolve to an empty string.
    """
    if isinstance(value, dict):
        return {key: resolve_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]
    if isinstance(value, str) and "${" in value:
        return _ENV_PATTERN.sub(lambda match: os.environ.get(match.group(1), ""), value)
    return value


def load_yaml_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML mapping, returning ``{}`` when the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or is not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def find_config_path(config_path: Optional[Union[str, Path]] = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ModelGateConfig:
    """Load, resolve and validate configuration.

    Args:
        config_path: Explicit configuration file path.
        overrides: Values merged on top of the file contents.

    Raises:
        ConfigError: If the file is unreadable or the result fails validation.
    """
    path = find_config_path(config_path)
    raw = load_yaml_file(path)
    if overrides:
        raw = merge_dicts(raw, overrides)
    try:
        return ModelGateConfig.model_validate(resolve_env_vars(raw))
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


__all__ = [
    "CONFIG_ENV_VAR",
    "CatalogConfig",
    "CredentialsConfig",
    "LoggingConfig",
    "ModelGateConfig",
    "ProvidersConfig",
    "find_config_path",
    "load_config",
    "load_yaml_file",
    "merge_dicts",
    "resolve_env_vars",
]
