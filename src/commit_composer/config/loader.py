"""
Configuration loader for commit_composer.

Settings are read from a JSON file named ``config.json`` in the
``~/.commit_composer/`` directory. Every key is optional; a missing file
means defaults throughout. Scalar keys can be overridden with
``ACP_<KEY>`` environment variables (``ACP_MAX_INPUT_TOKENS=8192``).

If the file is malformed or a value has the wrong type, a
:class:`ConfigError` is raised.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the root logger
# is not configured. Propagation is disabled until the CLI configures logging.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"
ENV_PREFIX = "ACP_"
PROVIDERS = ("ollama", "openai")

DEFAULTS: Dict[str, Any] = {
    "provider": "ollama",
    "base_url": "http://localhost",
    "port": 11434,
    "model": "llama3",
    "api_key": None,
    "request_timeout": 60,
    "max_input_tokens": 4096,
    "max_output_tokens": 500,
    "language": "en",
    "emoji": False,
    "description": False,
    "one_line": False,
    "exclude_patterns": [],
    "encoding": "cl100k_base",
}

_TYPES: Dict[str, tuple] = {
    "provider": (str,),
    "base_url": (str,),
    "port": (int,),
    "model": (str,),
    "api_key": (str, type(None)),
    "request_timeout": (int, float),
    "max_input_tokens": (int,),
    "max_output_tokens": (int,),
    "language": (str,),
    "emoji": (bool,),
    "description": (bool,),
    "one_line": (bool,),
    "exclude_patterns": (list,),
    "encoding": (str,),
}


class ConfigError(Exception):
    """Raised when the configuration file or an override is invalid."""

    pass


@dataclass
class Settings:
    """Validated configuration values."""

    provider: str = DEFAULTS["provider"]
    base_url: str = DEFAULTS["base_url"]
    port: int = DEFAULTS["port"]
    model: str = DEFAULTS["model"]
    api_key: Optional[str] = None
    request_timeout: float = DEFAULTS["request_timeout"]
    max_input_tokens: int = DEFAULTS["max_input_tokens"]
    max_output_tokens: int = DEFAULTS["max_output_tokens"]
    language: str = DEFAULTS["language"]
    emoji: bool = False
    description: bool = False
    one_line: bool = False
    exclude_patterns: List[str] = field(default_factory=list)
    encoding: str = DEFAULTS["encoding"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        known = {key: data[key] for key in DEFAULTS if key in data}
        return cls(**known)


def _get_config_directory() -> Path:
    """Return ``~/.commit_composer``."""
    return Path.home() / ".commit_composer"


def _coerce_env(key: str, raw: str) -> Any:
    expected = _TYPES[key]
    if bool in expected:
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be a boolean, got {raw!r}")
    if int in expected and float not in expected:
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be an integer, got {raw!r}") from exc
    if float in expected:
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be a number, got {raw!r}") from exc
    if list in expected:
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


def _validate(data: Mapping[str, Any]) -> None:
    for key, value in data.items():
        if key not in _TYPES:
            continue
        expected = _TYPES[key]
        # bool passes isinstance(int) checks; reject it for numeric keys
        if isinstance(value, bool) and bool not in expected:
            raise ConfigError(f"'{key}' has invalid type bool")
        if not isinstance(value, expected):
            names = " or ".join(t.__name__ for t in expected if t is not type(None))
            raise ConfigError(f"'{key}' must be of type {names}")
    if data.get("provider") not in PROVIDERS:
        raise ConfigError(f"'provider' must be one of: {', '.join(PROVIDERS)}")
    if not all(isinstance(p, str) for p in data.get("exclude_patterns", [])):
        raise ConfigError("'exclude_patterns' must be a list of strings")
    for key in ("max_input_tokens", "max_output_tokens", "port"):
        if data[key] <= 0:
            raise ConfigError(f"'{key}' must be positive")


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Load the configuration, apply environment overrides and validate it.

    Returns
    -------
    Dict[str, Any]
        All keys of :data:`DEFAULTS`, with file and environment values
        applied.

    Raises
    ------
    ConfigError
        If the file is unreadable, is not a JSON object, or a value is
        invalid.
    """
    environ = os.environ if environ is None else environ
    config_path = _get_config_directory() / CONFIG_FILE_NAME
    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if config_path.exists():
        try:
            content = config_path.read_text(encoding="utf-8")
            file_data = json.loads(content)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read or parse configuration file: %s", exc)
            raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc
        if not isinstance(file_data, dict):
            raise ConfigError(f"{config_path} must contain a JSON object")
        unknown = sorted(set(file_data) - set(DEFAULTS))
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        data.update({k: v for k, v in file_data.items() if k in DEFAULTS})
        logger.debug("Loaded configuration from: %s", config_path)
    else:
        logger.debug("No configuration file at %s, using defaults", config_path)

    for key in DEFAULTS:
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key in environ:
            data[key] = _coerce_env(key, environ[env_key])

    _validate(data)
    return data


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    return Settings.from_dict(load_config(environ))
