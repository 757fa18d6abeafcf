# --- config.py ---

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STORE_ROOT = os.path.expanduser("~/Library/Messages/Attachments")

DEFAULT_CONFIG_LOCATIONS = [
    "attachment-sweeper.yaml",
    os.path.expanduser("~/.attachment-sweeper/config.yaml"),
    "/etc/attachment-sweeper/config.yaml",
]

ENV_STORE_ROOT = "ATTACHMENT_SWEEPER_ROOT"
ENV_LOG_LEVEL = "ATTACHMENT_SWEEPER_LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class AppConfig:
    """Settings for one run. Locating the store is left to the user."""
    store_root: str = DEFAULT_STORE_ROOT
    hidden_prefix: str = "."
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _find_config_file(config_path: Optional[str]) -> Optional[str]:
    if config_path:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for location in DEFAULT_CONFIG_LOCATIONS:
        if os.path.exists(location):
            return location
    return None


def _read_yaml(config_file: str) -> Dict[str, Any]:
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")
    return data


def validate(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Checks keys and value types; returns the cleaned mapping."""
    known = {f.name for f in fields(AppConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    cleaned = dict(data)
    for key in ("store_root", "hidden_prefix", "log_file"):
        value = cleaned.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"'{key}' must be a string")

    if cleaned.get("store_root"):
        cleaned["store_root"] = os.path.expanduser(cleaned["store_root"])
    if "log_level" in cleaned:
        level = str(cleaned["log_level"]).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {cleaned['log_level']}")
        cleaned["log_level"] = level
    return cleaned


def load_config(config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Builds the effective configuration.

    Built-in defaults are overridden by the first config file found (or
    `config_path`), which in turn is overridden by the environment.

    Raises:
        FileNotFoundError: If `config_path` is given but does not exist.
        ValueError: If the file or the environment holds invalid values.
    """
    if environ is None:
        environ = os.environ

    settings: Dict[str, Any] = {}
    config_file = _find_config_file(config_path)
    if config_file:
        logger.debug("Loading config from %s", config_file)
        settings.update(validate(_read_yaml(config_file)))

    overrides = {}
    if environ.get(ENV_STORE_ROOT):
        overrides["store_root"] = environ[ENV_STORE_ROOT]
    if environ.get(ENV_LOG_LEVEL):
        overrides["log_level"] = environ[ENV_LOG_LEVEL]
    settings.update(validate(overrides))

    return replace(AppConfig(), **settings)
