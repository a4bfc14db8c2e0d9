"""
Configuration file loader for react_orchestrator.

Overlays values from a YAML file onto the environment-derived
``Config``, with support for environment variable interpolation.

Example file::

    llm:
      base_url: ${LLM_BASE_URL:-http://localhost:8001/v1}
      model: qwen-plus
    agent:
      max_iterations: 8
      language: english
"""

import dataclasses
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .config import Config

logger = logging.getLogger(__name__)

# Regex for environment variable interpolation: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _coerce(value: Any, current: Any) -> Any:
    """Coerce a YAML value to the type of the field it replaces."""
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, str):
        return str(value)
    return value


def _overlay_section(section: Any, data: dict, section_name: str) -> Any:
    """Return a copy of a config section with values from ``data`` applied."""
    known = {f.name for f in dataclasses.fields(section)}
    updates = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key '{section_name}.{key}'")
            continue
        try:
            updates[key] = _coerce(value, getattr(section, key))
        except (TypeError, ValueError) as e:
            raise ValueError(
                f"Invalid value for '{section_name}.{key}': {value!r} ({e})"
            ) from e
    return dataclasses.replace(section, **updates)


def load_config_data(path: str) -> dict:
    """
    Read a YAML configuration file with env vars resolved.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the top level is not a mapping
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found at {config_path}. "
            "Unset CONFIG_PATH to use environment variables only."
        )

    logger.info(f"Loading configuration from {config_path}")
    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    return _substitute_env_vars_recursive(raw_config)


def apply_config_file(base: Config, path: str) -> Config:
    """
    Overlay a YAML configuration file onto ``base``.

    Args:
        base: Environment-derived configuration.
        path: Path to the YAML file.

    Returns:
        A new Config with file values applied.
    """
    data = load_config_data(path)
    updates: dict[str, Any] = {}

    for section_field in dataclasses.fields(base):
        name = section_field.name
        if name not in data:
            continue
        current = getattr(base, name)
        value = data[name]
        if dataclasses.is_dataclass(current):
            if not isinstance(value, dict):
                raise ValueError(f"Config section '{name}' must be a mapping")
            updates[name] = _overlay_section(current, value, name)
        else:
            updates[name] = _coerce(value, current)

    for key in data:
        if key not in updates and key not in {f.name for f in dataclasses.fields(base)}:
            logger.warning(f"Ignoring unknown config section '{key}'")

    return dataclasses.replace(base, **updates)
