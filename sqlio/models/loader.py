"""Connection configuration loader with YAML parsing and template rendering."""

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from sqlio.core.exceptions import ConfigurationError
from sqlio.models.connection_config import ConnectionConfig
from sqlio.models.templates import render_templates

_FIELDS = ("driver_class_name", "url", "username", "password")


def load_connection_config(
    path: str, cli_vars: Dict[str, str] | None = None
) -> ConnectionConfig:
    """
    Load a driver/url connection config from a YAML file.

    The file holds a mapping with ``driver_class_name``, ``url`` and optional
    ``username`` / ``password``, either at the top level or under a
    ``connection`` key. String values may use ``{{ env_var('NAME') }}`` and
    ``{{ var('NAME') }}``.

    Args:
        path: Path to the YAML file
        cli_vars: Variables passed via CLI (e.g., --vars key=value)

    Returns:
        Validated ConnectionConfig

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, has
            unknown keys or lacks required fields
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file: {e}", context={"path": str(path)}
        ) from e

    data = _extract_connection(raw, path)
    data = render_templates(data, cli_vars)

    try:
        config = ConnectionConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Connection config validation failed: {e}", context={"path": str(path)}
        ) from e

    config.validate_config()
    return config


def _extract_connection(raw: Any, path: str) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Config file must contain a mapping", context={"path": str(path)}
        )
    data = raw.get("connection", raw)
    if not isinstance(data, dict):
        raise ConfigurationError(
            "'connection' must be a mapping", context={"path": str(path)}
        )
    unknown = sorted(set(data) - set(_FIELDS))
    if unknown:
        raise ConfigurationError(
            "Unknown connection fields",
            context={"path": str(path), "unknown": unknown},
        )
    return dict(data)
