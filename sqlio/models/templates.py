"""Rendering of ``{{ func('NAME') }}`` expressions in connection settings.

Two lookups are available: ``env_var`` reads the process environment and
``var`` reads variables passed on the command line with ``--vars``.
"""

import os
import re
from functools import partial
from typing import Any, Callable, Mapping

from sqlio.core.exceptions import ConfigurationError

_EXPRESSION = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
_CALL = re.compile(r"(\w+)\(\s*(['\"])([^'\"]+)\2\s*\)")

Lookup = Callable[[str], str]


def render_templates(
    settings: Mapping[str, Any], cli_vars: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Return a copy of ``settings`` with every template expression resolved.

    Nested mappings and lists are walked; non-string leaves are kept as is.

    Raises:
        ConfigurationError: If an expression is malformed, names an unknown
            lookup, or refers to a variable that is not set.
    """
    lookups: dict[str, Lookup] = {
        "env_var": _env_var,
        "var": partial(_cli_var, dict(cli_vars or {})),
    }
    return _render(dict(settings), lookups)


def _env_var(name: str) -> str:
    try:
        return os.environ[name]
    except KeyError:
        raise ConfigurationError(
            f"Environment variable '{name}' is not set", context={"key": name}
        ) from None


def _cli_var(cli_vars: dict[str, str], name: str) -> str:
    if name not in cli_vars:
        raise ConfigurationError(
            f"Variable '{name}' was not passed with --vars",
            context={"key": name, "available": sorted(cli_vars)},
        )
    return cli_vars[name]


def _render(value: Any, lookups: dict[str, Lookup]) -> Any:
    if isinstance(value, dict):
        return {key: _render(item, lookups) for key, item in value.items()}
    if isinstance(value, list):
        return [_render(item, lookups) for item in value]
    if isinstance(value, str):
        return _EXPRESSION.sub(lambda match: _evaluate(match.group(1), lookups), value)
    return value


def _evaluate(expression: str, lookups: dict[str, Lookup]) -> str:
    call = _CALL.fullmatch(expression)
    if call is None:
        raise ConfigurationError(
            f"Unsupported template expression: {expression}",
            context={"expression": expression},
        )
    name, argument = call.group(1), call.group(3)
    lookup = lookups.get(name)
    if lookup is None:
        raise ConfigurationError(
            f"Unknown template function: {name}",
            context={"expression": expression, "available": sorted(lookups)},
        )
    return str(lookup(argument))
