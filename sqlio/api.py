"""Public Python API for the sqlio package.

This module provides the main entry points for building connectors.
"""

from sqlio.connectors.read import ReadConnector
from sqlio.connectors.write import WriteConnector
from sqlio.models.connection_config import ConnectionConfig
from sqlio.models.loader import load_connection_config


def read() -> ReadConnector:
    """Start building a ReadConnector.

    Example:
        >>> def map_person(row):
        ...     return (row.id, row.name)
        >>> records = (
        ...     read()
        ...     .with_connection_config(config)
        ...     .with_query("select id, name from person")
        ...     .with_row_mapper(map_person)
        ...     .with_coder(TupleCoder([VarIntCoder(), StrUtf8Coder()]))
        ...     .expand()
        ... )
    """
    return ReadConnector()


def write() -> WriteConnector:
    """Start building a WriteConnector."""
    return WriteConnector()


def from_yaml(path: str, cli_vars: dict[str, str] | None = None) -> ConnectionConfig:
    """Load a ConnectionConfig from a YAML file.

    Args:
        path: Path to the YAML file
        cli_vars: Values for {{ var('NAME') }} templates

    Raises:
        ConfigurationError: If the file is missing, invalid or incomplete
    """
    return load_connection_config(path, cli_vars=cli_vars)
