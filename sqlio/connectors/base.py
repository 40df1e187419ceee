"""Base protocol for database connectors.

This module defines the surface the read and write connectors share with the
host engine: validation before execution and a diagnostic description.
"""

import pickle
from typing import Any, Protocol, runtime_checkable

from sqlio.core.exceptions import ConfigurationError


@runtime_checkable
class Connector(Protocol):
    """Protocol shared by ReadConnector and WriteConnector.

    Example:
        connector.validate_config()  # raises ConfigurationError when incomplete
        print(connector.display_data())
    """

    def validate_config(self) -> None:
        """Check that every required field is set.

        Raises:
            ConfigurationError: If a required field is missing.
        """
        ...

    def display_data(self) -> dict[str, str]:
        """Describe the connector for diagnostics, never exposing passwords."""
        ...


def qualified_name(obj: Any) -> str:
    """Return ``module.QualifiedName`` for a function, class or instance."""
    target = obj if hasattr(obj, "__qualname__") else type(obj)
    return f"{target.__module__}.{target.__qualname__}"


def require_picklable(connector: str, field: str, value: Any) -> None:
    """Check that a user callable can be shipped to workers.

    Workers receive their function through pickle, so lambdas and functions
    defined inside other functions are rejected here rather than at run time.

    Raises:
        ConfigurationError: If ``value`` cannot be pickled.
    """
    try:
        pickle.dumps(value)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise ConfigurationError(
            f"{connector}.{field} must be picklable; use a module-level function",
            context={field: qualified_name(value), "error": str(e)},
        ) from e
