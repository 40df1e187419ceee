"""Exception hierarchy for the sqlio package."""


class SqlIOError(Exception):
    """Base exception for all sqlio errors."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigurationError(SqlIOError):
    """Raised when a required configuration field is missing or invalid."""

    pass


class DatabaseConnectionError(SqlIOError):
    """Raised when a database connection cannot be acquired."""

    pass


class QueryExecutionError(SqlIOError):
    """Raised when the read query fails to execute."""

    pass


class RowMappingError(SqlIOError):
    """Raised when a row mapper fails on a result row."""

    pass


class ParameterBindError(SqlIOError):
    """Raised when a parameter setter fails to bind an element."""

    pass


class BatchExecutionError(SqlIOError):
    """Raised when executing or committing a statement batch fails."""

    pass


class CoderError(SqlIOError):
    """Base class for encoding and decoding failures."""

    pass


class EncodeError(CoderError):
    """Raised when a value cannot be encoded."""

    pass


class DecodeError(CoderError):
    """Raised when bytes cannot be decoded."""

    pass


class EngineError(SqlIOError):
    """Raised when host engine operations fail."""

    pass
