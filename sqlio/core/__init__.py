"""Core module for sqlio package."""

from sqlio.core.exceptions import (
    BatchExecutionError,
    CoderError,
    ConfigurationError,
    DatabaseConnectionError,
    DecodeError,
    EncodeError,
    EngineError,
    ParameterBindError,
    QueryExecutionError,
    RowMappingError,
    SqlIOError,
)
from sqlio.core.metrics import WorkerMetrics
from sqlio.core.worker import WorkerFn, WorkerState

__all__ = [
    "SqlIOError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "QueryExecutionError",
    "RowMappingError",
    "ParameterBindError",
    "BatchExecutionError",
    "CoderError",
    "EncodeError",
    "DecodeError",
    "EngineError",
    "WorkerMetrics",
    "WorkerFn",
    "WorkerState",
]
