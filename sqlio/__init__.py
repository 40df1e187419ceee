"""sqlio - relational database connectors for batch pipelines.

Reads query results into typed records and writes records back as batched,
committed statements, one connection per worker.
"""

__version__ = "0.1.0"

# Public API
from sqlio.api import from_yaml, read, write

# Coders
from sqlio.coders import (
    BytesCoder,
    Coder,
    PairCodec,
    PickleCoder,
    RestrictionPair,
    StrUtf8Coder,
    TupleCoder,
    VarIntCoder,
)

# Connectors
from sqlio.connectors import PreparedStatement, ReadConnector, WriteConnector

# Engine
from sqlio.core.engine import HostEngine, LocalEngine

# Exceptions
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

# Configuration
from sqlio.models.connection_config import ConnectionConfig, DataSource, PooledDataSource

__all__ = [
    # Version
    "__version__",
    # Public API
    "read",
    "write",
    "from_yaml",
    # Configuration
    "ConnectionConfig",
    "DataSource",
    "PooledDataSource",
    # Connectors
    "ReadConnector",
    "WriteConnector",
    "PreparedStatement",
    # Engine
    "HostEngine",
    "LocalEngine",
    # Coders
    "Coder",
    "BytesCoder",
    "PickleCoder",
    "StrUtf8Coder",
    "TupleCoder",
    "VarIntCoder",
    "PairCodec",
    "RestrictionPair",
    # Exceptions
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
]
