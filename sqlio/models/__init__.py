"""Configuration models for sqlio."""

from sqlio.models.connection_config import (
    ConnectionConfig,
    DataSource,
    PooledDataSource,
    dispose_shared_data_sources,
)
from sqlio.models.loader import load_connection_config

__all__ = [
    "ConnectionConfig",
    "DataSource",
    "PooledDataSource",
    "dispose_shared_data_sources",
    "load_connection_config",
]
