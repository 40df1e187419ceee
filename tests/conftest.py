"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, text

from sqlio.models.connection_config import ConnectionConfig, dispose_shared_data_sources


class RecordingDataSource:
    """Data source handing out mock connections and remembering them.

    Set ``execute_error`` to make every statement execution fail.
    """

    def __init__(self, execute_error: Optional[Exception] = None):
        self.execute_error = execute_error
        self.connections: list[MagicMock] = []
        self.credentials: list[tuple] = []

    def get_connection(self, username=None, password=None):
        connection = MagicMock(name=f"connection-{len(self.connections) + 1}")
        connection.in_transaction.return_value = False
        connection.get_execution_options.return_value = {}
        if self.execute_error is not None:
            connection.exec_driver_sql.side_effect = self.execute_error
        self.connections.append(connection)
        self.credentials.append((username, password))
        return connection


@pytest.fixture(autouse=True)
def _dispose_pools():
    """Release pooled connections created by driver/url configs."""
    yield
    dispose_shared_data_sources()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sqlite_url(temp_dir):
    """URL of a SQLite database seeded with a person table."""
    url = f"sqlite:///{temp_dir / 'test.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE person (id INTEGER PRIMARY KEY, name TEXT)"))
        conn.execute(
            text("INSERT INTO person (id, name) VALUES (:id, :name)"),
            [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
        )
    engine.dispose()
    return url


@pytest.fixture
def sqlite_config(sqlite_url) -> ConnectionConfig:
    """ConnectionConfig for the seeded SQLite database."""
    return ConnectionConfig.from_driver("sqlite", sqlite_url)


@pytest.fixture
def recording_data_source() -> RecordingDataSource:
    return RecordingDataSource()


@pytest.fixture
def mock_config(recording_data_source) -> ConnectionConfig:
    """ConnectionConfig whose connections are mocks."""
    return ConnectionConfig(data_source=recording_data_source)


@pytest.fixture
def data_source_factory():
    """Build RecordingDataSource instances with custom behaviour."""
    return RecordingDataSource


@pytest.fixture
def fetch_people():
    """Read the person table directly, outside of the connectors."""

    def fetch(url: str) -> list[tuple]:
        engine = create_engine(url)
        try:
            with engine.connect() as conn:
                rows = conn.execute(text("SELECT id, name FROM person ORDER BY id"))
                return [tuple(row) for row in rows]
        finally:
            engine.dispose()

    return fetch
