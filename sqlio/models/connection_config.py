"""Transportable description of how to obtain a database connection."""

import atexit
import logging
import pickle
import threading
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError

from sqlio.core.exceptions import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)


@runtime_checkable
class DataSource(Protocol):
    """Anything that hands out SQLAlchemy connections.

    Implementations are shipped to workers, so they must be picklable and must
    not carry live connections across the pickle boundary.
    """

    def get_connection(
        self, username: Optional[str] = None, password: Optional[str] = None
    ) -> Connection:
        ...


class PooledDataSource:
    """Data source backed by a SQLAlchemy engine and its connection pool.

    Engines are created lazily, one per credential set, so an instance can be
    built on the driver side and pickled to workers without holding any
    connection.
    """

    DEFAULT_ENGINE_OPTIONS: dict[str, Any] = {"pool_pre_ping": True}

    def __init__(self, url: str | URL, **engine_options: Any):
        self._url = make_url(url)
        self._engine_options = {**self.DEFAULT_ENGINE_OPTIONS, **engine_options}
        self._engines: dict[tuple[Optional[str], Optional[str]], Engine] = {}
        self._lock = threading.Lock()

    @property
    def url(self) -> URL:
        return self._url

    def get_connection(
        self, username: Optional[str] = None, password: Optional[str] = None
    ) -> Connection:
        return self._get_engine(username, password).connect()

    def _get_engine(self, username: Optional[str], password: Optional[str]) -> Engine:
        key = (username, password)
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                url = self._url
                if username is not None:
                    url = url.set(username=username, password=password)
                engine = create_engine(url, **self._engine_options)
                self._engines[key] = engine
        return engine

    def dispose(self) -> None:
        """Close every pooled connection held by this data source."""
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()

    def __getstate__(self) -> dict[str, Any]:
        return {"_url": self._url, "_engine_options": self._engine_options}

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._engines = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"PooledDataSource({self._url.render_as_string(hide_password=True)!r})"


_SHARED_DATA_SOURCES: dict[str, PooledDataSource] = {}
_SHARED_DATA_SOURCES_LOCK = threading.Lock()


def _shared_data_source(url: URL) -> PooledDataSource:
    """Return the process-wide pooled data source for ``url``."""
    key = url.render_as_string(hide_password=False)
    with _SHARED_DATA_SOURCES_LOCK:
        data_source = _SHARED_DATA_SOURCES.get(key)
        if data_source is None:
            data_source = PooledDataSource(url)
            _SHARED_DATA_SOURCES[key] = data_source
    return data_source


def dispose_shared_data_sources() -> None:
    """Dispose the pools created for driver/url configurations."""
    with _SHARED_DATA_SOURCES_LOCK:
        for data_source in _SHARED_DATA_SOURCES.values():
            data_source.dispose()
        _SHARED_DATA_SOURCES.clear()


atexit.register(dispose_shared_data_sources)


class ConnectionConfig(BaseModel):
    """How to obtain a database connection.

    Either a pre-built ``data_source`` handle or a ``driver_class_name`` and
    ``url`` pair. When both are present the handle wins. The config never
    holds a live connection; ``acquire()`` opens a new one on every call.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    driver_class_name: Optional[str] = Field(
        default=None,
        description="SQLAlchemy driver name (e.g. 'sqlite', 'postgresql+psycopg2')",
    )
    url: Optional[str] = Field(
        default=None,
        description="Database URL; its driver part is replaced by driver_class_name",
    )
    username: Optional[str] = Field(default=None, description="Database user")
    password: Optional[SecretStr] = Field(default=None, description="Database password")
    data_source: Optional[Any] = Field(
        default=None, description="Pre-built DataSource handle, takes precedence"
    )

    @classmethod
    def from_data_source(
        cls,
        data_source: DataSource,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> "ConnectionConfig":
        """Create a config around a pre-built data source handle.

        Raises:
            ConfigurationError: If the handle is missing, has no
                ``get_connection()`` or cannot be pickled.
        """
        if data_source is None:
            raise ConfigurationError("data_source is required")
        if not isinstance(data_source, DataSource):
            raise ConfigurationError(
                "data_source must provide get_connection()",
                context={"type": type(data_source).__name__},
            )
        try:
            pickle.dumps(data_source)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise ConfigurationError(
                "data_source must be picklable to reach remote workers",
                context={"type": type(data_source).__name__, "error": str(e)},
            ) from e
        return cls(data_source=data_source, username=username, password=password)

    @classmethod
    def from_driver(
        cls,
        driver_class_name: str,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> "ConnectionConfig":
        """Create a config from a driver name and URL.

        Raises:
            ConfigurationError: If driver_class_name or url is missing.
        """
        config = cls(
            driver_class_name=driver_class_name,
            url=url,
            username=username,
            password=password,
        )
        config.validate_config()
        return config

    def validate_config(self) -> None:
        """Check that one of the two connection forms is populated.

        Raises:
            ConfigurationError: Listing the missing fields.
        """
        if self.data_source is not None:
            return
        missing = [
            name for name in ("driver_class_name", "url") if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                "Connection config needs a data_source or a driver_class_name and url",
                context={"missing": missing},
            )

    def acquire(self) -> Connection:
        """Open a new connection.

        Returns:
            A SQLAlchemy connection owned by the caller, who must close it.

        Raises:
            DatabaseConnectionError: If neither form is usable, the URL is
                invalid, the database is unreachable or authentication fails.
        """
        password = self.password.get_secret_value() if self.password else None

        if self.data_source is not None:
            data_source = self.data_source
            args: tuple = () if self.username is None else (self.username, password)
        elif self.driver_class_name and self.url:
            data_source = _shared_data_source(self._build_url())
            args = ()
        else:
            raise DatabaseConnectionError(
                "Connection config has neither a data source nor a driver and url"
            )

        try:
            connection = data_source.get_connection(*args)
        except DatabaseConnectionError:
            raise
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to acquire database connection: {e}",
                context=self.display_data(),
            ) from e

        logger.debug("Acquired database connection", extra={"context": self.display_data()})
        return connection

    def _build_url(self) -> URL:
        try:
            url = make_url(self.url)
        except ArgumentError as e:
            raise DatabaseConnectionError(
                f"Invalid database url: {e}",
                context={"driver_class_name": self.driver_class_name},
            ) from e
        url = url.set(drivername=self.driver_class_name)
        if self.username is not None:
            url = url.set(
                username=self.username,
                password=self.password.get_secret_value() if self.password else None,
            )
        return url

    def _masked_url(self) -> Optional[str]:
        if self.url is None:
            return None
        try:
            return make_url(self.url).render_as_string(hide_password=True)
        except ArgumentError:
            return "<invalid url>"

    def display_data(self) -> dict[str, str]:
        """Describe the connection for diagnostics. Never includes the password."""
        if self.data_source is not None:
            source_type = type(self.data_source)
            return {"data_source": f"{source_type.__module__}.{source_type.__qualname__}"}
        data = {
            "driver_class_name": self.driver_class_name,
            "url": self._masked_url(),
            "username": self.username,
        }
        return {key: value for key, value in data.items() if value is not None}
