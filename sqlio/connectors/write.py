"""Write connector: records bound into batched, committed statements."""

import logging
import time
from typing import Any, Callable, ClassVar, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from sqlio.connectors.base import qualified_name, require_picklable
from sqlio.connectors.statement import PreparedStatement
from sqlio.core.engine import HostEngine, LocalEngine
from sqlio.core.exceptions import (
    BatchExecutionError,
    ConfigurationError,
    ParameterBindError,
)
from sqlio.core.metrics import WorkerMetrics
from sqlio.core.worker import WorkerFn, WorkerState
from sqlio.models.connection_config import ConnectionConfig

logger = logging.getLogger(__name__)

ParameterSetter = Callable[[Any, PreparedStatement], None]


class WriteConnector(BaseModel):
    """Writes records by binding each one into a prepared statement.

    Statements are sent and committed in batches of ``batch_size``; whatever
    is left is flushed when a bundle ends. A failed bundle is retried as a
    whole by the host engine, so the statement should be an upsert rather
    than a plain insert.

    Example:
        def set_person(person, statement):
            statement.set_parameters(person.id, person.name)

        (
            WriteConnector()
            .with_connection_config(config)
            .with_statement("insert or replace into person values (?, ?)")
            .with_parameter_setter(set_person)
            .expand(people)
        )
    """

    DEFAULT_BATCH_SIZE: ClassVar[int] = 1000

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    connection_config: Optional[ConnectionConfig] = Field(
        default=None, description="How workers obtain their connection"
    )
    statement: Optional[str] = Field(
        default=None, description="Statement template with positional placeholders"
    )
    parameter_setter: Optional[ParameterSetter] = Field(
        default=None, description="Binds one record onto the prepared statement"
    )
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE, ge=1, description="Statements per commit"
    )

    def with_connection_config(self, connection_config: ConnectionConfig) -> "WriteConnector":
        return self.model_copy(update={"connection_config": connection_config})

    def with_statement(self, statement: str) -> "WriteConnector":
        return self.model_copy(update={"statement": statement})

    def with_parameter_setter(self, parameter_setter: ParameterSetter) -> "WriteConnector":
        """Set the parameter setter. It must be picklable, such as a module-level function."""
        return self.model_copy(update={"parameter_setter": parameter_setter})

    def with_batch_size(self, batch_size: int) -> "WriteConnector":
        if batch_size < 1:
            raise ConfigurationError(
                "batch_size must be at least 1", context={"batch_size": batch_size}
            )
        return self.model_copy(update={"batch_size": batch_size})

    def validate_config(self) -> None:
        """Check that every required field is set.

        Raises:
            ConfigurationError: Listing the missing fields, or if the parameter
                setter cannot be pickled.
        """
        missing = [
            name
            for name in ("statement", "parameter_setter", "connection_config")
            if getattr(self, name) is None
        ]
        if missing:
            raise ConfigurationError(
                "WriteConnector is missing required configuration",
                context={"missing": missing},
            )
        require_picklable("WriteConnector", "parameter_setter", self.parameter_setter)

    def display_data(self) -> dict[str, str]:
        data: dict[str, str] = {"batch_size": str(self.batch_size)}
        if self.statement is not None:
            data["statement"] = self.statement
        if self.parameter_setter is not None:
            data["parameter_setter"] = qualified_name(self.parameter_setter)
        if self.connection_config is not None:
            data.update(self.connection_config.display_data())
        return data

    def expand(
        self, elements: Iterable[Any], engine: Optional[HostEngine] = None
    ) -> list[WorkerMetrics]:
        """Write ``elements`` using ``engine``.

        Returns:
            Metrics of the workers that ran, when the engine reports them.

        Raises:
            ConfigurationError: Before any connection attempt, if the connector
                is incomplete.
        """
        self.validate_config()
        engine = engine or LocalEngine()
        logger.info("Writing to database", extra={"context": self.display_data()})

        engine.par_do(elements, WriteFn(self))
        return list(getattr(engine, "worker_metrics", []))


class WriteFn(WorkerFn):
    """Buffers bound statements and flushes them in committed batches.

    States: UNINITIALIZED -> READY (setup) -> ACCUMULATING -> FLUSHING ->
    READY ... -> CLOSED (teardown, entered once).
    """

    def __init__(self, connector: WriteConnector):
        super().__init__()
        self._connector = connector
        self._connection: Optional[Connection] = None
        self._statement: Optional[PreparedStatement] = None
        self._batch_count = 0

    @property
    def batch_count(self) -> int:
        """Elements bound since the last flush."""
        return self._batch_count

    def setup(self) -> None:
        self._connection = self._connector.connection_config.acquire()
        self._disable_autocommit()
        self._statement = PreparedStatement(self._connection, self._connector.statement)
        self.state = WorkerState.READY
        logger.debug("Write worker ready", extra={"worker": self.name})

    def _disable_autocommit(self) -> None:
        isolation_level = self._connection.get_execution_options().get("isolation_level")
        if isolation_level == "AUTOCOMMIT":
            self._connection.execution_options(
                isolation_level=self._connection.default_isolation_level
            )

    def start_bundle(self) -> None:
        self._batch_count = 0
        # Entries left behind by a failed bundle were never sent; the replay re-binds them.
        self._statement.clear_batch()
        if self._connection.in_transaction():
            self._connection.rollback()
        self.state = WorkerState.READY

    def process(self, element: Any) -> None:
        self._statement.clear_parameters()
        try:
            self._connector.parameter_setter(element, self._statement)
            self._statement.add_batch()
        except Exception as e:
            raise ParameterBindError(
                f"Failed to bind parameters: {e}",
                context={"pending": self._batch_count},
            ) from e

        self._batch_count += 1
        self.state = WorkerState.ACCUMULATING
        if self._batch_count >= self._connector.batch_size:
            self._flush()

    def finish_bundle(self) -> None:
        self._flush()

    def _flush(self) -> None:
        if self._batch_count > 0:
            self.state = WorkerState.FLUSHING
            flush_start = time.time()
            try:
                sent = self._statement.execute_batch()
                self._connection.commit()
            except SQLAlchemyError as e:
                self._rollback_quietly()
                raise BatchExecutionError(
                    f"Failed to execute batch: {e}",
                    context={"batch_count": self._batch_count},
                ) from e
            self.metrics.record_flush(sent, time.time() - flush_start)
            logger.debug(
                f"Committed batch of {sent} statements", extra={"worker": self.name}
            )
            self._batch_count = 0
        self.state = WorkerState.READY

    def _rollback_quietly(self) -> None:
        try:
            self._connection.rollback()
        except SQLAlchemyError:
            logger.warning(
                "Rollback after failed batch also failed",
                extra={"worker": self.name},
                exc_info=True,
            )

    def teardown(self) -> None:
        """Close the statement, then the connection.

        The connection is closed even if closing the statement fails; the first
        failure is raised once both steps ran.
        """
        if self.state is WorkerState.CLOSED:
            return
        self.state = WorkerState.CLOSED

        statement, self._statement = self._statement, None
        connection, self._connection = self._connection, None
        errors: list[Exception] = []

        if statement is not None:
            try:
                statement.close()
            except Exception as e:
                logger.warning("Failed to close statement", extra={"worker": self.name})
                errors.append(e)

        if connection is not None:
            try:
                connection.close()
            except Exception as e:
                logger.warning("Failed to close connection", extra={"worker": self.name})
                errors.append(e)

        logger.debug("Write worker closed", extra={"worker": self.name})
        if errors:
            raise errors[0]

    def _transient_fields(self) -> tuple[str, ...]:
        return ("_connection", "_statement")
