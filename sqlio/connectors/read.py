"""Read connector: one query per invocation, rows mapped to typed records."""

import logging
import random
from typing import Any, Callable, Iterable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Connection, Row
from sqlalchemy.exc import SQLAlchemyError

from sqlio.coders.base import Coder
from sqlio.connectors.base import qualified_name, require_picklable
from sqlio.core.engine import HostEngine, LocalEngine
from sqlio.core.exceptions import ConfigurationError, QueryExecutionError, RowMappingError
from sqlio.core.worker import WorkerFn, WorkerState
from sqlio.models.connection_config import ConnectionConfig

logger = logging.getLogger(__name__)

RowMapper = Callable[[Row], Any]


class ReadConnector(BaseModel):
    """Reads the result of a SQL query as a collection of records.

    Each ``with_*`` method returns a new connector; instances are immutable
    and safe to share between workers.

    Example:
        def map_person(row):
            return (row.id, row.name)

        records = (
            ReadConnector()
            .with_connection_config(ConnectionConfig.from_driver("sqlite", url))
            .with_query("select id, name from person")
            .with_row_mapper(map_person)
            .with_coder(TupleCoder([VarIntCoder(), StrUtf8Coder()]))
            .expand()
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    connection_config: Optional[ConnectionConfig] = Field(
        default=None, description="How workers obtain their connection"
    )
    query: Optional[str] = Field(default=None, description="SQL query to execute")
    row_mapper: Optional[RowMapper] = Field(
        default=None, description="Maps one result row to a record"
    )
    coder: Optional[Coder] = Field(
        default=None, description="Coder for records moving between workers"
    )

    def with_connection_config(self, connection_config: ConnectionConfig) -> "ReadConnector":
        return self.model_copy(update={"connection_config": connection_config})

    def with_query(self, query: str) -> "ReadConnector":
        return self.model_copy(update={"query": query})

    def with_row_mapper(self, row_mapper: RowMapper) -> "ReadConnector":
        """Set the row mapper. It must be picklable, such as a module-level function."""
        return self.model_copy(update={"row_mapper": row_mapper})

    def with_coder(self, coder: Coder) -> "ReadConnector":
        return self.model_copy(update={"coder": coder})

    def validate_config(self) -> None:
        """Check that every required field is set.

        Raises:
            ConfigurationError: Listing the missing fields, or if the row mapper
                cannot be pickled.
        """
        missing = [
            name
            for name in ("query", "row_mapper", "coder", "connection_config")
            if getattr(self, name) is None
        ]
        if missing:
            raise ConfigurationError(
                "ReadConnector is missing required configuration",
                context={"missing": missing},
            )
        require_picklable("ReadConnector", "row_mapper", self.row_mapper)

    def display_data(self) -> dict[str, str]:
        data: dict[str, str] = {}
        if self.query is not None:
            data["query"] = self.query
        if self.row_mapper is not None:
            data["row_mapper"] = qualified_name(self.row_mapper)
        if self.coder is not None:
            data["coder"] = qualified_name(type(self.coder))
        if self.connection_config is not None:
            data.update(self.connection_config.display_data())
        return data

    def expand(self, engine: Optional[HostEngine] = None) -> list[Any]:
        """Run the query on ``engine`` and return the mapped records.

        The order of the returned records is not specified.

        Raises:
            ConfigurationError: Before any connection attempt, if the connector
                is incomplete.
        """
        self.validate_config()
        engine = engine or LocalEngine()
        logger.info("Reading from database", extra={"context": self.display_data()})

        records = engine.par_do(engine.create([self.query]), ReadFn(self))
        return break_fusion(engine, records, self.coder)


def break_fusion(engine: HostEngine, records: Iterable[Any], coder: Coder) -> list[Any]:
    """Insert a grouping step so later stages are not fused onto the scan.

    Engines that fuse consecutive element-wise stages would otherwise run the
    whole downstream pipeline on the single worker that executed the query.
    Records are keyed with random integers, grouped and flattened again; only
    scheduling changes, never the records themselves.
    """
    keyed = engine.par_do(records, AssignRandomKeyFn())
    groups = engine.group_by_key(keyed, value_coder=coder)
    return engine.flatten(values for _, values in groups)


class ReadFn(WorkerFn):
    """Executes a query on the worker's connection and maps every row."""

    def __init__(self, connector: ReadConnector):
        super().__init__()
        self._connector = connector
        self._connection: Optional[Connection] = None

    def setup(self) -> None:
        self._connection = self._connector.connection_config.acquire()
        self.state = WorkerState.READY
        logger.debug("Read worker ready", extra={"worker": self.name})

    def process(self, query: str) -> Iterator[Any]:
        try:
            result = self._connection.exec_driver_sql(
                query, execution_options={"stream_results": True}
            )
        except SQLAlchemyError as e:
            self._end_transaction()
            raise QueryExecutionError(
                f"Failed to execute query: {e}", context={"query": query}
            ) from e

        row_number = 0
        try:
            for row in result:
                row_number += 1
                try:
                    record = self._connector.row_mapper(row)
                except Exception as e:
                    raise RowMappingError(
                        f"Row mapper failed: {e}",
                        context={"row_number": row_number, "query": query},
                    ) from e
                self.metrics.record_row_read()
                yield record
        except SQLAlchemyError as e:
            raise QueryExecutionError(
                f"Failed to fetch query results: {e}",
                context={"row_number": row_number, "query": query},
            ) from e
        finally:
            result.close()
            self._end_transaction()

        logger.debug(f"Read {row_number} rows", extra={"worker": self.name})

    def _end_transaction(self) -> None:
        if self._connection is not None and self._connection.in_transaction():
            self._connection.rollback()

    def teardown(self) -> None:
        if self.state is WorkerState.CLOSED:
            return
        connection, self._connection = self._connection, None
        self.state = WorkerState.CLOSED
        if connection is not None:
            connection.close()
            logger.debug("Read worker closed its connection", extra={"worker": self.name})

    def _transient_fields(self) -> tuple[str, ...]:
        return ("_connection",)


class AssignRandomKeyFn(WorkerFn):
    """Pairs every element with a uniformly random 32-bit key."""

    def __init__(self):
        super().__init__()
        self._random: Optional[random.Random] = None

    def setup(self) -> None:
        # Seeded from OS entropy, independently on every worker.
        self._random = random.Random()
        self.state = WorkerState.READY

    def process(self, element: Any) -> list[tuple[int, Any]]:
        return [(self._random.randint(-(2**31), 2**31 - 1), element)]

    def teardown(self) -> None:
        self._random = None
        self.state = WorkerState.CLOSED

    def _transient_fields(self) -> tuple[str, ...]:
        return ("_random",)
