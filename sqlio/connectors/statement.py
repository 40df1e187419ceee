"""Prepared statement handle handed to parameter setters."""

from typing import Any

from sqlalchemy.engine import Connection


class PreparedStatement:
    """A statement template bound to one connection, with a pending batch.

    Positions are 1-based and follow the order of the placeholders in the
    template, which uses the driver's DB-API paramstyle (``?`` for sqlite,
    ``%s`` for psycopg2). Bound parameter sets accumulate client side until
    ``execute_batch()`` sends them in one ``executemany`` round trip.
    """

    def __init__(self, connection: Connection, sql: str):
        self._connection = connection
        self._sql = sql
        self._parameters: dict[int, Any] = {}
        self._batch: list[tuple[Any, ...]] = []
        self._closed = False

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def pending(self) -> int:
        """Number of parameter sets waiting in the batch."""
        return len(self._batch)

    @property
    def closed(self) -> bool:
        return self._closed

    def set_parameter(self, position: int, value: Any) -> None:
        self._check_open()
        if position < 1:
            raise IndexError(f"Parameter positions start at 1, got {position}")
        self._parameters[position] = value

    def set_parameters(self, *values: Any) -> None:
        """Bind ``values`` to positions 1..n."""
        for position, value in enumerate(values, start=1):
            self.set_parameter(position, value)

    def clear_parameters(self) -> None:
        self._parameters.clear()

    def add_batch(self) -> None:
        """Append the currently bound parameters to the batch.

        Raises:
            ValueError: If a position below the highest bound one is unbound.
        """
        self._check_open()
        count = max(self._parameters, default=0)
        missing = [p for p in range(1, count + 1) if p not in self._parameters]
        if missing:
            raise ValueError(f"Parameters not bound at positions {missing}")
        self._batch.append(tuple(self._parameters[p] for p in range(1, count + 1)))

    def clear_batch(self) -> None:
        self._batch.clear()

    def execute_batch(self) -> int:
        """Send every pending parameter set and empty the batch.

        Returns:
            The number of parameter sets sent.
        """
        self._check_open()
        if not self._batch:
            return 0
        batch = list(self._batch)
        self._connection.exec_driver_sql(self._sql, batch)
        self._batch.clear()
        return len(batch)

    def close(self) -> None:
        self._parameters.clear()
        self._batch.clear()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("PreparedStatement is closed")
