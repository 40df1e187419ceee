"""Copy a table between two SQLite databases.

Seeds a source database, reads it with a ReadConnector and upserts the
records into a target database with a WriteConnector.
"""

from __future__ import annotations

import argparse
import tempfile
from pathlib import Path

from sqlalchemy import create_engine, text

from sqlio import ConnectionConfig, LocalEngine, StrUtf8Coder, TupleCoder, VarIntCoder, read, write
from sqlio.core.logging import configure_logging

CREATE_PERSON = "CREATE TABLE IF NOT EXISTS person (id INTEGER PRIMARY KEY, name TEXT)"


def map_person(row) -> tuple[int, str]:
    return (row.id, row.name)


def set_person(person: tuple[int, str], statement) -> None:
    statement.set_parameters(*person)


def seed(url: str, count: int) -> None:
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text(CREATE_PERSON))
        conn.execute(
            text("INSERT OR REPLACE INTO person (id, name) VALUES (:id, :name)"),
            [{"id": i, "name": f"person-{i}"} for i in range(1, count + 1)],
        )
    engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Copy the person table between SQLite files")
    parser.add_argument("--rows", type=int, default=2500, help="Rows to seed")
    parser.add_argument("--workers", type=int, default=2, help="Workers per stage")
    args = parser.parse_args()

    configure_logging(level="INFO")

    with tempfile.TemporaryDirectory() as tmpdir:
        source_url = f"sqlite:///{Path(tmpdir) / 'source.db'}"
        target_url = f"sqlite:///{Path(tmpdir) / 'target.db'}"
        seed(source_url, args.rows)
        seed(target_url, 0)

        engine = LocalEngine(num_workers=args.workers)
        people = (
            read()
            .with_connection_config(ConnectionConfig.from_driver("sqlite", source_url))
            .with_query("select id, name from person")
            .with_row_mapper(map_person)
            .with_coder(TupleCoder([VarIntCoder(), StrUtf8Coder()]))
            .expand(engine)
        )

        metrics = (
            write()
            .with_connection_config(ConnectionConfig.from_driver("sqlite", target_url))
            .with_statement("insert or replace into person (id, name) values (?, ?)")
            .with_parameter_setter(set_person)
            .with_batch_size(500)
            .expand(people, engine)
        )

        for worker in metrics:
            print(worker.get_summary())


if __name__ == "__main__":
    main()
