"""CLI command for running a query through a ReadConnector."""

import json
import sys
from typing import Any

import click
from sqlalchemy.engine import Row

from sqlio import from_yaml
from sqlio.api import read
from sqlio.cli.commands import parse_cli_vars
from sqlio.coders.base import PickleCoder
from sqlio.core.engine import LocalEngine
from sqlio.core.exceptions import SqlIOError


def row_to_dict(row: Row) -> dict[str, Any]:
    return dict(row._mapping)


@click.command()
@click.argument("config_path", type=click.Path(exists=True))
@click.argument("sql")
@click.option(
    "--vars",
    multiple=True,
    help="CLI variables in key=value format (can be used multiple times)",
)
@click.option("--workers", default=1, show_default=True, type=click.IntRange(min=1))
def query(config_path: str, sql: str, vars: tuple, workers: int):
    """Run SQL and print one JSON object per row.

    Row order is not preserved.

    Examples:

        sqlio query connection.yaml "select id, name from person"
    """
    cli_vars = parse_cli_vars(vars)

    try:
        config = from_yaml(config_path, cli_vars=cli_vars or None)
        records = (
            read()
            .with_connection_config(config)
            .with_query(sql)
            .with_row_mapper(row_to_dict)
            .with_coder(PickleCoder())
            .expand(LocalEngine(num_workers=workers))
        )
    except SqlIOError as e:
        click.echo(f"✗ Query failed: {e}", err=True)
        sys.exit(1)

    for record in records:
        click.echo(json.dumps(record, default=str))
