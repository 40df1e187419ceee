"""Main CLI entry point for sqlio."""

import click

from sqlio import __version__
from sqlio.cli.commands.query import query
from sqlio.cli.commands.test_connection import test_connection
from sqlio.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
def main(log_level: str, json_logs: bool):
    """sqlio - relational database connectors for batch pipelines."""
    configure_logging(level=log_level, json_format=json_logs)


main.add_command(test_connection)
main.add_command(query)


if __name__ == "__main__":
    main()
