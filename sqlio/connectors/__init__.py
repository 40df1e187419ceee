"""Read and write connectors for relational databases."""

from sqlio.connectors.base import Connector
from sqlio.connectors.read import AssignRandomKeyFn, ReadConnector, ReadFn, break_fusion
from sqlio.connectors.statement import PreparedStatement
from sqlio.connectors.write import WriteConnector, WriteFn

__all__ = [
    "Connector",
    "ReadConnector",
    "ReadFn",
    "AssignRandomKeyFn",
    "break_fusion",
    "WriteConnector",
    "WriteFn",
    "PreparedStatement",
]
