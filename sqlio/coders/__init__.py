"""Binary coders."""

from sqlio.coders.base import (
    BytesCoder,
    Coder,
    PickleCoder,
    StrUtf8Coder,
    TupleCoder,
    VarIntCoder,
)
from sqlio.coders.pair import PairCodec, RestrictionPair

__all__ = [
    "Coder",
    "BytesCoder",
    "PickleCoder",
    "StrUtf8Coder",
    "TupleCoder",
    "VarIntCoder",
    "PairCodec",
    "RestrictionPair",
]
