"""Coder for (element, restriction) pairs used when splitting work."""

from dataclasses import dataclass
from typing import Any, BinaryIO, Optional

from sqlio.coders.base import Coder
from sqlio.core.exceptions import DecodeError, EncodeError


@dataclass(frozen=True)
class RestrictionPair:
    """An element together with the restriction describing its share of work."""

    element: Any
    restriction: Any

    def __post_init__(self):
        if self.element is None:
            raise ValueError("element cannot be None")
        if self.restriction is None:
            raise ValueError("restriction cannot be None")


class PairCodec(Coder):
    """Encodes a ``RestrictionPair`` with two independent sub-coders.

    Wire form: the element in nested (self-delimiting) form, followed by the
    restriction in the context of the pair itself. Decoding reads them back in
    the same order and with the same contexts; a decoder that disagrees on
    which part is nested misreads the boundary instead of failing.
    """

    def __init__(self, element_coder: Coder, restriction_coder: Coder):
        self.element_coder = element_coder
        self.restriction_coder = restriction_coder

    def encode(
        self, value: Optional[RestrictionPair], stream: BinaryIO, nested: bool = False
    ) -> None:
        if value is None:
            raise EncodeError("cannot encode a null RestrictionPair")
        self.element_coder.encode(value.element, stream, nested=True)
        self.restriction_coder.encode(value.restriction, stream, nested=nested)

    def decode(self, stream: BinaryIO, nested: bool = False) -> RestrictionPair:
        element = self.element_coder.decode(stream, nested=True)
        restriction = self.restriction_coder.decode(stream, nested=nested)
        try:
            return RestrictionPair(element, restriction)
        except ValueError as e:
            raise DecodeError(f"Decoded an incomplete RestrictionPair: {e}") from e

    def __hash__(self) -> int:
        return hash((self.element_coder, self.restriction_coder))

    def __repr__(self) -> str:
        return f"PairCodec({self.element_coder!r}, {self.restriction_coder!r})"
