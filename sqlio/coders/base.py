"""Binary coders for values that travel between workers.

Every coder can write a value in one of two contexts:

- nested: the value is followed by other bytes, so the encoding must be
  self-delimiting;
- outer: the value is the last thing in the enclosing buffer, so it may run
  to the end of the stream without a length prefix.

A decoder must be called with the same context the value was encoded with.
"""

import io
import pickle
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Sequence

from sqlio.core.exceptions import DecodeError, EncodeError

_UINT64_MASK = (1 << 64) - 1


class Coder(ABC):
    """Encodes values of one type to bytes and back."""

    @abstractmethod
    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        ...

    @abstractmethod
    def decode(self, stream: BinaryIO, nested: bool = False) -> Any:
        ...

    def encode_to_bytes(self, value: Any, nested: bool = False) -> bytes:
        buffer = io.BytesIO()
        self.encode(value, buffer, nested)
        return buffer.getvalue()

    def decode_from_bytes(self, data: bytes, nested: bool = False) -> Any:
        return self.decode(io.BytesIO(data), nested)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise DecodeError(
            "Unexpected end of stream",
            context={"expected": size, "available": len(data)},
        )
    return data


def write_varint(value: int, stream: BinaryIO) -> None:
    """Write an unsigned integer as a little-endian base-128 varint."""
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            break
    stream.write(bytes(out))


def read_varint(stream: BinaryIO) -> int:
    """Read an unsigned little-endian base-128 varint."""
    result = 0
    shift = 0
    while True:
        byte = _read_exact(stream, 1)[0]
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result
        shift += 7
        if shift > 63:
            raise DecodeError("Varint is longer than 64 bits")


class VarIntCoder(Coder):
    """Signed 64-bit integers as varints of their two's-complement value.

    Varints are self-delimiting, so both contexts share one encoding.
    """

    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeError(
                "VarIntCoder can only encode integers",
                context={"type": type(value).__name__},
            )
        if not -(1 << 63) <= value < (1 << 63):
            raise EncodeError("Integer out of 64-bit range", context={"value": value})
        write_varint(value & _UINT64_MASK, stream)

    def decode(self, stream: BinaryIO, nested: bool = False) -> int:
        value = read_varint(stream)
        if value >= 1 << 63:
            value -= 1 << 64
        return value


class BytesCoder(Coder):
    """Byte strings; length-prefixed when nested, raw when outer."""

    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise EncodeError(
                "BytesCoder can only encode bytes",
                context={"type": type(value).__name__},
            )
        if nested:
            write_varint(len(value), stream)
        stream.write(bytes(value))

    def decode(self, stream: BinaryIO, nested: bool = False) -> bytes:
        if nested:
            return _read_exact(stream, read_varint(stream))
        return stream.read()


class StrUtf8Coder(Coder):
    """Text as UTF-8, framed like ``BytesCoder``."""

    _bytes = BytesCoder()

    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        if not isinstance(value, str):
            raise EncodeError(
                "StrUtf8Coder can only encode str",
                context={"type": type(value).__name__},
            )
        self._bytes.encode(value.encode("utf-8"), stream, nested)

    def decode(self, stream: BinaryIO, nested: bool = False) -> str:
        data = self._bytes.decode(stream, nested)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 data: {e}") from e


class PickleCoder(Coder):
    """Any picklable value, framed like ``BytesCoder``."""

    _bytes = BytesCoder()

    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        try:
            payload = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise EncodeError(
                f"Value cannot be pickled: {e}",
                context={"type": type(value).__name__},
            ) from e
        self._bytes.encode(payload, stream, nested)

    def decode(self, stream: BinaryIO, nested: bool = False) -> Any:
        payload = self._bytes.decode(stream, nested)
        try:
            return pickle.loads(payload)
        except (pickle.UnpicklingError, EOFError, ValueError) as e:
            raise DecodeError(f"Invalid pickle payload: {e}") from e


class TupleCoder(Coder):
    """Fixed-length tuples, one coder per position.

    Every component except the last is written nested; the last one inherits
    the context of the tuple itself.
    """

    def __init__(self, components: Sequence[Coder]):
        if not components:
            raise ValueError("TupleCoder needs at least one component coder")
        self.components = tuple(components)

    def encode(self, value: Any, stream: BinaryIO, nested: bool = False) -> None:
        if not isinstance(value, tuple) or len(value) != len(self.components):
            raise EncodeError(
                f"TupleCoder expects a tuple of length {len(self.components)}",
                context={"type": type(value).__name__},
            )
        last = len(self.components) - 1
        for index, (coder, item) in enumerate(zip(self.components, value)):
            coder.encode(item, stream, nested if index == last else True)

    def decode(self, stream: BinaryIO, nested: bool = False) -> tuple:
        last = len(self.components) - 1
        return tuple(
            coder.decode(stream, nested if index == last else True)
            for index, coder in enumerate(self.components)
        )

    def __hash__(self) -> int:
        return hash(self.components)

    def __repr__(self) -> str:
        return f"TupleCoder({list(self.components)!r})"
