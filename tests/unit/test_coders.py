"""Unit tests for the primitive coders."""

import io

import pytest

from sqlio.coders.base import BytesCoder, PickleCoder, StrUtf8Coder, TupleCoder, VarIntCoder
from sqlio.core.exceptions import DecodeError, EncodeError


class TestVarIntCoder:
    """Tests for VarIntCoder."""

    @pytest.mark.parametrize("value", [0, 1, 127, 128, 300, -1, -(2**63), 2**63 - 1])
    def test_round_trip(self, value):
        coder = VarIntCoder()
        assert coder.decode_from_bytes(coder.encode_to_bytes(value)) == value

    def test_small_values_are_one_byte(self):
        assert VarIntCoder().encode_to_bytes(5) == b"\x05"
        assert VarIntCoder().encode_to_bytes(128) == b"\x80\x01"

    def test_negative_uses_ten_bytes(self):
        assert len(VarIntCoder().encode_to_bytes(-1)) == 10

    def test_rejects_non_integers(self):
        with pytest.raises(EncodeError):
            VarIntCoder().encode_to_bytes("1")
        with pytest.raises(EncodeError):
            VarIntCoder().encode_to_bytes(True)

    def test_rejects_out_of_range(self):
        with pytest.raises(EncodeError):
            VarIntCoder().encode_to_bytes(2**63)

    def test_truncated_varint(self):
        with pytest.raises(DecodeError):
            VarIntCoder().decode_from_bytes(b"\x80")


class TestBytesCoder:
    """Tests for BytesCoder contexts."""

    def test_outer_reads_to_end(self):
        assert BytesCoder().encode_to_bytes(b"abc") == b"abc"
        assert BytesCoder().decode_from_bytes(b"abc") == b"abc"

    def test_nested_is_length_prefixed(self):
        stream = io.BytesIO()
        BytesCoder().encode(b"abc", stream, nested=True)
        BytesCoder().encode(b"de", stream, nested=True)
        stream.seek(0)

        assert BytesCoder().decode(stream, nested=True) == b"abc"
        assert BytesCoder().decode(stream, nested=True) == b"de"

    def test_rejects_str(self):
        with pytest.raises(EncodeError):
            BytesCoder().encode_to_bytes("abc")


class TestStrUtf8Coder:
    def test_round_trip(self):
        coder = StrUtf8Coder()
        assert coder.decode_from_bytes(coder.encode_to_bytes("Zoë"), nested=False) == "Zoë"

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError):
            StrUtf8Coder().decode_from_bytes(b"\xff\xfe")


class TestPickleCoder:
    def test_round_trip(self):
        coder = PickleCoder()
        value = {"id": 1, "tags": ["a", "b"]}
        assert coder.decode_from_bytes(coder.encode_to_bytes(value, nested=True), nested=True) == value

    def test_unpicklable_value(self):
        with pytest.raises(EncodeError):
            PickleCoder().encode_to_bytes(lambda: None)

    def test_garbage_payload(self):
        with pytest.raises(DecodeError):
            PickleCoder().decode_from_bytes(b"not a pickle")


class TestTupleCoder:
    """Tests for TupleCoder."""

    def test_round_trip(self):
        coder = TupleCoder([VarIntCoder(), StrUtf8Coder()])
        assert coder.decode_from_bytes(coder.encode_to_bytes((1, "Alice"))) == (1, "Alice")

    def test_last_component_uses_outer_context(self):
        coder = TupleCoder([StrUtf8Coder(), StrUtf8Coder()])
        assert coder.encode_to_bytes(("ab", "cd")) == b"\x02abcd"

    def test_wrong_length(self):
        coder = TupleCoder([VarIntCoder(), VarIntCoder()])
        with pytest.raises(EncodeError):
            coder.encode_to_bytes((1,))

    def test_needs_components(self):
        with pytest.raises(ValueError):
            TupleCoder([])
