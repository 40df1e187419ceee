"""Unit tests for PairCodec and RestrictionPair."""

import io

import pytest

from sqlio.coders.base import BytesCoder, PickleCoder, StrUtf8Coder, TupleCoder, VarIntCoder
from sqlio.coders.pair import PairCodec, RestrictionPair
from sqlio.core.exceptions import DecodeError, EncodeError


class TestPairCodec:
    """Tests for encoding (element, restriction) pairs."""

    @pytest.mark.parametrize(
        "element_coder,restriction_coder,pair",
        [
            (VarIntCoder(), VarIntCoder(), RestrictionPair(42, -7)),
            (StrUtf8Coder(), BytesCoder(), RestrictionPair("héllo", b"\x00\x01\x02")),
            (BytesCoder(), StrUtf8Coder(), RestrictionPair(b"", "")),
            (PickleCoder(), TupleCoder([VarIntCoder(), VarIntCoder()]), RestrictionPair({"k": 1}, (0, 100))),
        ],
    )
    def test_round_trip(self, element_coder, restriction_coder, pair):
        """Test that decode(encode(pair)) == pair for outer and nested contexts."""
        codec = PairCodec(element_coder, restriction_coder)

        assert codec.decode_from_bytes(codec.encode_to_bytes(pair)) == pair
        assert codec.decode_from_bytes(codec.encode_to_bytes(pair, nested=True), nested=True) == pair

    @pytest.mark.parametrize(
        "codec",
        [
            PairCodec(VarIntCoder(), VarIntCoder()),
            PairCodec(StrUtf8Coder(), BytesCoder()),
            PairCodec(PickleCoder(), PickleCoder()),
        ],
    )
    def test_encode_none_fails(self, codec):
        """Test that a null pair cannot be encoded, whatever the sub-coders."""
        with pytest.raises(EncodeError) as exc_info:
            codec.encode(None, io.BytesIO())

        assert "null RestrictionPair" in str(exc_info.value)

    def test_wire_form_outer(self):
        """Test that the element is length-prefixed and the restriction runs to the end."""
        codec = PairCodec(BytesCoder(), BytesCoder())

        assert codec.encode_to_bytes(RestrictionPair(b"ab", b"xyz")) == b"\x02abxyz"

    def test_wire_form_nested(self):
        """Test that a nested pair makes the restriction self-delimiting too."""
        codec = PairCodec(BytesCoder(), BytesCoder())

        assert codec.encode_to_bytes(RestrictionPair(b"ab", b"xyz"), nested=True) == b"\x02ab\x03xyz"

    def test_nested_pair_inside_tuple(self):
        """Test that a nested pair leaves the following bytes intact."""
        pair_codec = PairCodec(StrUtf8Coder(), StrUtf8Coder())
        coder = TupleCoder([pair_codec, StrUtf8Coder()])
        value = (RestrictionPair("element", "restriction"), "trailer")

        assert coder.decode_from_bytes(coder.encode_to_bytes(value)) == value

    def test_decode_truncated_element(self):
        """Test that truncated element bytes raise DecodeError."""
        codec = PairCodec(BytesCoder(), BytesCoder())

        with pytest.raises(DecodeError):
            codec.decode_from_bytes(b"\x05ab")

    def test_decode_empty_input(self):
        """Test that an empty buffer raises DecodeError."""
        codec = PairCodec(VarIntCoder(), VarIntCoder())

        with pytest.raises(DecodeError):
            codec.decode_from_bytes(b"")

    def test_element_encode_failure_propagates(self):
        """Test that a sub-coder rejecting its value raises EncodeError."""
        codec = PairCodec(VarIntCoder(), VarIntCoder())

        with pytest.raises(EncodeError):
            codec.encode_to_bytes(RestrictionPair("not an int", 1))

    def test_codec_equality(self):
        """Test that codecs built from equal sub-coders compare equal."""
        assert PairCodec(VarIntCoder(), StrUtf8Coder()) == PairCodec(VarIntCoder(), StrUtf8Coder())
        assert PairCodec(VarIntCoder(), StrUtf8Coder()) != PairCodec(StrUtf8Coder(), VarIntCoder())


class TestRestrictionPair:
    """Tests for the RestrictionPair value."""

    def test_parts_must_not_be_none(self):
        with pytest.raises(ValueError):
            RestrictionPair(None, 1)
        with pytest.raises(ValueError):
            RestrictionPair(1, None)

    def test_is_immutable(self):
        pair = RestrictionPair(1, 2)
        with pytest.raises(AttributeError):
            pair.element = 3
