"""Tests for the primitive DER reader."""

import pytest

from certinfo.crypto.asn1 import (
    CLASS_CONTEXT,
    CLASS_UNIVERSAL,
    TAG_BMP_STRING,
    TAG_OCTET_STRING,
    TAG_SEQUENCE,
    DERValue,
    MalformedEncoding,
    decode_bit_string,
    decode_boolean,
    decode_integer,
    decode_oid,
    decode_string,
    expect,
    iter_values,
    read_sequence,
    read_value,
)


class TestReadValue:
    """Test tag and length decoding."""

    def test_short_form_keeps_rest(self):
        value = read_value(b"\x04\x02\xaa\xbb\x05\x00")

        assert value.tag_class == CLASS_UNIVERSAL
        assert value.tag == TAG_OCTET_STRING
        assert not value.constructed
        assert value.content == b"\xaa\xbb"
        assert value.rest == b"\x05\x00"

    def test_long_form_length(self):
        content = bytes(range(200))
        value = read_value(b"\x04\x81\xc8" + content)

        assert value.content == content
        assert value.rest == b""

    def test_constructed_sequence(self):
        value = read_value(b"\x30\x03\x02\x01\x05")

        assert value.constructed
        assert value.tag == TAG_SEQUENCE
        assert value.content == b"\x02\x01\x05"

    def test_context_tag(self):
        value = read_value(b"\xa3\x00")

        assert value.tag_class == CLASS_CONTEXT
        assert value.constructed
        assert value.is_context(3)
        assert not value.is_universal(3)

    def test_high_tag_number(self):
        value = read_value(b"\x9f\x1f\x01\x00")

        assert value.tag_class == CLASS_CONTEXT
        assert value.tag == 31
        assert value.content == b"\x00"

    @pytest.mark.parametrize("data", [
        b"",
        b"\x30",
        b"\x30\x05\x01",
        b"\x9f\x81",
        b"\x04\x82\x01",
    ])
    def test_truncated_input_raises(self, data):
        with pytest.raises(MalformedEncoding):
            read_value(data)

    def test_indefinite_length_rejected(self):
        with pytest.raises(MalformedEncoding, match="indefinite"):
            read_value(b"\x30\x80\x00\x00")

    def test_oversized_length_prefix_rejected(self):
        with pytest.raises(MalformedEncoding, match="too long"):
            read_value(b"\x04\x85" + b"\x00" * 5)

    def test_iter_values(self):
        values = list(iter_values(b"\x02\x01\x01\x02\x01\x02\x05\x00"))

        assert [v.content for v in values] == [b"\x01", b"\x02", b""]

    def test_iter_values_truncated_element(self):
        with pytest.raises(MalformedEncoding):
            list(iter_values(b"\x02\x01\x01\x02\x05"))


class TestExpect:
    """Test identifier checks."""

    def test_match_returns_value(self):
        value = DERValue(CLASS_UNIVERSAL, True, TAG_SEQUENCE, b"")
        assert expect(value, TAG_SEQUENCE, constructed=True) is value

    def test_wrong_tag(self):
        value = DERValue(CLASS_UNIVERSAL, False, TAG_OCTET_STRING, b"")
        with pytest.raises(MalformedEncoding, match="expected tag 16"):
            expect(value, TAG_SEQUENCE)

    def test_wrong_encoding(self):
        value = DERValue(CLASS_UNIVERSAL, True, TAG_OCTET_STRING, b"")
        with pytest.raises(MalformedEncoding, match="primitive"):
            expect(value, TAG_OCTET_STRING, constructed=False)

    def test_read_sequence_rejects_set(self):
        with pytest.raises(MalformedEncoding):
            read_sequence(b"\x31\x00")


class TestPrimitives:
    """Test content decoders."""

    def test_decode_oid(self):
        assert decode_oid(b"\x55\x1d\x11") == "2.5.29.17"
        assert decode_oid(b"\x2a\x86\x48\x86\xf7\x0d\x01\x01\x0b") == "1.2.840.113549.1.1.11"

    def test_decode_oid_errors(self):
        with pytest.raises(MalformedEncoding):
            decode_oid(b"")
        with pytest.raises(MalformedEncoding):
            decode_oid(b"\x55\x86")

    def test_decode_integer(self):
        assert decode_integer(b"\x03") == 3
        assert decode_integer(b"\x00\x80") == 128
        assert decode_integer(b"\xff") == -1
        with pytest.raises(MalformedEncoding):
            decode_integer(b"")

    def test_decode_boolean(self):
        assert decode_boolean(b"\xff") is True
        assert decode_boolean(b"\x00") is False
        with pytest.raises(MalformedEncoding):
            decode_boolean(b"\x01\x01")

    def test_bit_string_msb_first(self):
        bits = decode_bit_string(b"\x02\x84")

        assert bits.bit_length == 6
        assert bits.at(0) == 1
        assert bits.at(5) == 1
        assert bits.at(1) == 0
        # past the end reads as zero
        assert bits.at(9) == 0

    def test_bit_string_invalid_unused_count(self):
        with pytest.raises(MalformedEncoding):
            decode_bit_string(b"\x08\x00")
        with pytest.raises(MalformedEncoding):
            decode_bit_string(b"\x03")
        with pytest.raises(MalformedEncoding):
            decode_bit_string(b"")

    def test_decode_string_by_tag(self):
        bmp = read_value(b"\x1e\x04\x00h\x00i")
        assert bmp.tag == TAG_BMP_STRING
        assert decode_string(bmp) == "hi"

        assert decode_string(read_value(b"\x0c\x03caf")) == "caf"
