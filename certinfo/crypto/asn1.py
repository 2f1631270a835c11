"""DER reader: one tag-length-value per call, plus primitive content decoders."""

from dataclasses import dataclass
from typing import Iterator, Optional


CLASS_UNIVERSAL = 0
CLASS_APPLICATION = 1
CLASS_CONTEXT = 2
CLASS_PRIVATE = 3

TAG_BOOLEAN = 1
TAG_INTEGER = 2
TAG_BIT_STRING = 3
TAG_OCTET_STRING = 4
TAG_NULL = 5
TAG_OID = 6
TAG_UTF8_STRING = 12
TAG_SEQUENCE = 16
TAG_SET = 17
TAG_PRINTABLE_STRING = 19
TAG_T61_STRING = 20
TAG_IA5_STRING = 22
TAG_VISIBLE_STRING = 26
TAG_UNIVERSAL_STRING = 28
TAG_BMP_STRING = 30

STRING_ENCODINGS = {
    TAG_UTF8_STRING: "utf-8",
    18: "ascii",  # NumericString
    TAG_PRINTABLE_STRING: "ascii",
    TAG_T61_STRING: "latin-1",
    TAG_IA5_STRING: "ascii",
    TAG_VISIBLE_STRING: "ascii",
    TAG_UNIVERSAL_STRING: "utf-32-be",
    TAG_BMP_STRING: "utf-16-be",
}

# a length prefix wider than this cannot describe a certificate
MAX_LENGTH_OCTETS = 4


class ASN1Error(ValueError):
    """Base exception for DER decoding errors."""
    pass


class MalformedEncoding(ASN1Error):
    """Tag or length inconsistent with the bytes, or a required part is missing."""
    pass


class UnsupportedChoice(ASN1Error):
    """A CHOICE tag outside the alternatives known for its context."""
    pass


@dataclass(frozen=True)
class DERValue:
    """A single decoded TLV and the bytes that follow it."""
    tag_class: int
    constructed: bool
    tag: int
    content: bytes
    rest: bytes = b""

    def is_universal(self, tag: int) -> bool:
        return self.tag_class == CLASS_UNIVERSAL and self.tag == tag

    def is_context(self, tag: int) -> bool:
        return self.tag_class == CLASS_CONTEXT and self.tag == tag


def read_value(data: bytes) -> DERValue:
    """
    Decode exactly one DER value from the start of data.

    Args:
        data: Buffer positioned at an identifier octet

    Returns:
        The decoded value; bytes after it are kept in ``rest``

    Raises:
        MalformedEncoding: If the tag is truncated or the length overruns data
    """
    data = bytes(data)
    if not data:
        raise MalformedEncoding("no data: expected tag")

    first = data[0]
    tag_class = (first >> 6) & 0x03
    constructed = bool(first & 0x20)
    tag = first & 0x1F
    offset = 1

    if tag == 0x1F:
        tag = 0
        while True:
            if offset >= len(data):
                raise MalformedEncoding("truncated high tag number")
            b = data[offset]
            offset += 1
            tag = (tag << 7) | (b & 0x7F)
            if not b & 0x80:
                break

    if offset >= len(data):
        raise MalformedEncoding("truncated length")
    b = data[offset]
    offset += 1
    if b < 0x80:
        length = b
    elif b == 0x80:
        raise MalformedEncoding("indefinite length is not allowed in DER")
    else:
        n = b & 0x7F
        if n > MAX_LENGTH_OCTETS:
            raise MalformedEncoding(f"length prefix of {n} octets is too long")
        if offset + n > len(data):
            raise MalformedEncoding("truncated long-form length")
        length = int.from_bytes(data[offset:offset + n], "big")
        offset += n

    end = offset + length
    if end > len(data):
        raise MalformedEncoding(
            f"length {length} overruns buffer ({len(data) - offset} bytes available)"
        )
    return DERValue(tag_class, constructed, tag, data[offset:end], data[end:])


def iter_values(data: bytes) -> Iterator[DERValue]:
    """Yield consecutive DER values until data is exhausted."""
    while data:
        value = read_value(data)
        yield value
        data = value.rest


def expect(
    value: DERValue,
    tag: int,
    tag_class: int = CLASS_UNIVERSAL,
    constructed: Optional[bool] = None,
) -> DERValue:
    """Check the identifier of value, raising MalformedEncoding on mismatch."""
    if value.tag_class != tag_class or value.tag != tag:
        raise MalformedEncoding(
            f"expected tag {tag} (class {tag_class}), "
            f"got tag {value.tag} (class {value.tag_class})"
        )
    if constructed is not None and value.constructed != constructed:
        kind = "constructed" if constructed else "primitive"
        raise MalformedEncoding(f"expected {kind} encoding for tag {tag}")
    return value


def read_sequence(data: bytes) -> DERValue:
    """Read one value and require a universal SEQUENCE."""
    return expect(read_value(data), TAG_SEQUENCE, constructed=True)


def unwrap_sequence(data: bytes) -> bytes:
    """Return the content octets of the SEQUENCE at the start of data."""
    return read_sequence(data).content


def decode_oid(content: bytes) -> str:
    """Decode OBJECT IDENTIFIER content octets to a dotted string."""
    if not content:
        raise MalformedEncoding("empty object identifier")
    if content[-1] & 0x80:
        raise MalformedEncoding("truncated object identifier")

    arcs = []
    value = 0
    for b in content:
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            arcs.append(value)
            value = 0

    first = arcs[0]
    if first < 40:
        components = [0, first]
    elif first < 80:
        components = [1, first - 40]
    else:
        components = [2, first - 80]
    components.extend(arcs[1:])
    return ".".join(str(c) for c in components)


def decode_integer(content: bytes) -> int:
    if not content:
        raise MalformedEncoding("empty integer")
    return int.from_bytes(content, "big", signed=True)


def decode_boolean(content: bytes) -> bool:
    if len(content) != 1:
        raise MalformedEncoding(f"boolean must be one octet, got {len(content)}")
    return content[0] != 0


@dataclass(frozen=True)
class BitString:
    """BIT STRING payload; bit 0 is the most significant bit of the first octet."""
    data: bytes
    bit_length: int

    def at(self, i: int) -> int:
        if i < 0 or i >= self.bit_length:
            return 0
        return (self.data[i // 8] >> (7 - i % 8)) & 1


def decode_bit_string(content: bytes) -> BitString:
    if not content:
        raise MalformedEncoding("empty bit string")
    unused = content[0]
    payload = content[1:]
    if unused > 7 or (unused and not payload):
        raise MalformedEncoding(f"invalid unused bit count {unused}")
    return BitString(payload, len(payload) * 8 - unused)


def decode_string(value: DERValue) -> str:
    """Decode a universal string type; unknown tags fall back to UTF-8."""
    encoding = STRING_ENCODINGS.get(value.tag) if value.tag_class == CLASS_UNIVERSAL else None
    try:
        return value.content.decode(encoding or "utf-8")
    except UnicodeDecodeError:
        return value.content.decode(encoding or "utf-8", errors="replace")
