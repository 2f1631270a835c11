"""GeneralName / GeneralNames CHOICE decoding and distinguished name rendering."""

import ipaddress
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from certinfo.common.utils import hex_array
from certinfo.crypto.asn1 import (
    CLASS_CONTEXT,
    CLASS_UNIVERSAL,
    STRING_ENCODINGS,
    TAG_OID,
    TAG_SEQUENCE,
    TAG_SET,
    ASN1Error,
    DERValue,
    MalformedEncoding,
    decode_oid,
    decode_string,
    expect,
    iter_values,
    read_sequence,
    read_value,
)
from certinfo.crypto.oids import ATTRIBUTE_NAMES


logger = logging.getLogger(__name__)


class GeneralNameType(Enum):
    """GeneralName alternatives; the value is the context tag number."""
    OTHER_NAME = 0
    RFC822_NAME = 1
    DNS_NAME = 2
    X400_ADDRESS = 3
    DIRECTORY_NAME = 4
    EDI_PARTY_NAME = 5
    URI = 6
    IP_ADDRESS = 7
    REGISTERED_ID = 8

    @property
    def label(self) -> str:
        return GENERAL_NAME_LABELS[self]


GENERAL_NAME_LABELS = {
    GeneralNameType.OTHER_NAME: "Other Name",
    GeneralNameType.RFC822_NAME: "Rfc822 Name",
    GeneralNameType.DNS_NAME: "DNS Name",
    GeneralNameType.X400_ADDRESS: "X400 Address",
    GeneralNameType.DIRECTORY_NAME: "Directory Name",
    GeneralNameType.EDI_PARTY_NAME: "EdiParty Name",
    GeneralNameType.URI: "URI",
    GeneralNameType.IP_ADDRESS: "IP Address",
    GeneralNameType.REGISTERED_ID: "Registered ID",
}


@dataclass(frozen=True)
class OtherName:
    """OtherName ::= SEQUENCE { type-id OBJECT IDENTIFIER, value [0] EXPLICIT ANY }"""
    type_id: str
    value: str

    def __str__(self) -> str:
        return f"{self.type_id}: {self.value}"


@dataclass(frozen=True)
class GeneralName:
    """One GeneralName alternative and its raw value."""
    kind: GeneralNameType
    value: Union[bytes, OtherName]

    @property
    def label(self) -> str:
        return self.kind.label

    @property
    def text(self) -> str:
        """
        Display form of the value.

        Most alternatives show their content bytes decoded as UTF-8. iPAddress,
        registeredID and directoryName are rendered readably instead (dotted
        address, dotted OID, RFC 4514 name), which departs from plain UTF-8 output.
        """
        if isinstance(self.value, OtherName):
            return str(self.value)
        if self.kind is GeneralNameType.IP_ADDRESS and len(self.value) in (4, 16):
            return str(ipaddress.ip_address(self.value))
        if self.kind is GeneralNameType.REGISTERED_ID:
            try:
                return decode_oid(self.value)
            except ASN1Error:
                pass
        if self.kind is GeneralNameType.DIRECTORY_NAME:
            try:
                return decode_name(self.value)
            except ASN1Error as e:
                logger.debug(f"directory name: {e}")
        return self.value.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return f"{self.label}: {self.text}"


def _attribute_value(value: DERValue) -> str:
    if value.tag_class == CLASS_UNIVERSAL and value.tag in STRING_ENCODINGS:
        return decode_string(value)
    return hex_array(value.content)


def _try_other_name(content: bytes) -> Optional[OtherName]:
    try:
        type_id = read_value(content)
        expect(type_id, TAG_OID, constructed=False)
        wrapper = expect(read_value(type_id.rest), 0, CLASS_CONTEXT, constructed=True)
        return OtherName(decode_oid(type_id.content), _attribute_value(read_value(wrapper.content)))
    except ASN1Error as e:
        logger.debug(f"other name: {e}, using raw value")
        return None


def decode_general_name(value: DERValue) -> Optional[GeneralName]:
    """
    Resolve the GeneralName CHOICE of one context-tagged value.

    Args:
        value: The tagged element as read from a GeneralNames sequence

    Returns:
        The decoded name, or None if the tag is not one of the nine alternatives
    """
    if value.tag_class != CLASS_CONTEXT or not 0 <= value.tag <= 8:
        return None

    kind = GeneralNameType(value.tag)
    if kind is GeneralNameType.OTHER_NAME:
        other = _try_other_name(value.content)
        return GeneralName(kind, other if other is not None else value.content)
    return GeneralName(kind, value.content)


def general_names_from_content(content: bytes) -> List[GeneralName]:
    """Decode the element list of a (possibly implicitly tagged) GeneralNames."""
    names = []
    for element in iter_values(content):
        name = decode_general_name(element)
        if name is not None:
            names.append(name)
    return names


def decode_general_names(data: bytes) -> List[GeneralName]:
    """
    Decode GeneralNames ::= SEQUENCE SIZE (1..MAX) OF GeneralName.

    Raises:
        MalformedEncoding: If the wrapper is not a SEQUENCE or an element is truncated
    """
    return general_names_from_content(read_sequence(data).content)


def group_general_names(names: Iterable[GeneralName]) -> List[str]:
    """Group names by alternative into "label: value1, value2" strings."""
    grouped: Dict[str, List[str]] = {}
    for name in names:
        grouped.setdefault(name.label, []).append(name.text)
    return [f"{label}: {', '.join(values)}" for label, values in grouped.items()]


def _attributes(content: bytes) -> List[Tuple[str, str]]:
    # AttributeTypeAndValue ::= SEQUENCE { type OBJECT IDENTIFIER, value ANY }
    pairs = []
    for atv in iter_values(content):
        expect(atv, TAG_SEQUENCE, constructed=True)
        type_id = expect(read_value(atv.content), TAG_OID, constructed=False)
        if not type_id.rest:
            raise MalformedEncoding("attribute value missing")
        oid = decode_oid(type_id.content)
        pairs.append((ATTRIBUTE_NAMES.get(oid, oid), _attribute_value(read_value(type_id.rest))))
    return pairs


def decode_relative_distinguished_name(content: bytes) -> List[str]:
    """
    Decode the AttributeTypeAndValue elements of a RelativeDistinguishedName.

    Args:
        content: Element list of the SET (the SET header already stripped,
            as for an IMPLICIT [1] nameRelativeToCRLIssuer)

    Returns:
        "type: value" strings, types shown by short name when known
    """
    return [f"{name}: {value}" for name, value in _attributes(content)]


def decode_name(data: bytes) -> str:
    """Render a DER Name as an RFC 4514 string (last RDN first)."""
    rdns = []
    for rdn in iter_values(read_sequence(data).content):
        expect(rdn, TAG_SET, constructed=True)
        rdns.append("+".join(f"{name}={value}" for name, value in _attributes(rdn.content)))
    return ",".join(reversed(rdns))
