"""Extension dispatch: OID -> decoder, per-extension error capture, display lines."""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, List, Mapping, NamedTuple, Tuple

from certinfo.common.models import Extension
from certinfo.common.utils import hex_array
from certinfo.crypto import decoders
from certinfo.crypto.asn1 import (
    TAG_BOOLEAN,
    TAG_OCTET_STRING,
    TAG_OID,
    TAG_SEQUENCE,
    MalformedEncoding,
    decode_boolean,
    decode_oid,
    expect,
    iter_values,
    read_sequence,
    read_value,
)
from certinfo.crypto.names import group_general_names
from certinfo.crypto.oids import (
    ACCESS_METHODS,
    CERTIFICATE_POLICIES,
    EXTENDED_KEY_USAGES,
    ExtensionOIDs,
    describe,
)


logger = logging.getLogger(__name__)

UNKNOWN_EXTENSION_NAME = "-N/A-"
SCT_PLACEHOLDER = "..."


@dataclass(frozen=True)
class RawExtension:
    """Extension as found in the TBSCertificate, value still DER encoded."""
    oid: str
    critical: bool
    value: bytes


def extract_extensions(tbs_certificate: bytes) -> List[RawExtension]:
    """
    Pull the raw extensions out of a DER TBSCertificate.

    TBSCertificate ::= SEQUENCE { ..., extensions [3] EXPLICIT Extensions OPTIONAL }

    Extension ::= SEQUENCE {
        extnID      OBJECT IDENTIFIER,
        critical    BOOLEAN DEFAULT FALSE,
        extnValue   OCTET STRING }

    Args:
        tbs_certificate: DER encoding of the TBSCertificate

    Returns:
        Extensions in certificate order, empty for v1/v2 certificates

    Raises:
        MalformedEncoding: If the extensions block is not well formed
    """
    for field in iter_values(read_sequence(tbs_certificate).content):
        if field.is_context(3) and field.constructed:
            break
    else:
        return []

    extensions = []
    for ext in iter_values(read_sequence(field.content).content):
        expect(ext, TAG_SEQUENCE, constructed=True)
        oid = expect(read_value(ext.content), TAG_OID, constructed=False)
        critical = False
        rest = read_value(oid.rest)
        if rest.is_universal(TAG_BOOLEAN):
            critical = decode_boolean(rest.content)
            rest = read_value(rest.rest)
        expect(rest, TAG_OCTET_STRING, constructed=False)
        if rest.rest:
            raise MalformedEncoding("trailing data in extension")
        extensions.append(RawExtension(decode_oid(oid.content), critical, rest.content))
    return extensions


def parse_authority_key_identifier(data: bytes) -> List[str]:
    out = decoders.decode_authority_key_identifier(data)
    fields = [hex_array(out.key_identifier)]
    if out.authority_cert_issuer:
        fields.append(f"Authority Cert. Issuer: {', '.join(out.authority_cert_issuer)}")
    if out.authority_cert_serial_number != 0:
        fields.append(f"Authority Cert SN: {out.authority_cert_serial_number}")
    return fields


def parse_subject_key_identifier(data: bytes) -> List[str]:
    return [hex_array(decoders.decode_subject_key_identifier(data))]


def parse_key_usage(data: bytes) -> List[str]:
    return decoders.decode_key_usage(data)


def parse_basic_constraints(data: bytes) -> List[str]:
    out = decoders.decode_basic_constraints(data)
    fields = [f"CA: {str(out.ca).lower()}"]
    if out.path_len_constraint != 0:
        fields.append(f"PathLenConstraint: {out.path_len_constraint}")
    return fields


def parse_certificate_policies(data: bytes) -> List[str]:
    # TODO: elaborate CPS URI and user notice qualifiers
    return [
        describe(CERTIFICATE_POLICIES, policy.policy_identifier)
        for policy in decoders.decode_certificate_policies(data)
    ]


def parse_alt_name(data: bytes) -> List[str]:
    return group_general_names(decoders.decode_alt_name(data))


def parse_extended_key_usage(data: bytes) -> List[str]:
    return [describe(EXTENDED_KEY_USAGES, oid) for oid in decoders.decode_extended_key_usage(data)]


def parse_crl_distribution_points(data: bytes) -> List[str]:
    points = []
    for v in decoders.decode_crl_distribution_points(data):
        point = []
        if v.distribution_point:
            point.append(f"Distribution Point: {', '.join(v.distribution_point)}")
        if v.reasons:
            point.append(f"Reasons: {', '.join(v.reasons)}")
        if v.crl_issuer:
            point.append(f"CRL Issuer: {', '.join(v.crl_issuer)}")
        if point:
            points.append(" ".join(point))
    return points


def parse_authority_information_access(data: bytes) -> List[str]:
    fields = []
    for v in decoders.decode_authority_information_access(data):
        location = str(v.access_location) if v.access_location is not None else "unknown"
        fields.append(f"{describe(ACCESS_METHODS, v.access_method)} - {location}")
    return fields


def parse_signed_certificate_timestamp_list(data: bytes) -> List[str]:
    # SCT entries are not decoded yet, only the OCTET STRING wrapper is checked
    decoders.decode_signed_certificate_timestamp_list(data)
    return [SCT_PLACEHOLDER]


class ExtensionParser(NamedTuple):
    name: str
    parse: Callable[[bytes], List[str]]


EXTENSION_PARSERS: Mapping[str, ExtensionParser] = MappingProxyType({
    ExtensionOIDs.AUTHORITY_KEY_IDENTIFIER: ExtensionParser("Authority Key Identifier", parse_authority_key_identifier),
    ExtensionOIDs.SUBJECT_KEY_IDENTIFIER: ExtensionParser("Subject Key Identifier", parse_subject_key_identifier),
    ExtensionOIDs.KEY_USAGE: ExtensionParser("Key Usage", parse_key_usage),
    ExtensionOIDs.CERTIFICATE_POLICIES: ExtensionParser("Certificate Policies", parse_certificate_policies),
    ExtensionOIDs.SUBJECT_ALT_NAME: ExtensionParser("Subject Alt. Name", parse_alt_name),
    ExtensionOIDs.ISSUER_ALT_NAME: ExtensionParser("Issuer Alt. Name", parse_alt_name),
    ExtensionOIDs.BASIC_CONSTRAINTS: ExtensionParser("Basic Constraints", parse_basic_constraints),
    ExtensionOIDs.EXTENDED_KEY_USAGE: ExtensionParser("Extended Key Usage", parse_extended_key_usage),
    ExtensionOIDs.CRL_DISTRIBUTION_POINTS: ExtensionParser("CRL Distribution Points", parse_crl_distribution_points),
    ExtensionOIDs.AUTHORITY_INFORMATION_ACCESS: ExtensionParser(
        "Authority Information Access", parse_authority_information_access
    ),
    ExtensionOIDs.SIGNED_CERTIFICATE_TIMESTAMP_LIST: ExtensionParser(
        "CT Precertificate SCTs", parse_signed_certificate_timestamp_list
    ),
})


def parse_extension(oid: str, value: bytes) -> Tuple[str, List[str]]:
    """
    Decode one extension value into its display name and lines.

    Args:
        oid: Dotted extension OID
        value: extnValue contents (the OCTET STRING already unwrapped)

    Returns:
        (name, values); unknown OIDs give ("-N/A-", [oid])

    Raises:
        ASN1Error: If the value does not decode
    """
    parser = EXTENSION_PARSERS.get(oid)
    if parser is None:
        return UNKNOWN_EXTENSION_NAME, [oid]
    return parser.name, parser.parse(value)


def decode_extension(raw: RawExtension, position: int = 0) -> Extension:
    """Decode raw into an Extension, turning a decode failure into its only value."""
    name = EXTENSION_PARSERS[raw.oid].name if raw.oid in EXTENSION_PARSERS else UNKNOWN_EXTENSION_NAME
    try:
        name, values = parse_extension(raw.oid, raw.value)
    except ValueError as e:
        logger.error(f"certificate at position {position}: extension {name} ({raw.oid}): {e}")
        values = [str(e)]
    return Extension(name=name, oid=raw.oid, critical=raw.critical, values=values)


def decode_extensions(raw_extensions: List[RawExtension], position: int = 0) -> List[Extension]:
    """Decode every extension of one certificate; failures stay local to their extension."""
    return [decode_extension(raw, position) for raw in raw_extensions]
