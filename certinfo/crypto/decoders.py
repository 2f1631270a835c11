"""Typed decoders for the X.509 v3 extension payloads (RFC 5280 section 4.2)."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from certinfo.crypto.asn1 import (
    CLASS_CONTEXT,
    TAG_BIT_STRING,
    TAG_BOOLEAN,
    TAG_INTEGER,
    TAG_OCTET_STRING,
    TAG_OID,
    TAG_SEQUENCE,
    DERValue,
    MalformedEncoding,
    UnsupportedChoice,
    decode_bit_string,
    decode_boolean,
    decode_integer,
    decode_oid,
    expect,
    iter_values,
    read_value,
)
from certinfo.crypto.names import (
    GeneralName,
    decode_general_name,
    decode_general_names,
    decode_relative_distinguished_name,
    general_names_from_content,
    group_general_names,
)


# order is important, index is the named bit position
KEY_USAGE_LABELS = (
    "Digital Signature",
    "Content Commitment",  # renamed from non repudiation
    "Key Encipherment",
    "Data Encipherment",
    "Key Agreement",
    "Key Cert Sign",
    "CRLs Sign",
    "Encipher Only",
    "Decipher Only",
)

REASON_FLAG_LABELS = (
    "unused",
    "keyCompromise",
    "cACompromise",
    "affiliationChanged",
    "superseded",
    "cessationOfOperation",
    "certificateHold",
    "privilegeWithdrawn",
    "aACompromise",
)


@dataclass(frozen=True)
class AuthorityKeyIdentifier:
    key_identifier: bytes = b""
    authority_cert_issuer: Tuple[str, ...] = ()
    # 0 doubles as "absent"
    authority_cert_serial_number: int = 0


@dataclass(frozen=True)
class BasicConstraints:
    ca: bool = False
    # 0 doubles as "absent"
    path_len_constraint: int = 0


@dataclass(frozen=True)
class PolicyInformation:
    policy_identifier: str
    qualifiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DistributionPoint:
    distribution_point: Tuple[str, ...] = ()
    reasons: Tuple[str, ...] = ()
    crl_issuer: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.distribution_point or self.reasons or self.crl_issuer)


@dataclass(frozen=True)
class AccessDescription:
    access_method: str
    access_location: Optional[GeneralName]


def _single(data: bytes) -> DERValue:
    value = read_value(data)
    if value.rest:
        raise MalformedEncoding(f"{len(value.rest)} bytes of trailing data")
    return value


def _sequence_of(data: bytes) -> List[DERValue]:
    return list(iter_values(expect(_single(data), TAG_SEQUENCE, constructed=True).content))


def _flags(content: bytes, labels: Tuple[str, ...]) -> List[str]:
    bits = decode_bit_string(content)
    return [label for i, label in enumerate(labels) if bits.at(i)]


def decode_authority_key_identifier(data: bytes) -> AuthorityKeyIdentifier:
    """
    Decode AuthorityKeyIdentifier.

    AuthorityKeyIdentifier ::= SEQUENCE {
        keyIdentifier             [0] KeyIdentifier            OPTIONAL,
        authorityCertIssuer       [1] GeneralNames             OPTIONAL,
        authorityCertSerialNumber [2] CertificateSerialNumber  OPTIONAL }

    The three fields are decoded independently; issuer and serial number
    are not required to appear together.
    """
    key_identifier = b""
    issuer: Tuple[str, ...] = ()
    serial_number = 0
    for field in _sequence_of(data):
        if field.is_context(0):
            key_identifier = field.content
        elif field.is_context(1):
            issuer = tuple(group_general_names(general_names_from_content(field.content)))
        elif field.is_context(2):
            serial_number = decode_integer(field.content)
        else:
            raise MalformedEncoding(f"unexpected authority key identifier field tag {field.tag}")
    return AuthorityKeyIdentifier(key_identifier, issuer, serial_number)


def decode_subject_key_identifier(data: bytes) -> bytes:
    """SubjectKeyIdentifier ::= KeyIdentifier (OCTET STRING)"""
    return expect(_single(data), TAG_OCTET_STRING, constructed=False).content


def decode_key_usage(data: bytes, labels: Tuple[str, ...] = KEY_USAGE_LABELS) -> List[str]:
    """KeyUsage ::= BIT STRING; returns set-bit labels in bit position order."""
    value = expect(_single(data), TAG_BIT_STRING, constructed=False)
    return _flags(value.content, labels)


def decode_basic_constraints(data: bytes) -> BasicConstraints:
    """
    BasicConstraints ::= SEQUENCE {
        cA                      BOOLEAN DEFAULT FALSE,
        pathLenConstraint       INTEGER (0..MAX) OPTIONAL }
    """
    ca = False
    path_len = 0
    fields = _sequence_of(data)
    if fields and fields[0].is_universal(TAG_BOOLEAN):
        ca = decode_boolean(fields.pop(0).content)
    if fields and fields[0].is_universal(TAG_INTEGER):
        path_len = decode_integer(fields.pop(0).content)
        if path_len < 0:
            raise MalformedEncoding(f"negative path length constraint {path_len}")
    if fields:
        raise MalformedEncoding(f"unexpected basic constraints field tag {fields[0].tag}")
    return BasicConstraints(ca, path_len)


def decode_certificate_policies(data: bytes) -> List[PolicyInformation]:
    """
    certificatePolicies ::= SEQUENCE SIZE (1..MAX) OF PolicyInformation

    PolicyInformation ::= SEQUENCE {
        policyIdentifier   CertPolicyId,
        policyQualifiers   SEQUENCE SIZE (1..MAX) OF PolicyQualifierInfo OPTIONAL }

    Qualifiers are reduced to their policyQualifierId.
    """
    policies = []
    for info in _sequence_of(data):
        expect(info, TAG_SEQUENCE, constructed=True)
        identifier = expect(read_value(info.content), TAG_OID, constructed=False)
        qualifiers = []
        if identifier.rest:
            for qualifier in iter_values(expect(read_value(identifier.rest), TAG_SEQUENCE).content):
                expect(qualifier, TAG_SEQUENCE, constructed=True)
                qualifier_id = expect(read_value(qualifier.content), TAG_OID, constructed=False)
                qualifiers.append(decode_oid(qualifier_id.content))
        policies.append(PolicyInformation(decode_oid(identifier.content), tuple(qualifiers)))
    return policies


def decode_extended_key_usage(data: bytes) -> List[str]:
    """ExtKeyUsageSyntax ::= SEQUENCE SIZE (1..MAX) OF KeyPurposeId"""
    return [decode_oid(expect(v, TAG_OID, constructed=False).content) for v in _sequence_of(data)]


def _distribution_point_name(wrapper: DERValue) -> List[str]:
    # DistributionPointName ::= CHOICE {
    #     fullName                [0]     GeneralNames,
    #     nameRelativeToCRLIssuer [1]     RelativeDistinguishedName }
    choice = _single(wrapper.content)
    if choice.tag_class != CLASS_CONTEXT:
        raise UnsupportedChoice(f"unsupported distribution point class {choice.tag_class}")
    if choice.tag == 0:
        return group_general_names(general_names_from_content(choice.content))
    if choice.tag == 1:
        return decode_relative_distinguished_name(choice.content)
    raise UnsupportedChoice(f"unsupported distribution point tag {choice.tag}")


def decode_crl_distribution_points(data: bytes) -> List[DistributionPoint]:
    """
    CRLDistributionPoints ::= SEQUENCE SIZE (1..MAX) OF DistributionPoint

    DistributionPoint ::= SEQUENCE {
        distributionPoint       [0]     DistributionPointName OPTIONAL,
        reasons                 [1]     ReasonFlags OPTIONAL,
        cRLIssuer               [2]     GeneralNames OPTIONAL }
    """
    points = []
    for point in _sequence_of(data):
        expect(point, TAG_SEQUENCE, constructed=True)
        name: List[str] = []
        reasons: List[str] = []
        issuer: List[str] = []
        for field in iter_values(point.content):
            if field.is_context(0):
                name = _distribution_point_name(field)
            elif field.is_context(1):
                reasons = _flags(field.content, REASON_FLAG_LABELS)
            elif field.is_context(2):
                issuer = group_general_names(general_names_from_content(field.content))
            else:
                raise MalformedEncoding(f"unexpected distribution point field tag {field.tag}")
        points.append(DistributionPoint(tuple(name), tuple(reasons), tuple(issuer)))
    return points


def decode_authority_information_access(data: bytes) -> List[AccessDescription]:
    """
    AuthorityInfoAccessSyntax ::= SEQUENCE SIZE (1..MAX) OF AccessDescription

    AccessDescription ::= SEQUENCE {
        accessMethod          OBJECT IDENTIFIER,
        accessLocation        GeneralName  }
    """
    accesses = []
    for description in _sequence_of(data):
        expect(description, TAG_SEQUENCE, constructed=True)
        method = expect(read_value(description.content), TAG_OID, constructed=False)
        location = _single(method.rest)
        accesses.append(AccessDescription(decode_oid(method.content), decode_general_name(location)))
    return accesses


def decode_signed_certificate_timestamp_list(data: bytes) -> bytes:
    """SignedCertificateTimestampList is carried as an OCTET STRING (RFC 6962)."""
    return expect(_single(data), TAG_OCTET_STRING, constructed=False).content


def decode_alt_name(data: bytes) -> List[GeneralName]:
    """SubjectAltName / IssuerAltName ::= GeneralNames"""
    _single(data)
    return decode_general_names(data)
