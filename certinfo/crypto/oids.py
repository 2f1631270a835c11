"""
Object Identifier (OID) registries used when labelling decoded extensions.

All tables are read-only mappings from dotted OID strings to labels:
├── ExtensionOIDs          - extensions the decoder dispatches on
├── CERTIFICATE_POLICIES   - policy identifiers (CA/Browser Forum, GTS, ...)
├── EXTENDED_KEY_USAGES    - id-kp purposes 1 to 9
├── SIGNATURE_ALGORITHMS   - certificate signature algorithms
├── ACCESS_METHODS         - id-ad access methods (AIA / SIA)
└── ATTRIBUTE_NAMES        - distinguished name attribute short names
"""

from types import MappingProxyType
from typing import Mapping, Optional


class ExtensionOIDs:
    """Dotted OIDs of the extensions with a dedicated decoder."""

    SUBJECT_KEY_IDENTIFIER = "2.5.29.14"
    KEY_USAGE = "2.5.29.15"
    SUBJECT_ALT_NAME = "2.5.29.17"
    ISSUER_ALT_NAME = "2.5.29.18"
    BASIC_CONSTRAINTS = "2.5.29.19"
    CRL_DISTRIBUTION_POINTS = "2.5.29.31"
    CERTIFICATE_POLICIES = "2.5.29.32"
    AUTHORITY_KEY_IDENTIFIER = "2.5.29.35"
    EXTENDED_KEY_USAGE = "2.5.29.37"
    # private internet extensions
    AUTHORITY_INFORMATION_ACCESS = "1.3.6.1.5.5.7.1.1"
    SIGNED_CERTIFICATE_TIMESTAMP_LIST = "1.3.6.1.4.1.11129.2.4.2"


CERTIFICATE_POLICIES: Mapping[str, str] = MappingProxyType({
    "2.5.29.32.0": "any policy",
    "2.5.29.32.2": "ldap",

    "2.23.140.1.1": "ev guidelines",

    # baseline requirements
    "2.23.140.1.2.1": "domain validated",
    "2.23.140.1.2.2": "organization validated",
    "2.23.140.1.2.3": "individual validated",

    "2.23.140.1.3": "extended-validation codesigning",

    # code signing requirements
    "2.23.140.1.4.1": "code signing",
    "2.23.140.1.4.2": "timestamping",

    # s/mime
    "2.23.140.1.5.1": "mailbox validated",
    "2.23.140.1.5.2": "organization validated",
    "2.23.140.1.5.3": "sponsor validated",
    "2.23.140.1.5.4": "individual validated",

    "2.23.140.31": "onion-ev",

    # google trust services certificate policy
    "1.3.6.1.4.1.11129.2.5.3.1": "signed http exchanges",
    "1.3.6.1.4.1.11129.2.5.3.2": "client authentication",
    "1.3.6.1.4.1.11129.2.5.3.3": "document signing",
})

EXTENDED_KEY_USAGES: Mapping[str, str] = MappingProxyType({
    "1.3.6.1.5.5.7.3.1": "server auth",
    "1.3.6.1.5.5.7.3.2": "client auth",
    "1.3.6.1.5.5.7.3.3": "code signing",
    "1.3.6.1.5.5.7.3.4": "email protection",
    "1.3.6.1.5.5.7.3.5": "ipsec end system",
    "1.3.6.1.5.5.7.3.6": "ipsec tunnel",
    "1.3.6.1.5.5.7.3.7": "ipsec user",
    "1.3.6.1.5.5.7.3.8": "time stamping",
    "1.3.6.1.5.5.7.3.9": "OCSP signing",
})

SIGNATURE_ALGORITHMS: Mapping[str, str] = MappingProxyType({
    # pkcs-1
    "1.2.840.113549.1.1.4": "md5WithRSAEncryption",
    "1.2.840.113549.1.1.5": "sha1WithRSAEncryption",
    "1.2.840.113549.1.1.10": "RSASSA-PSS",
    "1.2.840.113549.1.1.11": "sha256WithRSAEncryption",
    "1.2.840.113549.1.1.12": "sha384WithRSAEncryption",
    "1.2.840.113549.1.1.13": "sha512WithRSAEncryption",
    "1.2.840.113549.1.1.14": "sha224WithRSAEncryption",

    # ansi-x962
    "1.2.840.10045.4.1": "ecdsa-with-SHA1",
    "1.2.840.10045.4.3.1": "ecdsa-with-SHA224",
    "1.2.840.10045.4.3.2": "ecdsa-with-SHA256",
    "1.2.840.10045.4.3.3": "ecdsa-with-SHA384",
    "1.2.840.10045.4.3.4": "ecdsa-with-SHA512",

    "1.2.840.10040.4.3": "dsa-with-sha1",

    # nist sig algs
    "2.16.840.1.101.3.4.3.1": "dsa-with-sha224",
    "2.16.840.1.101.3.4.3.2": "dsa-with-sha256",
    "2.16.840.1.101.3.4.3.9": "ecdsa-with-SHA3-224",
    "2.16.840.1.101.3.4.3.10": "ecdsa-with-SHA3-256",
    "2.16.840.1.101.3.4.3.11": "ecdsa-with-SHA3-384",
    "2.16.840.1.101.3.4.3.12": "ecdsa-with-SHA3-512",
    "2.16.840.1.101.3.4.3.13": "sha3-224WithRSAEncryption",
    "2.16.840.1.101.3.4.3.14": "sha3-256WithRSAEncryption",
    "2.16.840.1.101.3.4.3.15": "sha3-384WithRSAEncryption",
    "2.16.840.1.101.3.4.3.16": "sha3-512WithRSAEncryption",

    "1.3.101.112": "ed25519",
    "1.3.101.113": "ed448",
})

ACCESS_METHODS: Mapping[str, str] = MappingProxyType({
    "1.3.6.1.5.5.7.48.1": "ocsp",
    "1.3.6.1.5.5.7.48.2": "ca issuers",
    "1.3.6.1.5.5.7.48.3": "time stamping",
    "1.3.6.1.5.5.7.48.4": "dvcs",
    "1.3.6.1.5.5.7.48.5": "ca repository",
    "1.3.6.1.5.5.7.48.6": "http certs",
    "1.3.6.1.5.5.7.48.7": "http crls",
    "1.3.6.1.5.5.7.48.8": "xkms",
    "1.3.6.1.5.5.7.48.9": "signed object repository",
    "1.3.6.1.5.5.7.48.10": "rpki manifest",
    "1.3.6.1.5.5.7.48.11": "signed object",
    "1.3.6.1.5.5.7.48.12": "cmc",
    "1.3.6.1.5.5.7.48.13": "rpki notify",
    "1.3.6.1.5.5.7.48.14": "stir tn list",
})

ATTRIBUTE_NAMES: Mapping[str, str] = MappingProxyType({
    "2.5.4.3": "CN",
    "2.5.4.4": "SN",
    "2.5.4.5": "serialNumber",
    "2.5.4.6": "C",
    "2.5.4.7": "L",
    "2.5.4.8": "ST",
    "2.5.4.9": "STREET",
    "2.5.4.10": "O",
    "2.5.4.11": "OU",
    "2.5.4.12": "title",
    "2.5.4.17": "postalCode",
    "2.5.4.42": "GN",
    "2.5.4.43": "initials",
    "2.5.4.46": "dnQualifier",
    "2.5.4.65": "pseudonym",
    "0.9.2342.19200300.100.1.1": "UID",
    "0.9.2342.19200300.100.1.25": "DC",
    "1.2.840.113549.1.9.1": "emailAddress",
})


def lookup(registry: Mapping[str, str], oid: str) -> Optional[str]:
    """Return the label for oid, or None when the registry does not know it."""
    return registry.get(oid)


def describe(registry: Mapping[str, str], oid: str) -> str:
    """
    Render an OID for display.

    Args:
        registry: One of the registries in this module
        oid: Dotted OID string

    Returns:
        "label (oid)" for known OIDs, the raw OID otherwise
    """
    label = lookup(registry, oid)
    if label is None:
        return oid
    return f"{label} ({oid})"
