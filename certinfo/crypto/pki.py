"""X.509 certificates: PEM bundles, per-certificate accessors, collection filters, chains."""

import base64
import binascii
import logging
import os
import re
import ssl
from dataclasses import dataclass
from datetime import datetime
from functools import cached_property, partial
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa, x448, x25519

from certinfo.common.models import Extension
from certinfo.common.utils import hex_array, now_utc, split_string
from certinfo.crypto import decoders
from certinfo.crypto.asn1 import ASN1Error
from certinfo.crypto.extensions import RawExtension, decode_extensions, extract_extensions
from certinfo.crypto.names import GeneralNameType
from certinfo.crypto.oids import SIGNATURE_ALGORITHMS, ExtensionOIDs


logger = logging.getLogger(__name__)

CERTIFICATE_BLOCK_TYPE = "CERTIFICATE"

PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<type>[A-Z0-9 ]+)-----(?P<body>.*?)-----END (?P=type)-----",
    re.DOTALL,
)

PUBLIC_KEY_ALGORITHMS = (
    (rsa.RSAPublicKey, "RSA"),
    (dsa.DSAPublicKey, "DSA"),
    (ec.EllipticCurvePublicKey, "ECDSA"),
    (ed25519.Ed25519PublicKey, "Ed25519"),
    (ed448.Ed448PublicKey, "Ed448"),
    (x25519.X25519PublicKey, "X25519"),
    (x448.X448PublicKey, "X448"),
)

# Labels for the Key Usage / Ext Key Usage summary lines; the Extensions
# section keeps its own labels. Order is important, index is the named bit.
KEY_USAGE_NAMES = (
    "Digital Signature",
    "Content Commitment",
    "Key Encipherment",
    "Data Encipherment",
    "Key Agreement",
    "Cert Sign",
    "CRL Sign",
    "Encipher Only",
    "Decipher Only",
)

EXT_KEY_USAGE_NAMES = {
    "2.5.29.37.0": "Any",
    "1.3.6.1.5.5.7.3.1": "Server Auth",
    "1.3.6.1.5.5.7.3.2": "Client Auth",
    "1.3.6.1.5.5.7.3.3": "Code Signing",
    "1.3.6.1.5.5.7.3.4": "Email Protection",
    "1.3.6.1.5.5.7.3.5": "IPSEC End System",
    "1.3.6.1.5.5.7.3.6": "IPSEC Tunnel",
    "1.3.6.1.5.5.7.3.7": "IPSEC User",
    "1.3.6.1.5.5.7.3.8": "Time Stamping",
    "1.3.6.1.5.5.7.3.9": "OCSP Signing",
    "1.3.6.1.4.1.311.10.3.3": "Microsoft Server Gated Crypto",
    "2.16.840.1.113730.4.1": "Netscape Server Gated Crypto",
    "1.3.6.1.4.1.311.2.1.22": "Microsoft Commercial Code Signing",
    "1.3.6.1.4.1.311.61.1.1": "Microsoft Kernel Code Signing",
}

T = TypeVar("T")


class PKIError(Exception):
    """Base exception for certificate handling errors."""
    pass


class BadCertError(PKIError):
    """Certificate could not be parsed or verified."""
    pass


@dataclass(frozen=True)
class PemBlock:
    type: str
    data: bytes


def decode_pem_blocks(data: bytes) -> List[PemBlock]:
    """
    Split PEM armored data into its blocks, in order.

    Args:
        data: One or more PEM blocks; text between blocks is ignored

    Returns:
        Decoded blocks

    Raises:
        BadCertError: If a block body is not valid base64
    """
    blocks = []
    for match in PEM_BLOCK.finditer(data):
        body = b"".join(match.group("body").split())
        try:
            blocks.append(PemBlock(match.group("type").decode("ascii"), base64.b64decode(body, validate=True)))
        except binascii.Error as e:
            raise BadCertError(f"invalid base64 in {match.group('type').decode('ascii')} block: {e}")
    return blocks


def encode_pem(der: bytes, block_type: str = CERTIFICATE_BLOCK_TYPE) -> bytes:
    """Armor DER bytes as a single PEM block with 64 character lines."""
    body = base64.b64encode(der)
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return (
        f"-----BEGIN {block_type}-----\n".encode("ascii")
        + b"".join(line + b"\n" for line in lines)
        + f"-----END {block_type}-----\n".encode("ascii")
    )


def load_certificate_from_bytes(cert_data: bytes) -> x509.Certificate:
    """
    Load an X.509 certificate from DER bytes.

    Args:
        cert_data: Certificate data in DER format

    Returns:
        Loaded X.509 certificate

    Raises:
        BadCertError: If certificate cannot be parsed
    """
    try:
        return x509.load_der_x509_certificate(cert_data, default_backend())
    except (ValueError, x509.InvalidVersion) as e:
        raise BadCertError(f"Failed to parse certificate: {e}")


@dataclass(frozen=True)
class Certificate:
    """
    One certificate of a bundle or TLS chain.

    Exactly one of ``x509_certificate`` and ``error`` is set. ``position`` starts at 1.
    """
    position: int
    x509_certificate: Optional[x509.Certificate] = None
    error: Optional[str] = None

    @classmethod
    def from_der(cls, position: int, der: bytes) -> "Certificate":
        try:
            return cls(position, x509_certificate=load_certificate_from_bytes(der))
        except BadCertError as e:
            logger.error(f"block at position {position}: {e}")
            return cls(position, error=str(e))

    @classmethod
    def from_pem_block(cls, position: int, block: PemBlock) -> "Certificate":
        if block.type != CERTIFICATE_BLOCK_TYPE:
            return cls(position, error=f"cannot parse {block.type} block")
        return cls.from_der(position, block.data)

    def error_string(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"ERROR: block at position {self.position}: {self.error}"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True when now is past notAfter; certificates with an error never expire."""
        if self.error is not None:
            return False
        return (now or now_utc()) > self.not_after

    def to_pem(self) -> bytes:
        if self.error is not None:
            return b""
        return self.x509_certificate.public_bytes(serialization.Encoding.PEM)

    def subject_string(self) -> str:
        if self.error is not None:
            return self.error_string()
        return self.x509_certificate.subject.rfc4514_string()

    def issuer_string(self) -> str:
        if self.error is not None:
            return self.error_string()
        return self.x509_certificate.issuer.rfc4514_string()

    @property
    def version(self) -> int:
        return self.x509_certificate.version.value + 1

    @property
    def serial_number(self) -> str:
        serial = abs(self.x509_certificate.serial_number)
        return hex_array(serial.to_bytes((serial.bit_length() + 7) // 8, "big"))

    @property
    def signature_algorithm(self) -> str:
        oid = self.x509_certificate.signature_algorithm_oid.dotted_string
        return SIGNATURE_ALGORITHMS.get(oid, oid)

    @property
    def not_before(self) -> datetime:
        return self.x509_certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.x509_certificate.not_valid_after_utc

    @property
    def signature(self) -> str:
        return hex_array(self.x509_certificate.signature)

    @cached_property
    def raw_extensions(self) -> List[RawExtension]:
        if self.error is not None:
            return []
        try:
            return extract_extensions(self.x509_certificate.tbs_certificate_bytes)
        except ASN1Error as e:
            logger.error(f"certificate at position {self.position}: extensions: {e}")
            return []

    def extensions(self) -> List[Extension]:
        """All extensions, decoded for display."""
        return decode_extensions(self.raw_extensions, self.position)

    def _decoded(self, oid: str, decode: Callable[[bytes], T]) -> Optional[T]:
        for raw in self.raw_extensions:
            if raw.oid != oid:
                continue
            try:
                return decode(raw.value)
            except ASN1Error as e:
                logger.debug(f"certificate at position {self.position}: {oid}: {e}")
                return None
        return None

    @property
    def authority_key_id(self) -> str:
        aki = self._decoded(ExtensionOIDs.AUTHORITY_KEY_IDENTIFIER, decoders.decode_authority_key_identifier)
        return hex_array(aki.key_identifier) if aki else ""

    @property
    def subject_key_id(self) -> str:
        ski = self._decoded(ExtensionOIDs.SUBJECT_KEY_IDENTIFIER, decoders.decode_subject_key_identifier)
        return hex_array(ski) if ski else ""

    @property
    def is_ca(self) -> bool:
        bc = self._decoded(ExtensionOIDs.BASIC_CONSTRAINTS, decoders.decode_basic_constraints)
        return bc.ca if bc else False

    @property
    def key_usage(self) -> List[str]:
        decode = partial(decoders.decode_key_usage, labels=KEY_USAGE_NAMES)
        return self._decoded(ExtensionOIDs.KEY_USAGE, decode) or []

    @property
    def ext_key_usage(self) -> List[str]:
        oids = self._decoded(ExtensionOIDs.EXTENDED_KEY_USAGE, decoders.decode_extended_key_usage) or []
        return [EXT_KEY_USAGE_NAMES.get(oid, oid) for oid in oids]

    def _alt_names(self, kind: GeneralNameType) -> List[str]:
        names = self._decoded(ExtensionOIDs.SUBJECT_ALT_NAME, decoders.decode_alt_name) or []
        return [name.text for name in names if name.kind is kind]

    @property
    def dns_names(self) -> List[str]:
        return self._alt_names(GeneralNameType.DNS_NAME)

    @property
    def ip_addresses(self) -> List[str]:
        return self._alt_names(GeneralNameType.IP_ADDRESS)

    @property
    def type(self) -> str:
        """root, intermediate or end-entity."""
        aki = self.authority_key_id
        if not aki or aki == self.subject_key_id:
            return "root"
        if self.is_ca:
            return "intermediate"
        return "end-entity"

    def _public_key(self):
        try:
            return self.x509_certificate.public_key()
        except (ValueError, UnsupportedAlgorithm) as e:
            logger.debug(f"certificate at position {self.position}: public key: {e}")
            return None

    @property
    def public_key_algorithm(self) -> str:
        public_key = self._public_key()
        for key_type, name in PUBLIC_KEY_ALGORITHMS:
            if isinstance(public_key, key_type):
                return name
        return "unknown"

    def public_key_info(self) -> List[str]:
        """Subject public key lines, openssl style for RSA and EC keys."""
        public_key = self._public_key()
        lines = [f"Public Key Algorithm: {self.public_key_algorithm}"]
        if isinstance(public_key, rsa.RSAPublicKey):
            numbers = public_key.public_numbers()
            modulus = numbers.n.to_bytes((numbers.n.bit_length() + 7) // 8, "big")
            lines.append(f"    Public Key: ({public_key.key_size} bit)")
            lines.append("    Modulus")
            lines.extend(split_string(hex_array(modulus), "        ", 45))
            lines.append(f"    Exponent: {numbers.e}")
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            lines.append(f"    Public Key: ({public_key.key_size} bit)")
            lines.append(f"    Curve: {public_key.curve.name}")
        return lines


def from_x509_certificates(certificates: Sequence[x509.Certificate]) -> Tuple[Certificate, ...]:
    return tuple(Certificate(i, x509_certificate=c) for i, c in enumerate(certificates, start=1))


def from_bytes(data: bytes) -> Tuple[Certificate, ...]:
    """
    Convert raw bytes to certificates; a bundle or chain yields all of them.

    Every PEM block keeps its slot: a block that fails to parse becomes a
    Certificate carrying the error at its position. Data without PEM armor
    is tried as a single DER certificate.

    Raises:
        BadCertError: If there is no PEM block and the data is not DER
    """
    blocks = decode_pem_blocks(data)
    if blocks:
        return tuple(Certificate.from_pem_block(i, block) for i, block in enumerate(blocks, start=1))
    if data[:1] == b"\x30":
        return (Certificate.from_der(1, data),)
    raise BadCertError("cannot find any PEM block")


def remove_expired(certificates: Sequence[Certificate], now: Optional[datetime] = None) -> Tuple[Certificate, ...]:
    now = now or now_utc()
    return tuple(c for c in certificates if not c.is_expired(now))


def remove_duplicates(certificates: Sequence[Certificate]) -> Tuple[Certificate, ...]:
    """Drop repeated certificates (same PEM encoding); first occurrence wins."""
    seen = set()
    out = []
    for c in certificates:
        if c.error is None:
            pem = c.to_pem()
            if pem in seen:
                continue
            seen.add(pem)
        out.append(c)
    return tuple(out)


def subject_like(certificates: Sequence[Certificate], subject: str) -> Tuple[Certificate, ...]:
    return tuple(c for c in certificates if subject in c.subject_string())


def issuer_like(certificates: Sequence[Certificate], issuer: str) -> Tuple[Certificate, ...]:
    return tuple(c for c in certificates if issuer in c.issuer_string())


def expiry_key(certificate: Certificate):
    """Sort key: by notAfter, certificates with an error last."""
    if certificate.error is not None:
        return (1, datetime.max)
    return (0, certificate.not_after.replace(tzinfo=None))


def sort_by_expiry(certificates: Sequence[Certificate]) -> Tuple[Certificate, ...]:
    return tuple(sorted(certificates, key=expiry_key))


def is_self_signed(cert: x509.Certificate) -> bool:
    """
    Check if certificate is self-issued.

    Args:
        cert: Certificate to check

    Returns:
        True if subject and issuer are the same name
    """
    return cert.subject == cert.issuer


def verify_certificate_chain(cert: x509.Certificate, ca_cert: x509.Certificate) -> bool:
    """
    Verify that a certificate is signed by the CA.

    Only the issuer name and the signature are checked; validity period and
    host names are left out so expired or mismatched chains still show up.

    Args:
        cert: Certificate to verify
        ca_cert: Candidate issuer certificate

    Returns:
        True if certificate is signed by CA

    Raises:
        BadCertError: If verification fails
    """
    try:
        cert.verify_directly_issued_by(ca_cert)
        return True
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm) as e:
        raise BadCertError(f"Certificate signature verification failed: {e}")


def _read_roots(path: Path) -> List[x509.Certificate]:
    try:
        return x509.load_pem_x509_certificates(path.read_bytes())
    except (OSError, ValueError, x509.InvalidVersion) as e:
        logger.debug(f"trust store {path}: {e}")
        return []


def load_system_roots() -> List[x509.Certificate]:
    """Trusted roots from the default OpenSSL verify paths (cafile and capath)."""
    paths = ssl.get_default_verify_paths()
    roots: List[x509.Certificate] = []
    if paths.cafile and os.path.isfile(paths.cafile):
        roots.extend(_read_roots(Path(paths.cafile)))
    if paths.capath and os.path.isdir(paths.capath):
        for entry in sorted(Path(paths.capath).iterdir()):
            if entry.is_file():
                roots.extend(_read_roots(entry))

    unique = {root.fingerprint(hashes.SHA256()): root for root in roots}
    logger.debug(f"loaded {len(unique)} trusted roots")
    return list(unique.values())


def _chains_from(
    chain: List[x509.Certificate],
    intermediates: List[x509.Certificate],
    roots: List[x509.Certificate],
    max_depth: int,
) -> List[List[x509.Certificate]]:
    current = chain[-1]
    found = []
    for root in roots:
        if root.subject == current.issuer and _issued_by(current, root):
            found.append(chain + [root])
    if len(chain) >= max_depth:
        return found
    for intermediate in intermediates:
        if intermediate in chain or intermediate.subject != current.issuer:
            continue
        if _issued_by(current, intermediate):
            found.extend(_chains_from(chain + [intermediate], intermediates, roots, max_depth))
    return found


def _issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        return verify_certificate_chain(cert, issuer)
    except BadCertError:
        return False


def build_chains(
    certificates: Sequence[Certificate],
    roots: Sequence[x509.Certificate],
    max_depth: int = 10,
) -> List[Tuple[Certificate, ...]]:
    """
    Build verified chains for every end-entity certificate.

    Intermediates are taken from the same certificate list (not by index,
    since a bundle file has no fixed leaf position) and chains end at a
    trusted root.

    Raises:
        BadCertError: If an end-entity certificate has no chain to a root
    """
    usable = [c for c in certificates if c.error is None]
    intermediates = [c.x509_certificate for c in usable if c.type == "intermediate"]
    chains: List[Tuple[Certificate, ...]] = []
    for c in usable:
        if c.type != "end-entity":
            continue
        found = _chains_from([c.x509_certificate], intermediates, list(roots), max_depth)
        if not found:
            raise BadCertError(
                f"certificate {c.subject_string()} is not signed by a trusted authority"
            )
        chains.extend(from_x509_certificates(chain) for chain in found)
    return chains
