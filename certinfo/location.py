"""Certificate locations: where certificates were loaded from, and the loaders."""

import logging
import socket
import ssl
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pyperclip

from certinfo.crypto import pki
from certinfo.crypto.pki import BadCertError, Certificate, PKIError


logger = logging.getLogger(__name__)

TLS_DIAL_TIMEOUT = 5.0

TLS_VERSIONS = {
    ssl.TLSVersion.SSLv3: "SSLv3 - Deprecated!",
    ssl.TLSVersion.TLSv1: "TLS 1.0 - Deprecated!",
    ssl.TLSVersion.TLSv1_1: "TLS 1.1 - Deprecated!",
    ssl.TLSVersion.TLSv1_2: "TLS 1.2",
    ssl.TLSVersion.TLSv1_3: "TLS 1.3",
}


def tls_format(tls_version: int) -> str:
    """Display form of a TLS protocol version number (0x0303 -> "TLS 1.2")."""
    if tls_version == 0:
        return ""
    for version, name in TLS_VERSIONS.items():
        if version.value == tls_version:
            return name
    return f"TLS Version {tls_version} (unknown)"


@dataclass(frozen=True)
class CertificateLocation:
    """
    Certificates loaded from one file, stdin, the clipboard or a TLS endpoint.

    A location with an error carries no certificates. ``tls_version`` is the
    negotiated protocol number for network locations, 0 otherwise.
    """
    path: str
    certificates: Tuple[Certificate, ...] = ()
    error: Optional[str] = None
    tls_version: int = 0

    def name(self) -> str:
        if self.tls_version == 0:
            return self.path
        return f"{self.path} {tls_format(self.tls_version)}"

    def remove_expired(self, now: Optional[datetime] = None) -> "CertificateLocation":
        return replace(self, certificates=pki.remove_expired(self.certificates, now))

    def remove_duplicates(self) -> "CertificateLocation":
        return replace(self, certificates=pki.remove_duplicates(self.certificates))

    def subject_like(self, subject: str) -> "CertificateLocation":
        return replace(self, certificates=pki.subject_like(self.certificates, subject))

    def issuer_like(self, issuer: str) -> "CertificateLocation":
        return replace(self, certificates=pki.issuer_like(self.certificates, issuer))

    def sort_by_expiry(self) -> "CertificateLocation":
        return replace(self, certificates=pki.sort_by_expiry(self.certificates))

    def chains(self, roots=None) -> List[Tuple[Certificate, ...]]:
        """
        Verified chains for the end-entity certificates of this location.

        Args:
            roots: Trusted root certificates, system trust store when None

        Raises:
            BadCertError: If an end-entity certificate has no trusted chain
        """
        if roots is None:
            roots = pki.load_system_roots()
        return pki.build_chains(self.certificates, roots)


def remove_expired(locations: Sequence[CertificateLocation], now: Optional[datetime] = None):
    return [location.remove_expired(now) for location in locations]


def remove_duplicates(locations: Sequence[CertificateLocation]):
    return [location.remove_duplicates() for location in locations]


def subject_like(locations: Sequence[CertificateLocation], subject: str):
    return [location.subject_like(subject) for location in locations]


def issuer_like(locations: Sequence[CertificateLocation], issuer: str):
    return [location.issuer_like(issuer) for location in locations]


def _location_expiry_key(location: CertificateLocation):
    if not location.certificates:
        return (1, (1, datetime.max))
    return (0, pki.expiry_key(location.certificates[0]))


def sort_by_expiry(locations: Sequence[CertificateLocation]) -> List[CertificateLocation]:
    """Sort certificates in every location, then locations by their first certificate; empty ones last."""
    return sorted((location.sort_by_expiry() for location in locations), key=_location_expiry_key)


def load_certificate(name: str, data: bytes) -> CertificateLocation:
    """Parse a PEM bundle or DER certificate read from name."""
    try:
        certificates = pki.from_bytes(data.strip())
    except PKIError as e:
        logger.error(f"parse certificate {name} bytes: {e}")
        return CertificateLocation(path=name, error=str(e))
    logger.debug(f"loaded {len(certificates)} certificates from {name}")
    return CertificateLocation(path=name, certificates=certificates)


def load_certificates_from_file(file_name: str) -> CertificateLocation:
    try:
        data = Path(file_name).read_bytes()
    except OSError as e:
        logger.error(f"load certificate from file {file_name}: {e}")
        return CertificateLocation(path=file_name, error=str(e))
    return load_certificate(file_name, data)


def load_certificate_from_stdin() -> CertificateLocation:
    try:
        data = sys.stdin.buffer.read()
    except OSError as e:
        logger.error(f"load certificate from stdin: {e}")
        return CertificateLocation(path="stdin", error=str(e))
    return load_certificate("stdin", data)


def load_certificate_from_clipboard() -> CertificateLocation:
    try:
        content = pyperclip.paste()
    except pyperclip.PyperclipException as e:
        logger.error(f"load certificate from clipboard: {e}")
        return CertificateLocation(path="clipboard", error=str(e))
    return load_certificate("clipboard", content.encode("utf-8"))


def _tls_context(insecure: bool) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _peer_chain(tls: ssl.SSLSocket) -> List[bytes]:
    # full chain as sent by the peer is only exposed from Python 3.13
    if hasattr(tls, "get_unverified_chain"):
        return list(tls.get_unverified_chain())
    return [tls.getpeercert(binary_form=True)]


def load_certificates_from_network(
    addr: str,
    server_name: str = "",
    insecure: bool = False,
) -> CertificateLocation:
    """
    Connect to host:port and read the certificates the server presents.

    Args:
        addr: "host:port"
        server_name: SNI and verification host name, host part of addr when empty
        insecure: Skip chain and host name verification
    """
    host, port = addr.rsplit(":", 1)
    try:
        with socket.create_connection((host, int(port)), timeout=TLS_DIAL_TIMEOUT) as sock:
            with _tls_context(insecure).wrap_socket(sock, server_hostname=server_name or host) as tls:
                version = ssl.TLSVersion[tls.version().replace(".", "_")].value
                x509_certificates = [pki.load_certificate_from_bytes(der) for der in _peer_chain(tls)]
    except (OSError, ValueError, KeyError, BadCertError) as e:
        logger.error(f"load certificate from network {addr}: {e}")
        return CertificateLocation(path=addr, error=str(e))

    logger.debug(f"loaded {len(x509_certificates)} certificates from {addr}")
    return CertificateLocation(
        path=addr,
        certificates=pki.from_x509_certificates(x509_certificates),
        tls_version=version,
    )


def is_tcp_network_address(arg: str) -> bool:
    """True for "host:port" arguments (exactly one colon, numeric port)."""
    parts = arg.split(":")
    if len(parts) != 2:
        return False
    return parts[1].isdigit()


def load_from_args(args: Sequence[str], server_name: str = "", insecure: bool = False) -> List[CertificateLocation]:
    """Load every argument concurrently; results keep the argument order."""
    def load(arg: str) -> CertificateLocation:
        if is_tcp_network_address(arg):
            return load_certificates_from_network(arg, server_name, insecure)
        return load_certificates_from_file(arg)

    if not args:
        return []
    with ThreadPoolExecutor(max_workers=len(args)) as executor:
        return list(executor.map(load, args))


def is_stdin() -> bool:
    """True when standard input is piped or redirected rather than a terminal."""
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False
