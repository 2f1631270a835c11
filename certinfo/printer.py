"""Terminal output: certificate dumps, expiry report and PEM export."""

import logging
from datetime import datetime
from typing import Optional, Sequence

from certinfo.common.utils import expiry_format, split_string, validity_format
from certinfo.crypto.pki import Certificate, PKIError
from certinfo.location import CertificateLocation


logger = logging.getLogger(__name__)


def print_locations(
    locations: Sequence[CertificateLocation],
    chains: bool = False,
    pem: bool = False,
    extensions: bool = False,
    public_key: bool = False,
    signature: bool = False,
    roots=None,
):
    """
    Print every location with its certificates, and optionally their chains.

    Args:
        locations: Loaded locations, in display order
        chains: Also print verified chains of the end-entity certificates
        pem: Print the PEM encoding after each certificate
        extensions: Print all decoded extensions
        public_key: Print subject public key details
        signature: Print the signature value
        roots: Trusted roots for chains, system trust store when None
    """
    for location in locations:
        if location.error is not None:
            print(f"--- [{location.name()}: {location.error}] ---")
            print()
            continue

        print(f"--- [{location.name()}] ---")
        print_certificates(location.certificates, pem, extensions, public_key, signature)

        if not chains:
            continue
        try:
            location_chains = location.chains(roots)
        except PKIError as e:
            logger.error(f"chains for {location.name()}: {e}")
            print(f"--- [chains for {location.name()}: {e}] ---")
            continue

        noun = "chain" if len(location_chains) == 1 else "chains"
        print(f"--- [{len(location_chains)} {noun} for {location.name()}] ---")
        for i, chain in enumerate(location_chains, start=1):
            print(f" -- [chain {i}] -- ")
            print_certificates(chain, pem, extensions, public_key, signature)


def print_certificates(
    certificates: Sequence[Certificate],
    pem: bool = False,
    extensions: bool = False,
    public_key: bool = False,
    signature: bool = False,
):
    for certificate in certificates:
        print_certificate(certificate, extensions, public_key, signature)
        print()
        if pem:
            print(certificate.to_pem().decode("ascii"))


def print_certificate(
    certificate: Certificate,
    extensions: bool = False,
    public_key: bool = False,
    signature: bool = False,
):
    if certificate.error is not None:
        print(certificate.error_string())
        return

    print(f"Version: {certificate.version}")
    print(f"Serial Number: {certificate.serial_number}")
    print(f"Signature Algorithm: {certificate.signature_algorithm}")
    print(f"Type: {certificate.type}")
    print(f"Issuer: {certificate.issuer_string()}")
    print("Validity")
    print(f"    Not Before: {validity_format(certificate.not_before)}")
    print(f"    Not After : {validity_format(certificate.not_after)}")
    print(f"Subject: {certificate.subject_string()}")
    print(f"DNS Names: {', '.join(certificate.dns_names)}")
    print(f"IP Addresses: {', '.join(certificate.ip_addresses)}")
    print(f"Authority Key Id: {certificate.authority_key_id}")
    print("Subject Key")
    print(f"    Id       : {certificate.subject_key_id}")
    print(f"    Algorithm: {certificate.public_key_algorithm}")
    print(f"Key Usage: {', '.join(certificate.key_usage)}")
    print(f"Ext Key Usage: {', '.join(certificate.ext_key_usage)}")
    print(f"CA: {str(certificate.is_ca).lower()}")

    if extensions:
        print("Extensions:")
        for extension in certificate.extensions():
            print(f"    {extension.title()}")
            for line in extension.values:
                print(f"        {line}")

    if public_key:
        print("\n".join(certificate.public_key_info()))

    if signature:
        print(f"Signature Algorithm: {certificate.signature_algorithm}")
        print("Signature Value")
        for line in split_string(certificate.signature, "    ", 54):
            print(line)


def expiry_string(certificate: Certificate, now: Optional[datetime] = None) -> str:
    if certificate.error is not None:
        return "-"
    expiry = expiry_format(certificate.not_after, now)
    if certificate.is_expired(now):
        return f"EXPIRED {expiry} ago"
    return expiry


def print_expiry(locations: Sequence[CertificateLocation], now: Optional[datetime] = None):
    for location in locations:
        if location.error is not None:
            print(f"--- [{location.name()}: {location.error}] ---")
            print()
            continue

        print(f"--- [{location.name()}] ---")
        for certificate in location.certificates:
            print(f"Subject: {certificate.subject_string()}")
            print(f"Expiry: {expiry_string(certificate, now)}")
            print()


def print_pem(locations: Sequence[CertificateLocation], chains: bool = False, roots=None):
    for location in locations:
        for certificate in location.certificates:
            print(certificate.to_pem().decode("ascii"), end="")

        if not chains:
            continue
        try:
            location_chains = location.chains(roots)
        except PKIError as e:
            logger.error(f"chains: {e}")
            continue
        for chain in location_chains:
            for certificate in chain:
                print(certificate.to_pem().decode("ascii"), end="")
