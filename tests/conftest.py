"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from scripts.gen_bundle import issue_certificate


@pytest.fixture(scope="session")
def root_ca():
    """Self-signed root CA."""
    return issue_certificate(
        "Test Root CA",
        ca=True,
        not_after=datetime.now(timezone.utc) + timedelta(days=3650),
    )


@pytest.fixture(scope="session")
def intermediate_ca(root_ca):
    """Intermediate CA signed by the root, pathLen 0."""
    return issue_certificate("Test Intermediate CA", issuer=root_ca, ca=True, path_length=0)


@pytest.fixture(scope="session")
def leaf(intermediate_ca):
    """End-entity certificate for leaf.example signed by the intermediate."""
    return issue_certificate("leaf.example", issuer=intermediate_ca, serial_number=0x0A1B)


@pytest.fixture(scope="session")
def expired_leaf(intermediate_ca):
    """End-entity certificate that expired a year ago."""
    now = datetime.now(timezone.utc)
    return issue_certificate(
        "expired.example",
        issuer=intermediate_ca,
        not_before=now - timedelta(days=730),
        not_after=now - timedelta(days=365),
    )


@pytest.fixture
def bundle_pem(leaf, intermediate_ca):
    """Leaf followed by its intermediate, as a server would send them."""
    return leaf.pem() + intermediate_ca.pem()


@pytest.fixture(scope="session")
def unknown_key_certificate(leaf):
    """The leaf with its SPKI algorithm switched to an OID cryptography cannot load."""
    data = leaf.certificate.public_bytes(serialization.Encoding.DER)
    # id-ecPublicKey 1.2.840.10045.2.1 -> 1.2.840.10045.2.9
    data = data.replace(b"\x06\x07\x2a\x86\x48\xce\x3d\x02\x01", b"\x06\x07\x2a\x86\x48\xce\x3d\x02\x09", 1)
    return x509.load_der_x509_certificate(data)
