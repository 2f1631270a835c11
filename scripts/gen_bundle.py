"""Create a root CA, an intermediate CA and a leaf certificate, and write them as PEM bundles."""

import argparse
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Sequence, Tuple

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


@dataclass(frozen=True)
class Issued:
    certificate: x509.Certificate
    private_key: object

    def pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)


def generate_key(key_type: str = "ec"):
    """EC P-256 keys by default, RSA 2048 on request."""
    if key_type == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=2048, backend=default_backend())
    return ec.generate_private_key(ec.SECP256R1(), default_backend())


def build_name(cn: str, organization: str = "certinfo") -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        x509.NameAttribute(NameOID.COMMON_NAME, cn),
    ])


def issue_certificate(
    cn: str,
    issuer: Optional[Issued] = None,
    ca: bool = False,
    path_length: Optional[int] = None,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
    extensions: Sequence[Tuple[x509.ExtensionType, bool]] = (),
    key_type: str = "ec",
    serial_number: Optional[int] = None,
    leaf_extensions: bool = True,
) -> Issued:
    """
    Issue an X.509 certificate, self-signed when issuer is None.

    Args:
        cn: Common Name for the subject
        issuer: Signing certificate and key
        ca: Add BasicConstraints CA=true and CA key usages
        path_length: BasicConstraints pathLenConstraint (CA only)
        not_before: Start of validity (default: now - 1 day)
        not_after: End of validity (default: not_before + 365 days)
        extensions: Extra (extension, critical) pairs
        key_type: "ec" or "rsa"
        serial_number: Fixed serial, random when None
        leaf_extensions: Add DNS SAN and server/client auth EKU to non CA certificates

    Returns:
        The certificate with its private key
    """
    private_key = generate_key(key_type)
    not_before = not_before or datetime.now(timezone.utc) - timedelta(days=1)
    not_after = not_after or not_before + timedelta(days=365)
    subject = build_name(cn)
    issuer_name = issuer.certificate.subject if issuer else subject
    signing_key = issuer.private_key if issuer else private_key
    issuer_public_key = signing_key.public_key()

    builder = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer_name
    ).public_key(
        private_key.public_key()
    ).serial_number(
        serial_number or x509.random_serial_number()
    ).not_valid_before(
        not_before
    ).not_valid_after(
        not_after
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
        critical=False,
    )

    if ca:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=path_length),
            critical=True,
        ).add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    elif leaf_extensions:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(cn)]),
            critical=False,
        ).add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]),
            critical=False,
        )

    for extension, critical in extensions:
        builder = builder.add_extension(extension, critical=critical)

    cert = builder.sign(signing_key, hashes.SHA256(), default_backend())
    return Issued(cert, private_key)


def create_bundle(output_dir: Path, cn: str = "localhost", valid_days: int = 365) -> Tuple[Path, Path]:
    """
    Write root.pem (root CA) and bundle.pem (leaf followed by intermediate).

    Args:
        output_dir: Directory for the PEM files
        cn: Leaf Common Name, also its DNS SAN
        valid_days: Leaf validity period in days

    Returns:
        Paths of root.pem and bundle.pem
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    root = issue_certificate("certinfo Root CA", ca=True, not_after=datetime.now(timezone.utc) + timedelta(days=3650))
    intermediate = issue_certificate("certinfo Intermediate CA", issuer=root, ca=True, path_length=0)
    now = datetime.now(timezone.utc)
    leaf = issue_certificate(cn, issuer=intermediate, not_before=now, not_after=now + timedelta(days=valid_days))

    root_path = output_dir / "root.pem"
    root_path.write_bytes(root.pem())
    print(f"[OK] Root CA certificate saved to: {root_path}")

    bundle_path = output_dir / "bundle.pem"
    bundle_path.write_bytes(leaf.pem() + intermediate.pem())
    print(f"[OK] Leaf and intermediate bundle saved to: {bundle_path}")
    print(f"  Valid until: {leaf.certificate.not_valid_after_utc}")
    return root_path, bundle_path


def main():
    parser = argparse.ArgumentParser(description="Create a sample certificate bundle")
    parser.add_argument(
        "--cn",
        type=str,
        default="localhost",
        help="Common Name (hostname) for the leaf certificate"
    )
    parser.add_argument(
        "--out",
        type=str,
        default="certs",
        help="Output directory for the PEM files (default: certs)"
    )
    parser.add_argument(
        "--valid-days",
        type=int,
        default=365,
        help="Leaf certificate validity period in days (default: 365)"
    )
    args = parser.parse_args()

    create_bundle(Path(args.out), args.cn, args.valid_days)


if __name__ == "__main__":
    main()
