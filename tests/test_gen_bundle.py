"""Tests for the sample bundle script."""

from certinfo import location
from certinfo.crypto import pki
from scripts.gen_bundle import create_bundle


def test_create_bundle(tmp_path, capsys):
    root_path, bundle_path = create_bundle(tmp_path / "certs", cn="svc.example", valid_days=30)

    assert "[OK]" in capsys.readouterr().out
    roots = [c.x509_certificate for c in pki.from_bytes(root_path.read_bytes())]
    bundle = location.load_certificates_from_file(str(bundle_path))

    assert [c.type for c in bundle.certificates] == ["end-entity", "intermediate"]
    assert bundle.certificates[0].dns_names == ["svc.example"]
    assert len(bundle.chains(roots)) == 1
