"""Tests for the typed extension payload decoders."""

import pytest
from cryptography import x509
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID, NameOID

from certinfo.crypto import decoders
from certinfo.crypto.asn1 import MalformedEncoding, UnsupportedChoice
from certinfo.crypto.decoders import (
    KEY_USAGE_LABELS,
    AuthorityKeyIdentifier,
    BasicConstraints,
    DistributionPoint,
)
from certinfo.crypto.names import GeneralNameType
from der import bit_string, boolean, context, integer, integer_content, octet_string, oid, seq, utf8


KEY_USAGE_FIELDS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
    "encipher_only",
    "decipher_only",
)


def key_usage(positions):
    return x509.KeyUsage(**{f: i in positions for i, f in enumerate(KEY_USAGE_FIELDS)}).public_bytes()


class TestKeyUsage:
    """Test KeyUsage BIT STRING labels."""

    def test_set_bits_in_order(self):
        assert decoders.decode_key_usage(key_usage({5, 0})) == ["Digital Signature", "Key Cert Sign"]

    def test_all_bits(self):
        assert decoders.decode_key_usage(key_usage(set(range(9)))) == list(KEY_USAGE_LABELS)

    @pytest.mark.parametrize("positions", [[0], [2, 3], [1, 4, 6], [4, 7, 8]])
    def test_encoded_bits_decode_back(self, positions):
        labels = decoders.decode_key_usage(key_usage(set(positions)))
        assert labels == [KEY_USAGE_LABELS[i] for i in sorted(positions)]

    def test_custom_labels(self):
        labels = tuple(f"bit {i}" for i in range(9))
        assert decoders.decode_key_usage(key_usage({6}), labels) == ["bit 6"]

    def test_trailing_data(self):
        with pytest.raises(MalformedEncoding, match="trailing"):
            decoders.decode_key_usage(bit_string([0]) + b"\x00")


class TestBasicConstraints:
    """Test BasicConstraints defaults and path length."""

    def test_ca_with_path_len(self):
        data = x509.BasicConstraints(ca=True, path_length=3).public_bytes()
        assert decoders.decode_basic_constraints(data) == BasicConstraints(True, 3)

    def test_empty_sequence_defaults(self):
        data = x509.BasicConstraints(ca=False, path_length=None).public_bytes()
        assert decoders.decode_basic_constraints(data) == BasicConstraints(False, 0)

    def test_path_len_without_ca(self):
        # cryptography refuses a path length on a non-CA
        assert decoders.decode_basic_constraints(seq(integer(2))) == BasicConstraints(False, 2)

    def test_negative_path_len(self):
        with pytest.raises(MalformedEncoding, match="negative"):
            decoders.decode_basic_constraints(seq(boolean(True), integer(-1)))

    def test_unexpected_field(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_basic_constraints(seq(boolean(True), utf8("x")))


class TestAuthorityKeyIdentifier:
    """Test AuthorityKeyIdentifier fields."""

    def test_key_identifier_only(self):
        data = x509.AuthorityKeyIdentifier(b"\xaa\xbb\xcc", None, None).public_bytes()
        assert decoders.decode_authority_key_identifier(data) == AuthorityKeyIdentifier(b"\xaa\xbb\xcc")

    def test_all_fields(self):
        directory = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Example CA")])
        data = x509.AuthorityKeyIdentifier(
            key_identifier=b"\x01",
            authority_cert_issuer=[x509.DirectoryName(directory), x509.DNSName("ca.example")],
            authority_cert_serial_number=4660,
        ).public_bytes()

        aki = decoders.decode_authority_key_identifier(data)

        assert aki.key_identifier == b"\x01"
        assert aki.authority_cert_issuer == ("Directory Name: CN=Example CA", "DNS Name: ca.example")
        assert aki.authority_cert_serial_number == 4660

    def test_serial_without_issuer(self):
        # cryptography requires issuer and serial together
        aki = decoders.decode_authority_key_identifier(seq(context(2, integer_content(7))))
        assert aki.authority_cert_issuer == ()
        assert aki.authority_cert_serial_number == 7

    def test_unknown_field(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_authority_key_identifier(seq(context(5, b"")))


class TestSubjectKeyIdentifier:

    def test_octet_string(self):
        data = x509.SubjectKeyIdentifier(b"\x01\x02").public_bytes()
        assert decoders.decode_subject_key_identifier(data) == b"\x01\x02"

    def test_wrong_type(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_subject_key_identifier(seq())


class TestCertificatePolicies:

    def test_policies_with_qualifiers(self):
        data = x509.CertificatePolicies([
            x509.PolicyInformation(x509.ObjectIdentifier("2.23.140.1.2.1"), None),
            x509.PolicyInformation(
                x509.ObjectIdentifier("1.3.6.1.4.1.44947.1.1.1"),
                [
                    "http://cps.example/cps",
                    x509.UserNotice(x509.NoticeReference("Example Org", [1, 2]), "notice text"),
                    x509.UserNotice(None, "explicit only"),
                ],
            ),
        ]).public_bytes()

        policies = decoders.decode_certificate_policies(data)

        assert [p.policy_identifier for p in policies] == ["2.23.140.1.2.1", "1.3.6.1.4.1.44947.1.1.1"]
        assert policies[0].qualifiers == ()
        assert policies[1].qualifiers == ("1.3.6.1.5.5.7.2.1", "1.3.6.1.5.5.7.2.2", "1.3.6.1.5.5.7.2.2")

    def test_policy_identifier_not_oid(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_certificate_policies(seq(seq(utf8("policy"))))


class TestExtendedKeyUsage:

    def test_oids_in_order(self):
        data = x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, x509.ObjectIdentifier("1.2.3.4.5.9.9.9")])
        assert decoders.decode_extended_key_usage(data.public_bytes()) == ["1.3.6.1.5.5.7.3.1", "1.2.3.4.5.9.9.9"]

    def test_non_oid_element(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_extended_key_usage(seq(utf8("server")))


class TestCRLDistributionPoints:
    """Test DistributionPoint and the DistributionPointName CHOICE."""

    def test_full_name(self):
        data = x509.CRLDistributionPoints([
            x509.DistributionPoint([x509.UniformResourceIdentifier("http://crl.example/ca.crl")], None, None, None),
        ]).public_bytes()

        points = decoders.decode_crl_distribution_points(data)

        assert points == [DistributionPoint(("URI: http://crl.example/ca.crl",))]

    def test_absent_fields_give_empty_point(self):
        # cryptography refuses a DistributionPoint with every field absent
        points = decoders.decode_crl_distribution_points(seq(seq()))

        assert points == [DistributionPoint()]
        assert points[0].is_empty()

    def test_reasons_and_directory_issuer(self):
        issuer = x509.Name([
            x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
            x509.NameAttribute(NameOID.COMMON_NAME, "issuer"),
        ])
        data = x509.CRLDistributionPoints([
            x509.DistributionPoint(
                full_name=None,
                relative_name=None,
                reasons=frozenset([x509.ReasonFlags.key_compromise, x509.ReasonFlags.ca_compromise]),
                crl_issuer=[x509.DirectoryName(issuer)],
            ),
        ]).public_bytes()

        point = decoders.decode_crl_distribution_points(data)[0]

        assert point.distribution_point == ()
        assert point.reasons == ("keyCompromise", "cACompromise")
        assert point.crl_issuer == ("Directory Name: CN=issuer,C=US",)

    def test_name_relative_to_crl_issuer(self):
        relative = x509.RelativeDistinguishedName([x509.NameAttribute(NameOID.COMMON_NAME, "crl")])
        data = x509.CRLDistributionPoints([
            x509.DistributionPoint(None, relative, None, [x509.DNSName("issuer.example")]),
        ]).public_bytes()

        point = decoders.decode_crl_distribution_points(data)[0]

        assert point.distribution_point == ("CN: crl",)
        assert point.crl_issuer == ("DNS Name: issuer.example",)

    def test_unsupported_choice(self):
        data = seq(seq(context(0, context(2, b"x"), constructed=True)))
        with pytest.raises(UnsupportedChoice):
            decoders.decode_crl_distribution_points(data)


class TestAuthorityInformationAccess:

    def test_access_descriptions(self):
        data = x509.AuthorityInformationAccess([
            x509.AccessDescription(AuthorityInformationAccessOID.OCSP, x509.UniformResourceIdentifier("http://ocsp.example")),
            x509.AccessDescription(
                AuthorityInformationAccessOID.CA_ISSUERS, x509.UniformResourceIdentifier("http://ca.example/ca.crt")
            ),
        ]).public_bytes()

        accesses = decoders.decode_authority_information_access(data)

        assert [a.access_method for a in accesses] == ["1.3.6.1.5.5.7.48.1", "1.3.6.1.5.5.7.48.2"]
        assert accesses[0].access_location.kind is GeneralNameType.URI
        assert accesses[1].access_location.text == "http://ca.example/ca.crt"

    def test_missing_location(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_authority_information_access(seq(seq(oid("1.3.6.1.5.5.7.48.1"))))


class TestAltNameAndSCT:

    def test_alt_name(self):
        data = x509.SubjectAlternativeName([x509.DNSName("a.example"), x509.RFC822Name("a@a.example")]).public_bytes()

        names = decoders.decode_alt_name(data)

        assert [n.text for n in names] == ["a.example", "a@a.example"]

    def test_alt_name_trailing_data(self):
        with pytest.raises(MalformedEncoding):
            decoders.decode_alt_name(seq(context(2, b"a.example")) + b"\x05\x00")

    def test_sct_list(self):
        assert decoders.decode_signed_certificate_timestamp_list(octet_string(b"\x00\x02ab")) == b"\x00\x02ab"
