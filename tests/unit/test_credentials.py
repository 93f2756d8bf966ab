"""
Unit Tests for Credential Parsing
=================================
"""

import base64
from datetime import date

import pytest

from attestkit.credentials import CredentialParser, QRAttributeParser, region_code
from attestkit.errors import CredentialParseError


class TestQRAttributeParser:
    """Tests for QR attribute payloads."""

    def test_parse_xml(self, qr_payload):
        record = QRAttributeParser().parse(qr_payload)

        assert record.reference_id == "123456789012"
        assert record.name == "Asha Rao"
        assert record.date_of_birth == date(1995, 1, 1)
        assert record.region == "KA"

    def test_parse_base64(self, qr_payload):
        encoded = base64.b64encode(qr_payload.encode()).decode()
        assert QRAttributeParser().parse(encoded).region == "KA"

    def test_parse_bytes_and_reference_id(self):
        raw = b'referenceId="4321" name="R" dob="1990-05-05" state="MH"'
        record = QRAttributeParser().parse(raw)

        assert record.reference_id == "4321"
        assert record.region == "MH"

    def test_missing_attributes(self):
        with pytest.raises(CredentialParseError) as exc_info:
            QRAttributeParser().parse('name="No Id" state="Goa"')

        assert exc_info.value.code == "INVALID_CREDENTIAL"
        assert exc_info.value.details["missing"] == ["uid", "dob"]

    def test_bad_date(self):
        with pytest.raises(CredentialParseError, match="failed validation"):
            QRAttributeParser().parse('uid="1" dob="yesterday" state="KA"')

    def test_not_a_credential(self):
        with pytest.raises(CredentialParseError):
            QRAttributeParser().parse("%%% definitely not base64 %%%")

    def test_empty(self):
        with pytest.raises(CredentialParseError, match="Empty"):
            QRAttributeParser().parse("")

    def test_satisfies_protocol(self):
        assert isinstance(QRAttributeParser(), CredentialParser)


@pytest.mark.parametrize(
    ("state", "code"),
    [
        ("Karnataka", "KA"),
        ("  tamil   nadu ", "TN"),
        ("Jammu & Kashmir", "JK"),
        ("Orissa", "OD"),
        ("dl", "DL"),
    ],
)
def test_region_code(state, code):
    assert region_code(state) == code


def test_unknown_state():
    with pytest.raises(CredentialParseError, match="Unknown state"):
        region_code("Atlantis")
