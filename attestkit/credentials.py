"""
Credential Parsing
==================

Turns raw identity credential payloads into ``AttributeRecord``s.

``QRAttributeParser`` handles QR payloads carrying attribute-style XML,
either ``<PrintLetterBarcodeData uid="..." name="..." .../>`` or bare
``uid="..." name="..."`` pairs, optionally base64 encoded.
Signature validation is not performed.
"""

import base64
import binascii
import re
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from attestkit.errors import CredentialParseError
from attestkit.logging import get_logger
from attestkit.zk.models import AttributeRecord


logger = get_logger(__name__)

ATTRIBUTE_PATTERN = re.compile(r'(\w+)="([^"]*)"')

STATE_CODES: dict[str, str] = {
    "andaman and nicobar islands": "AN",
    "andhra pradesh": "AP",
    "arunachal pradesh": "AR",
    "assam": "AS",
    "bihar": "BR",
    "chandigarh": "CH",
    "chhattisgarh": "CG",
    "daman and diu": "DD",
    "delhi": "DL",
    "nct of delhi": "DL",
    "dadra and nagar haveli": "DN",
    "goa": "GA",
    "gujarat": "GJ",
    "himachal pradesh": "HP",
    "haryana": "HR",
    "jharkhand": "JH",
    "jammu and kashmir": "JK",
    "karnataka": "KA",
    "kerala": "KL",
    "ladakh": "LA",
    "lakshadweep": "LD",
    "maharashtra": "MH",
    "meghalaya": "ML",
    "manipur": "MN",
    "madhya pradesh": "MP",
    "mizoram": "MZ",
    "nagaland": "NL",
    "odisha": "OD",
    "orissa": "OD",
    "punjab": "PB",
    "puducherry": "PY",
    "pondicherry": "PY",
    "rajasthan": "RJ",
    "sikkim": "SK",
    "tamil nadu": "TN",
    "tripura": "TR",
    "telangana": "TS",
    "uttarakhand": "UK",
    "uttar pradesh": "UP",
    "west bengal": "WB",
}

_KNOWN_CODES = frozenset(STATE_CODES.values())


def region_code(state: str) -> str:
    """
    Map a state name or code to its region code.

    Raises:
        CredentialParseError: Unknown state.
    """
    cleaned = " ".join(state.replace("&", "and").split()).lower()
    if cleaned.upper() in _KNOWN_CODES:
        return cleaned.upper()
    try:
        return STATE_CODES[cleaned]
    except KeyError:
        raise CredentialParseError(f"Unknown state: {state!r}") from None


@runtime_checkable
class CredentialParser(Protocol):
    """Produces a validated attribute record from raw credential data."""

    def parse(self, raw: str | bytes) -> AttributeRecord: ...


class QRAttributeParser:
    """Parser for attribute-style identity QR payloads."""

    REQUIRED = ("dob", "state")

    def _decode(self, raw: str | bytes) -> str:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        text = raw.strip()
        if "=" in text and '"' in text:
            return text
        try:
            return base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise CredentialParseError("Credential payload is neither XML nor base64") from e

    def attributes(self, raw: str | bytes) -> dict[str, str]:
        """Raw attribute pairs found in the payload."""
        return dict(ATTRIBUTE_PATTERN.findall(self._decode(raw)))

    def parse(self, raw: str | bytes) -> AttributeRecord:
        """
        Extract an attribute record.

        Raises:
            CredentialParseError: Missing or malformed attributes.
        """
        if not raw:
            raise CredentialParseError("Empty credential payload")

        attrs = self.attributes(raw)
        reference_id = attrs.get("uid") or attrs.get("referenceId")
        missing = [name for name in self.REQUIRED if not attrs.get(name)]
        if not reference_id:
            missing.insert(0, "uid")
        if missing:
            raise CredentialParseError(
                "Credential is missing required attributes",
                details={"missing": missing},
            )

        try:
            record = AttributeRecord(
                reference_id=reference_id,
                name=attrs.get("name", ""),
                date_of_birth=attrs["dob"],
                region=region_code(attrs["state"]),
            )
        except ValidationError as e:
            raise CredentialParseError(
                "Credential attributes failed validation",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

        logger.debug("credential_parsed", region=record.region)
        return record
