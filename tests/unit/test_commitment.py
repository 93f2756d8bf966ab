"""
Unit Tests for Commitments
==========================
"""

from datetime import date

import pytest

from attestkit.zk.commitment import (
    FIELD_ORDER,
    CommitmentFunction,
    Sha256FieldCommitment,
    generate_nonce,
    nonce_to_field,
    to_field_element,
)


class TestSha256FieldCommitment:
    """Tests for the SHA-256 commitment."""

    def test_deterministic(self):
        commitment = Sha256FieldCommitment()
        assert commitment.commit(["a", 1, date(1995, 1, 1)]) == commitment.commit(["a", 1, date(1995, 1, 1)])

    def test_order_matters(self):
        commitment = Sha256FieldCommitment()
        assert commitment.commit(["a", "b"]) != commitment.commit(["b", "a"])

    def test_domain_separation(self):
        assert Sha256FieldCommitment(b"one").commit(["x"]) != Sha256FieldCommitment(b"two").commit(["x"])

    def test_output_is_field_element(self):
        value = int(Sha256FieldCommitment().commit(["123456789012", "dao-42", "1"]))
        assert 0 <= value < FIELD_ORDER

    def test_empty_input_rejected(self):
        with pytest.raises(ValueError):
            Sha256FieldCommitment().commit([])

    def test_satisfies_protocol(self):
        assert isinstance(Sha256FieldCommitment(), CommitmentFunction)


def test_field_element_mapping():
    assert to_field_element(FIELD_ORDER + 5) == 5
    assert to_field_element(date(1995, 1, 1)) == 19950101
    assert 0 <= to_field_element("KA") < FIELD_ORDER


def test_nonce_shape():
    nonce = generate_nonce()
    assert len(nonce) == 32
    assert nonce != generate_nonce()
    assert nonce_to_field(nonce) == str(int(nonce, 16))
    assert nonce_to_field("not-hex").isdigit()
