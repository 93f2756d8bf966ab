"""
Commitment Functions
====================

A commitment function maps an ordered sequence of values to a single
field element. Contract:

- deterministic: the same ordered inputs always give the same output
- collision-resistant over ordered inputs (order matters)
- output is a decimal string below the BN254 scalar field order

``Sha256FieldCommitment`` satisfies the contract but is NOT
circuit-friendly. Real proofs require a commitment the circuit can
recompute (e.g. Poseidon); inject one through ``CommitmentFunction``.

Version: 0.1.0
"""

import hashlib
import secrets
from collections.abc import Sequence
from datetime import date
from typing import Protocol, runtime_checkable


# BN254 scalar field order
FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

FieldInput = int | str | date


@runtime_checkable
class CommitmentFunction(Protocol):
    """Deterministic commitment over ordered field-element-like inputs."""

    def commit(self, elements: Sequence[FieldInput]) -> str: ...


def to_field_element(value: FieldInput) -> int:
    """
    Map a value into the scalar field.

    Integers are reduced mod field order; dates become YYYYMMDD integers;
    strings are hashed with SHA-256 and reduced.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value % FIELD_ORDER
    if isinstance(value, date):
        return int(value.strftime("%Y%m%d"))
    digest = hashlib.sha256(str(value).encode()).digest()
    return int.from_bytes(digest, "big") % FIELD_ORDER


class Sha256FieldCommitment:
    """
    SHA-256 based stand-in for a circuit-friendly hash.

    Each input is mapped to a field element, encoded as 32 big-endian bytes
    and hashed under a domain tag together with the input count.
    """

    def __init__(self, domain: bytes = b"attestkit/commitment/v1") -> None:
        self.domain = domain

    def commit(self, elements: Sequence[FieldInput]) -> str:
        if not elements:
            raise ValueError("Commitment requires at least one element")

        hasher = hashlib.sha256()
        hasher.update(self.domain)
        hasher.update(len(elements).to_bytes(4, "big"))
        for element in elements:
            hasher.update(to_field_element(element).to_bytes(32, "big"))

        return str(int.from_bytes(hasher.digest(), "big") % FIELD_ORDER)


def generate_nonce() -> str:
    """Random 128-bit nonce as lowercase hex."""
    return secrets.token_hex(16)


def nonce_to_field(nonce: str) -> str:
    """Circuit secret derived from a nonce, as a decimal field element."""
    try:
        return str(int(nonce, 16) % FIELD_ORDER)
    except ValueError:
        return str(to_field_element(nonce))
