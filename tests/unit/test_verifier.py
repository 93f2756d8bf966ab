"""
Unit Tests for Off-chain Verification
=====================================
"""

import pytest

from attestkit.zk import AttestationKind, AttestationVerifier, CircuitArtifacts, CircuitRegistry


class TestAttestationVerifier:
    """Tests for AttestationVerifier."""

    @pytest.mark.asyncio
    async def test_valid_attestation(self, engine, prover, registry, record):
        attestation = await engine.generate_age(record, {"threshold": 18})
        verifier = AttestationVerifier(prover, registry)

        result = await verifier.verify_attestation(attestation)

        assert result.valid
        assert result.kind is AttestationKind.AGE
        assert result.commitment == attestation.commitment
        assert result.error is None
        assert prover.verify_calls == 1

    @pytest.mark.asyncio
    async def test_invalid_proof(self, prover, registry, attestation):
        prover.verify_result = False

        result = await AttestationVerifier(prover, registry).verify_attestation(attestation)

        assert not result.valid
        assert result.error == "Proof verification failed"

    @pytest.mark.asyncio
    async def test_missing_verification_key(self, prover, registry, circuits_dir, attestation):
        CircuitArtifacts.conventional(circuits_dir, AttestationKind.AGE).vkey_path.unlink()

        result = await AttestationVerifier(prover, registry).verify_attestation(attestation)

        assert not result.valid
        assert "Verification key not found" in result.error
        assert prover.verify_calls == 0

    @pytest.mark.asyncio
    async def test_missing_circuit(self, prover, tmp_path, attestation):
        registry = CircuitRegistry(base_dir=tmp_path / "none")

        result = await AttestationVerifier(prover, registry).verify_attestation(attestation)

        assert not result.valid
        assert result.error
