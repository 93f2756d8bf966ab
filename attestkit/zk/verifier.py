"""
Attestation Verification
========================

Cryptographic off-chain verification of attestations through the
prover backend's ``verify`` capability and the circuit's verification key.

This is separate from the challenge protocol, whose checks are
structural only.

Version: 0.1.0
"""

import time
from collections.abc import Sequence

from attestkit.errors import CircuitLoadError
from attestkit.logging import get_logger
from attestkit.zk.backends import ProverBackend
from attestkit.zk.circuits import CircuitRegistry
from attestkit.zk.models import Attestation, AttestationKind, VerificationResult, ZKProof


logger = get_logger(__name__)


class AttestationVerifier:
    """Verifies proofs against per-kind verification keys."""

    def __init__(self, backend: ProverBackend, registry: CircuitRegistry) -> None:
        self.backend = backend
        self.registry = registry

    async def verify(
        self,
        kind: AttestationKind,
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> VerificationResult:
        """
        Verify a proof off-chain.

        A missing or unreadable verification key yields ``valid=False``
        with an error message rather than an exception.
        """
        kind = AttestationKind(kind)
        commitment = public_signals[0] if public_signals else None

        try:
            circuit = await self.registry.get(kind)
        except CircuitLoadError as e:
            return VerificationResult(
                valid=False,
                kind=kind,
                commitment=commitment,
                verification_time_ms=0,
                error=e.message,
            )

        if circuit.verification_key is None:
            return VerificationResult(
                valid=False,
                kind=kind,
                commitment=commitment,
                verification_time_ms=0,
                error=f"Verification key not found: {circuit.artifacts.vkey_path}",
            )

        start_time = time.perf_counter()
        is_valid = await self.backend.verify(circuit.verification_key, proof, list(public_signals))
        verification_time_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            "zk_proof_verified",
            kind=kind.value,
            valid=is_valid,
            verification_time_ms=verification_time_ms,
        )

        return VerificationResult(
            valid=is_valid,
            kind=kind,
            commitment=commitment,
            verification_time_ms=verification_time_ms,
            error=None if is_valid else "Proof verification failed",
        )

    async def verify_attestation(self, attestation: Attestation) -> VerificationResult:
        """Verify an attestation produced by the engine."""
        return await self.verify(attestation.kind, attestation.proof, attestation.public_signals)
