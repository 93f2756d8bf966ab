"""
Attestation Generation Module
=============================

Zero-knowledge identity attestations: age, region and uniqueness.

Usage:
    from attestkit.zk import ProofEngine, SnarkjsBackend, AgeParams

    engine = ProofEngine(backend=SnarkjsBackend())
    attestation = await engine.generate_age(record, AgeParams(threshold=18))

    batch = await engine.generate_batch(record, [
        {"kind": "age", "params": {"threshold": 18}},
        {"kind": "region", "params": {"allowed_regions": ["KA", "MH"]}},
    ])

Version: 0.1.0
"""

from attestkit.zk.backends import ProverBackend, ProverError, SnarkjsBackend
from attestkit.zk.cache import ProofCache
from attestkit.zk.circuits import Circuit, CircuitArtifacts, CircuitRegistry
from attestkit.zk.commitment import CommitmentFunction, Sha256FieldCommitment
from attestkit.zk.engine import ProofEngine, fingerprint
from attestkit.zk.models import (
    AgeParams,
    Attestation,
    AttestationKind,
    AttestationMetadata,
    AttestationParams,
    AttributeRecord,
    BatchError,
    BatchRequest,
    BatchResult,
    CacheEntry,
    CacheStats,
    ProofOutput,
    RegionParams,
    UniquenessParams,
    VerificationResult,
    ZKProof,
    parse_params,
)
from attestkit.zk.verifier import AttestationVerifier


__all__ = [
    # Engine
    "ProofEngine",
    "fingerprint",
    "ProofCache",
    # Circuits
    "Circuit",
    "CircuitArtifacts",
    "CircuitRegistry",
    # Capabilities
    "ProverBackend",
    "ProverError",
    "SnarkjsBackend",
    "CommitmentFunction",
    "Sha256FieldCommitment",
    "AttestationVerifier",
    # Models
    "AttestationKind",
    "AttributeRecord",
    "AgeParams",
    "RegionParams",
    "UniquenessParams",
    "AttestationParams",
    "parse_params",
    "Attestation",
    "AttestationMetadata",
    "ZKProof",
    "ProofOutput",
    "CacheEntry",
    "CacheStats",
    "BatchRequest",
    "BatchError",
    "BatchResult",
    "VerificationResult",
]
