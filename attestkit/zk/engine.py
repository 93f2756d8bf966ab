"""
Proof Generation Engine
=======================

Turns a validated attribute record into attestations.

Each generation call:
1. validates parameters and holder preconditions (before any proving)
2. computes a fingerprint and consults the proof cache
3. on a miss, loads the circuit, builds commitments and circuit inputs,
   and invokes the prover under a per-kind deadline
4. caches the result

Usage:
    engine = ProofEngine(backend=SnarkjsBackend())
    attestation = await engine.generate_age(record, AgeParams(threshold=18))

Version: 0.1.0
"""

import asyncio
import hashlib
import json
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from attestkit.config import ZKSettings, settings
from attestkit.errors import AttestError, ParameterValidationError, ProofGenerationError
from attestkit.logging import get_logger
from attestkit.zk.backends import ProverBackend
from attestkit.zk.cache import Clock, ProofCache, utc_now
from attestkit.zk.circuits import CircuitRegistry
from attestkit.zk.commitment import (
    CommitmentFunction,
    Sha256FieldCommitment,
    generate_nonce,
    nonce_to_field,
)
from attestkit.zk.models import (
    AgeParams,
    Attestation,
    AttestationKind,
    AttestationMetadata,
    AttributeRecord,
    BatchError,
    BatchRequest,
    BatchResult,
    CacheStats,
    ProofOutput,
    RegionParams,
    UniquenessParams,
    parse_params,
)


logger = get_logger(__name__)

DEFAULT_EPOCH = "1"

ParamsInput = AgeParams | RegionParams | UniquenessParams | dict[str, Any]


def fingerprint(kind: AttestationKind, reference_id: str, params: BaseModel) -> str:
    """Deterministic cache key over (kind, holder, canonical params)."""
    canonical = json.dumps(params.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256("|".join((kind.value, reference_id, canonical)).encode()).hexdigest()
    return f"{kind.value}_{digest}"


class ProofEngine:
    """
    Attestation generator with caching and bounded batch concurrency.

    Configuration is read once at construction. The circuit registry and
    the proof cache are the only shared mutable state.
    """

    def __init__(
        self,
        backend: ProverBackend,
        registry: CircuitRegistry | None = None,
        commitment: CommitmentFunction | None = None,
        cache: ProofCache | None = None,
        config: ZKSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or settings.zk
        self.backend = backend
        self.registry = registry or CircuitRegistry(config=self.config)
        self.commitment = commitment or Sha256FieldCommitment()
        self._clock = clock or utc_now
        self.cache = cache or ProofCache(self.config.proof_cache_ttl_seconds, clock=self._clock)

        self.supported_regions = frozenset(self.config.supported_regions_list)
        self.batch_group_size = self.config.batch_group_size
        self._timeouts = {kind: self.config.timeout_for(kind) for kind in AttestationKind}

    # =========================================================================
    # Parameter handling
    # =========================================================================

    def _validate_threshold(self, threshold: Any) -> int:
        if isinstance(threshold, bool) or not isinstance(threshold, int) or not 0 <= threshold <= 150:
            raise ParameterValidationError(
                "Age threshold must be an integer between 0 and 150",
                details={"threshold": threshold},
            )
        return threshold

    def _validate_regions(self, allowed_regions: Sequence[str]) -> None:
        if not allowed_regions:
            raise ParameterValidationError("Allowed regions cannot be empty")

        unsupported = sorted(r for r in allowed_regions if r not in self.supported_regions)
        if unsupported:
            raise ParameterValidationError(
                f"Unsupported regions: {', '.join(unsupported)}",
                details={"unsupported": unsupported},
            )

    def _region_index(self, region: str) -> int:
        return sorted(self.supported_regions).index(region) + 1

    # =========================================================================
    # Proving
    # =========================================================================

    async def _prove(self, kind: AttestationKind, inputs: dict[str, Any]) -> tuple[ProofOutput, int]:
        circuit = await self.registry.get(kind)
        timeout = self._timeouts[kind]
        deadline = asyncio.timeout(timeout)

        start_time = time.perf_counter()
        try:
            async with deadline:
                output = await self.backend.prove(circuit, inputs)
        except TimeoutError as e:
            if not deadline.expired():
                raise ProofGenerationError(
                    f"{kind.value} proof generation failed: {e}",
                    kind=kind.value,
                ) from e
            logger.warning("proof_generation_timeout", kind=kind.value, timeout_seconds=timeout)
            raise ProofGenerationError(
                f"{kind.value} proof generation timed out after {timeout}s",
                kind=kind.value,
                timeout=True,
            ) from e
        except AttestError:
            raise
        except Exception as e:
            logger.error(
                "proof_generation_failed",
                kind=kind.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProofGenerationError(
                f"{kind.value} proof generation failed: {e}",
                kind=kind.value,
            ) from e

        proving_time_ms = int((time.perf_counter() - start_time) * 1000)

        if not output.public_signals:
            raise ProofGenerationError(
                f"{kind.value} prover returned no public signals",
                kind=kind.value,
            )

        logger.info("proof_generated", kind=kind.value, proving_time_ms=proving_time_ms)
        return output, proving_time_ms

    async def _cached(
        self,
        kind: AttestationKind,
        record: AttributeRecord,
        params: BaseModel,
        compute: Callable[[], Awaitable[Attestation]],
    ) -> Attestation:
        key = fingerprint(kind, record.reference_id, params)
        attestation, hit = await self.cache.get_or_compute(key, compute)
        if hit:
            logger.debug("proof_cache_hit", kind=kind.value)
        return attestation

    # =========================================================================
    # Generation operations
    # =========================================================================

    async def generate_age(self, record: AttributeRecord, params: AgeParams | dict[str, Any]) -> Attestation:
        """
        Generate a proof that the holder is at least ``params.threshold`` years old.

        Raises:
            ParameterValidationError: Threshold out of range or not met.
            CircuitLoadError: Circuit artifacts unavailable.
            ProofGenerationError: Prover failure or timeout.
        """
        kind = AttestationKind.AGE
        params = parse_params(kind, params)
        threshold = self._validate_threshold(params.threshold)

        age = record.age_on(self._clock().date())
        if age < threshold:
            raise ParameterValidationError(
                f"Holder does not meet age threshold {threshold}",
                details={"threshold": threshold},
            )

        async def compute() -> Attestation:
            nonce = params.nonce or generate_nonce()
            commitment = self.commitment.commit(
                [record.reference_id, record.name, record.date_of_birth, nonce]
            )
            inputs = {
                "commitmentHash": commitment,
                "minAge": str(threshold),
                "isAboveAge": "1",
                "age": str(age),
                "identitySecret": nonce_to_field(nonce),
            }
            output, proving_time_ms = await self._prove(kind, inputs)
            return Attestation(
                kind=kind,
                proof=output.proof,
                public_signals=output.public_signals,
                metadata=AttestationMetadata(
                    created_at=self._clock(),
                    proving_time_ms=proving_time_ms,
                    identity_commitment=commitment,
                    threshold=threshold,
                ),
            )

        return await self._cached(kind, record, params, compute)

    async def generate_region(
        self,
        record: AttributeRecord,
        params: RegionParams | dict[str, Any],
    ) -> Attestation:
        """
        Generate a proof that the holder's region is one of ``params.allowed_regions``.

        Raises:
            ParameterValidationError: Empty/unsupported regions, or holder's
                region not allowed.
        """
        kind = AttestationKind.REGION
        params = parse_params(kind, params)
        self._validate_regions(params.allowed_regions)

        if record.region not in params.allowed_regions:
            raise ParameterValidationError(
                "Holder region is not in the allowed list",
                details={"allowed_regions": list(params.allowed_regions)},
            )

        async def compute() -> Attestation:
            nonce = params.nonce or generate_nonce()
            commitment = self.commitment.commit([record.reference_id, record.region, nonce])
            inputs = {
                "commitmentHash": commitment,
                "allowedRegions": [str(self._region_index(r)) for r in params.allowed_regions],
                "isAllowed": "1",
                "regionCode": str(self._region_index(record.region)),
                "identitySecret": nonce_to_field(nonce),
            }
            output, proving_time_ms = await self._prove(kind, inputs)
            return Attestation(
                kind=kind,
                proof=output.proof,
                public_signals=output.public_signals,
                metadata=AttestationMetadata(
                    created_at=self._clock(),
                    proving_time_ms=proving_time_ms,
                    identity_commitment=commitment,
                    allowed_regions=params.allowed_regions,
                ),
            )

        return await self._cached(kind, record, params, compute)

    def nullifier_for(self, record: AttributeRecord, scope: str, epoch: str | None = None) -> str:
        """Same person, scope and epoch always give the same nullifier."""
        return self.commitment.commit([record.reference_id, scope, epoch or DEFAULT_EPOCH])

    async def generate_uniqueness(
        self,
        record: AttributeRecord,
        params: UniquenessParams | dict[str, Any],
    ) -> Attestation:
        """Generate a Sybil-resistance proof for ``params.scope``/``params.epoch``."""
        kind = AttestationKind.UNIQUENESS
        params = parse_params(kind, params)
        epoch = params.epoch or DEFAULT_EPOCH

        async def compute() -> Attestation:
            nonce = params.nonce or generate_nonce()
            nullifier = self.nullifier_for(record, params.scope, epoch)
            commitment = self.commitment.commit([record.reference_id, nonce])
            inputs = {
                "nullifier": nullifier,
                "commitmentHash": commitment,
                "identitySecret": nonce_to_field(nonce),
                "scope": self.commitment.commit([params.scope]),
                "epoch": self.commitment.commit([epoch]),
            }
            output, proving_time_ms = await self._prove(kind, inputs)
            return Attestation(
                kind=kind,
                proof=output.proof,
                public_signals=output.public_signals,
                metadata=AttestationMetadata(
                    created_at=self._clock(),
                    proving_time_ms=proving_time_ms,
                    identity_commitment=commitment,
                    scope=params.scope,
                    epoch=epoch,
                    nullifier=nullifier,
                ),
            )

        return await self._cached(kind, record, params, compute)

    async def generate(
        self,
        kind: AttestationKind | str,
        record: AttributeRecord,
        params: ParamsInput,
    ) -> Attestation:
        """Dispatch to the generation operation for ``kind``."""
        params = parse_params(kind, params)
        kind = AttestationKind(params.kind)

        if kind is AttestationKind.AGE:
            return await self.generate_age(record, params)
        if kind is AttestationKind.REGION:
            return await self.generate_region(record, params)
        return await self.generate_uniqueness(record, params)

    async def generate_batch(
        self,
        record: AttributeRecord,
        requests: Sequence[BatchRequest | dict[str, Any]],
    ) -> BatchResult:
        """
        Generate several attestations, isolated per kind.

        Requests run in fixed-size groups; within a group they run
        concurrently. A failing request becomes an entry in
        ``BatchResult.errors`` and never cancels the others.
        """
        try:
            batch = [r if isinstance(r, BatchRequest) else BatchRequest.model_validate(r) for r in requests]
        except ValidationError as e:
            raise ParameterValidationError(
                "Malformed batch request",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

        result = BatchResult(started_at=self._clock())

        for start in range(0, len(batch), self.batch_group_size):
            group = batch[start : start + self.batch_group_size]
            outcomes = await asyncio.gather(
                *(self.generate(request.kind, record, request.params) for request in group),
                return_exceptions=True,
            )

            for request, outcome in zip(group, outcomes, strict=True):
                if isinstance(outcome, Attestation):
                    result.attestations[request.kind] = outcome
                elif isinstance(outcome, AttestError):
                    result.errors.append(
                        BatchError(kind=request.kind, code=outcome.code, message=outcome.message)
                    )
                elif isinstance(outcome, Exception):
                    logger.error(
                        "batch_request_failed",
                        kind=request.kind.value,
                        error=str(outcome),
                        error_type=type(outcome).__name__,
                    )
                    result.errors.append(
                        BatchError(kind=request.kind, code="INTERNAL_ERROR", message=str(outcome))
                    )
                else:
                    raise outcome

        result.completed_at = self._clock()
        logger.info(
            "batch_generation_complete",
            requested=len(batch),
            succeeded=result.succeeded,
            failed=result.failed,
            duration=f"{(result.completed_at - result.started_at).total_seconds():.2f}s",
        )
        return result

    # =========================================================================
    # Cache maintenance
    # =========================================================================

    async def sweep_expired(self) -> int:
        """Remove expired cache entries. Returns the number removed."""
        return await self.cache.sweep_expired()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
