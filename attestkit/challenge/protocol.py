"""
Challenge-Response Protocol
===========================

Verifier side: ``issue_challenge`` and ``verify_response``.
Holder side: ``respond_to_challenge``.

The protocol object keeps no per-challenge state. Verifiers persist
issued challenges themselves (see ``ChallengeLedger``) and must still
run cryptographic verification before trusting a response.

Usage:
    protocol = ChallengeProtocol()
    issued = protocol.issue_challenge("app-1", "Example App", "age", {"threshold": 18})

    # holder
    holder = ChallengeProtocol(engine=engine)
    response = await holder.respond_to_challenge(issued.encoded, record)

    # verifier
    result = protocol.verify_response(issued.challenge.challenge_id, response)

Version: 0.1.0
"""

import base64
import uuid
from datetime import timedelta
from typing import Any

from attestkit.config import ChallengeSettings, settings
from attestkit.errors import (
    ChallengeExpiredError,
    ChallengeMismatchError,
    ParameterValidationError,
)
from attestkit.logging import get_logger
from attestkit.challenge.models import (
    Challenge,
    ChallengeEnvelope,
    ChallengeOptions,
    ChallengeResponse,
    ChallengeVerification,
    IssuedChallenge,
)
from attestkit.zk.cache import Clock, utc_now
from attestkit.zk.commitment import generate_nonce
from attestkit.zk.engine import ProofEngine
from attestkit.zk.models import AttestationKind, AttributeRecord, parse_params


logger = get_logger(__name__)


class ChallengeProtocol:
    """Issues, answers and structurally validates challenges."""

    def __init__(
        self,
        engine: ProofEngine | None = None,
        config: ChallengeSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Args:
            engine: Proof engine, required only on the holder side.
            config: Challenge settings, defaults to the global settings.
            clock: Time source, defaults to UTC now.
        """
        self.engine = engine
        self.config = config or settings.challenge
        self._clock = clock or utc_now

    # =========================================================================
    # Verifier: issue
    # =========================================================================

    def issue_challenge(
        self,
        verifier_id: str,
        verifier_name: str,
        kind: AttestationKind | str,
        params: Any,
        options: ChallengeOptions | None = None,
    ) -> IssuedChallenge:
        """
        Create a challenge and its transport encoding.

        Raises:
            ParameterValidationError: Bad params, kind or TTL.
        """
        options = options or ChallengeOptions()
        params = parse_params(kind, params)

        ttl = options.ttl_seconds if options.ttl_seconds is not None else self.config.default_ttl_seconds
        if not self.config.min_ttl_seconds <= ttl <= self.config.max_ttl_seconds:
            raise ParameterValidationError(
                f"Challenge TTL must be between {self.config.min_ttl_seconds} "
                f"and {self.config.max_ttl_seconds} seconds",
                details={"ttl_seconds": ttl},
            )
        if not verifier_id:
            raise ParameterValidationError("verifier_id is required")

        now = self._clock()
        challenge = Challenge(
            challenge_id=options.challenge_id or str(uuid.uuid4()),
            verifier_id=verifier_id,
            verifier_name=verifier_name,
            kind=AttestationKind(params.kind),
            params=params,
            issued_at=now,
            expires_at=now + timedelta(seconds=ttl),
            nonce=options.nonce or generate_nonce(),
            callback_url=options.callback_url,
        )

        logger.info(
            "challenge_issued",
            challenge_id=challenge.challenge_id,
            verifier_id=verifier_id,
            kind=challenge.kind.value,
            ttl_seconds=ttl,
        )

        return IssuedChallenge(challenge=challenge, encoded=self.encode_challenge(challenge))

    # =========================================================================
    # Transport encoding
    # =========================================================================

    def encode_challenge(self, challenge: Challenge) -> str:
        """Versioned JSON envelope, URL-safe base64 without padding."""
        envelope = ChallengeEnvelope(version=self.config.encoding_version, challenge=challenge)
        return base64.urlsafe_b64encode(envelope.model_dump_json().encode()).decode().rstrip("=")

    def decode_challenge(self, encoded: str) -> Challenge:
        """
        Decode a transport-encoded challenge.

        Raises:
            ChallengeMismatchError: Malformed payload or unsupported version.
        """
        try:
            padded = encoded.strip() + "=" * (-len(encoded.strip()) % 4)
            raw = base64.urlsafe_b64decode(padded.encode())
            envelope = ChallengeEnvelope.model_validate_json(raw)
        except ValueError as e:
            raise ChallengeMismatchError(
                "Invalid challenge encoding",
                code="INVALID_CHALLENGE",
            ) from e

        if envelope.version != self.config.encoding_version:
            raise ChallengeMismatchError(
                f"Unsupported challenge version: {envelope.version}",
                code="INVALID_CHALLENGE",
                details={"version": envelope.version},
            )
        return envelope.challenge

    # =========================================================================
    # Holder: respond
    # =========================================================================

    async def respond_to_challenge(self, encoded: str, record: AttributeRecord) -> ChallengeResponse:
        """
        Generate the requested attestation and package it as a response.

        Raises:
            ChallengeExpiredError: The challenge expired; nothing is proved.
            ChallengeMismatchError: The challenge could not be decoded.
            ParameterValidationError, CircuitLoadError, ProofGenerationError:
                From the engine.
        """
        if self.engine is None:
            raise RuntimeError("respond_to_challenge requires a ProofEngine")

        challenge = self.decode_challenge(encoded)

        if challenge.is_expired(self._clock()):
            logger.warning("challenge_expired", challenge_id=challenge.challenge_id)
            raise ChallengeExpiredError(
                f"Challenge {challenge.challenge_id} expired at {challenge.expires_at.isoformat()}",
                details={"challenge_id": challenge.challenge_id},
            )

        # Bind the challenge nonce so two challenges never share a cached proof
        params = challenge.params
        if params.nonce is None:
            params = params.model_copy(update={"nonce": challenge.nonce})

        attestation = await self.engine.generate(challenge.kind, record, params)

        logger.info(
            "challenge_answered",
            challenge_id=challenge.challenge_id,
            kind=challenge.kind.value,
        )

        return ChallengeResponse(
            challenge_id=challenge.challenge_id,
            proof=attestation.proof,
            public_signals=attestation.public_signals,
            identity_commitment=attestation.public_signals[0],
            nullifier=attestation.nullifier,
            responded_at=self._clock(),
        )

    # =========================================================================
    # Verifier: validate
    # =========================================================================

    def structural_problems(self, response: ChallengeResponse) -> list[str]:
        problems = []
        if not response.proof.is_complete:
            problems.append("proof points are missing or empty")
        if not response.public_signals:
            problems.append("public signals are empty")
        elif not all(s.isdigit() for s in response.public_signals):
            problems.append("public signals must be decimal field elements")
        elif response.identity_commitment != response.public_signals[0]:
            problems.append("identity commitment does not match the first public signal")
        if response.nullifier is not None and response.nullifier not in response.public_signals:
            problems.append("nullifier is not among the public signals")
        return problems

    def verify_response(self, challenge_id: str, response: ChallengeResponse) -> ChallengeVerification:
        """
        Protocol-level checks only; no cryptographic verification.

        Raises:
            ChallengeMismatchError: The response answers another challenge
                or is structurally incomplete.
        """
        if response.challenge_id != challenge_id:
            logger.warning(
                "challenge_response_mismatch",
                expected=challenge_id,
                received=response.challenge_id,
            )
            raise ChallengeMismatchError(
                "Response does not answer this challenge",
                details={"expected": challenge_id, "received": response.challenge_id},
            )

        problems = self.structural_problems(response)
        if problems:
            logger.warning("challenge_response_invalid", challenge_id=challenge_id, problems=problems)
            raise ChallengeMismatchError(
                "Response is structurally invalid",
                code="INVALID_RESPONSE",
                details={"problems": problems},
            )

        return ChallengeVerification(
            verified=True,
            challenge_id=challenge_id,
            identity_commitment=response.identity_commitment,
            nullifier=response.nullifier,
            responded_at=response.responded_at,
            checked_at=self._clock(),
        )
