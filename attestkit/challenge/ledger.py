"""
Challenge Ledger
================

Verifier-side store of issued challenges. Enforces single use per
challenge id and rejects repeated uniqueness nullifiers within a
scope and epoch.

In-memory only; a multi-instance deployment needs a shared store.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

from attestkit.errors import ChallengeExpiredError, ChallengeMismatchError
from attestkit.logging import get_logger
from attestkit.challenge.models import (
    Challenge,
    ChallengeResponse,
    ChallengeState,
    ChallengeVerification,
)
from attestkit.challenge.protocol import ChallengeProtocol
from attestkit.zk.cache import Clock, utc_now
from attestkit.zk.engine import DEFAULT_EPOCH
from attestkit.zk.models import AttestationKind


logger = get_logger(__name__)

ProofCheck = Callable[[Challenge, ChallengeResponse], Awaitable[bool]]


class ChallengeLedger:
    """Tracks challenge state and spent nullifiers."""

    def __init__(self, protocol: ChallengeProtocol, clock: Clock | None = None) -> None:
        self.protocol = protocol
        self._clock = clock or utc_now
        self._challenges: dict[str, Challenge] = {}
        self._states: dict[str, ChallengeState] = {}
        self._nullifiers: set[tuple[str, str, str]] = set()
        self._lock = asyncio.Lock()

    async def register(self, challenge: Challenge) -> None:
        async with self._lock:
            if challenge.challenge_id in self._challenges:
                raise ChallengeMismatchError(
                    f"Challenge {challenge.challenge_id} is already registered",
                    code="DUPLICATE_CHALLENGE",
                )
            self._challenges[challenge.challenge_id] = challenge
            self._states[challenge.challenge_id] = ChallengeState.ISSUED

    def get(self, challenge_id: str) -> Challenge | None:
        return self._challenges.get(challenge_id)

    def state(self, challenge_id: str) -> ChallengeState | None:
        """Current state; an issued challenge past its expiry reads as expired."""
        state = self._states.get(challenge_id)
        if state is ChallengeState.ISSUED and self._challenges[challenge_id].is_expired(self._clock()):
            return ChallengeState.EXPIRED
        return state

    async def consume(
        self,
        challenge_id: str,
        response: ChallengeResponse,
        verify: ProofCheck | None = None,
    ) -> ChallengeVerification:
        """
        Check a response and mark its challenge as answered.

        ``verify`` optionally runs cryptographic verification after the
        structural checks pass. It runs outside the ledger lock with the
        challenge held in ``VERIFYING`` and its nullifier reserved, so a
        slow check never blocks other challenges.

        Raises:
            ChallengeMismatchError: Unknown or already used challenge,
                invalid response, failed proof, or a nullifier seen before.
            ChallengeExpiredError: The challenge expired before the response.
        """
        async with self._lock:
            challenge, verification, key = self._admit(challenge_id, response)
            if verify is None:
                self._states[challenge_id] = ChallengeState.RESPONDED
            else:
                self._states[challenge_id] = ChallengeState.VERIFYING

        if verify is not None:
            try:
                valid = await verify(challenge, response)
            except BaseException:
                async with self._lock:
                    self._states[challenge_id] = ChallengeState.ISSUED
                    self._nullifiers.discard(key)
                raise

            async with self._lock:
                if not valid:
                    self._states[challenge_id] = ChallengeState.INVALID
                    self._nullifiers.discard(key)
                    raise ChallengeMismatchError(
                        "Proof failed verification",
                        code="INVALID_PROOF",
                    )
                self._states[challenge_id] = ChallengeState.RESPONDED

        logger.info("challenge_consumed", challenge_id=challenge_id, kind=challenge.kind.value)
        return verification

    def _admit(
        self,
        challenge_id: str,
        response: ChallengeResponse,
    ) -> tuple[Challenge, ChallengeVerification, tuple[str, str, str] | None]:
        """Structural and replay checks; reserves the nullifier. Caller holds the lock."""
        challenge = self._challenges.get(challenge_id)
        if challenge is None:
            raise ChallengeMismatchError(
                f"Unknown challenge: {challenge_id}",
                code="UNKNOWN_CHALLENGE",
            )

        state = self._states[challenge_id]
        if state is not ChallengeState.ISSUED:
            raise ChallengeMismatchError(
                f"Challenge {challenge_id} is no longer open",
                code="CHALLENGE_CONSUMED",
                details={"state": state.value},
            )

        if challenge.is_expired(self._clock()):
            self._states[challenge_id] = ChallengeState.EXPIRED
            raise ChallengeExpiredError(details={"challenge_id": challenge_id})

        try:
            verification = self.protocol.verify_response(challenge_id, response)
        except ChallengeMismatchError:
            self._states[challenge_id] = ChallengeState.INVALID
            raise

        if challenge.kind is not AttestationKind.UNIQUENESS:
            return challenge, verification, None

        if verification.nullifier is None:
            self._states[challenge_id] = ChallengeState.INVALID
            raise ChallengeMismatchError(
                "Uniqueness response carries no nullifier",
                code="INVALID_RESPONSE",
            )
        key = (
            challenge.params.scope,
            challenge.params.epoch or DEFAULT_EPOCH,
            verification.nullifier,
        )
        if key in self._nullifiers:
            self._states[challenge_id] = ChallengeState.INVALID
            logger.warning(
                "duplicate_nullifier_rejected",
                challenge_id=challenge_id,
                scope=key[0],
                epoch=key[1],
            )
            raise ChallengeMismatchError(
                "Nullifier already used in this scope and epoch",
                code="DUPLICATE_NULLIFIER",
                details={"scope": key[0], "epoch": key[1]},
            )
        self._nullifiers.add(key)
        return challenge, verification, key

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Forget expired, unanswered challenges. Spent nullifiers are kept."""
        now = now or self._clock()
        async with self._lock:
            stale = [
                cid
                for cid, challenge in self._challenges.items()
                if self._states[cid] in (ChallengeState.ISSUED, ChallengeState.EXPIRED)
                and challenge.is_expired(now)
            ]
            for cid in stale:
                del self._challenges[cid]
                del self._states[cid]

        if stale:
            logger.info("challenges_swept", removed=len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._challenges)
