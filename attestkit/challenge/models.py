"""
Challenge-Response Models
=========================

Types exchanged between a verifier application and an identity holder.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from attestkit.zk.models import AttestationKind, AttestationParams, ZKProof


class ChallengeState(str, Enum):
    """Lifecycle of a challenge, from the verifier's point of view."""

    ISSUED = "issued"
    VERIFYING = "verifying"
    RESPONDED = "responded"
    EXPIRED = "expired"
    INVALID = "invalid"


class ChallengeOptions(BaseModel):
    """Optional knobs for issuing a challenge."""

    ttl_seconds: int | None = Field(default=None, description="Defaults to 300 seconds")
    nonce: str | None = None
    callback_url: str | None = None
    challenge_id: str | None = None


class Challenge(BaseModel):
    """A verifier's request for one attestation. Single-use per id."""

    model_config = ConfigDict(frozen=True)

    challenge_id: str = Field(..., min_length=1)
    verifier_id: str = Field(..., min_length=1, description="Requesting application id")
    verifier_name: str = Field(..., description="Application name for display")
    kind: AttestationKind
    params: AttestationParams
    issued_at: datetime
    expires_at: datetime
    nonce: str = Field(..., min_length=1, description="Replay protection")
    callback_url: str | None = None

    @model_validator(mode="after")
    def check_consistency(self) -> "Challenge":
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        if self.params.kind != self.kind.value:
            raise ValueError(f"params of kind {self.params.kind!r} do not match challenge kind {self.kind.value!r}")
        return self

    def is_expired(self, now: datetime) -> bool:
        """Still answerable at exactly ``expires_at``."""
        return now > self.expires_at


class ChallengeEnvelope(BaseModel):
    """Versioned transport wrapper, serialized into QR codes and links."""

    version: str
    challenge: Challenge


class IssuedChallenge(BaseModel):
    """A freshly issued challenge plus its transport encoding."""

    challenge: Challenge
    encoded: str


class ChallengeResponse(BaseModel):
    """The holder's answer to a challenge."""

    model_config = ConfigDict(frozen=True)

    challenge_id: str
    proof: ZKProof
    public_signals: tuple[str, ...]
    identity_commitment: str
    nullifier: str | None = None
    responded_at: datetime


class ChallengeVerification(BaseModel):
    """
    Outcome of protocol-level response checks.

    ``protocol_only`` is always True: the proof itself has not been
    cryptographically verified.
    """

    verified: bool
    challenge_id: str
    identity_commitment: str
    nullifier: str | None = None
    responded_at: datetime
    checked_at: datetime
    protocol_only: bool = True
