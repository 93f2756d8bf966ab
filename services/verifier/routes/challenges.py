"""
Challenge Routes
================

API endpoints for issuing challenges and accepting holder responses.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from attestkit.challenge import (
    Challenge,
    ChallengeLedger,
    ChallengeOptions,
    ChallengeProtocol,
    ChallengeResponse,
    ChallengeState,
    ChallengeVerification,
)
from attestkit.logging import get_logger
from attestkit.zk import AttestationKind, AttestationVerifier
from services.verifier.dependencies import get_ledger, get_protocol, get_verifier


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class IssueChallengeRequest(BaseModel):
    """Request to issue a challenge."""

    verifier_id: str = Field(..., min_length=1, description="Requesting application id")
    verifier_name: str = Field(..., description="Application name shown to the holder")
    kind: AttestationKind
    params: dict[str, Any] = Field(default_factory=dict, description="Kind-specific parameters")
    ttl_seconds: int | None = Field(None, description="Validity window, defaults to 300")
    callback_url: str | None = None


class IssueChallengeResponse(BaseModel):
    """A registered challenge and its QR-friendly encoding."""

    challenge: Challenge
    encoded: str


class ChallengeStatusResponse(BaseModel):
    """Current state of a challenge."""

    challenge: Challenge
    state: ChallengeState


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=IssueChallengeResponse, status_code=status.HTTP_201_CREATED)
async def issue_challenge(
    request: IssueChallengeRequest,
    protocol: ChallengeProtocol = Depends(get_protocol),
    ledger: ChallengeLedger = Depends(get_ledger),
) -> IssueChallengeResponse:
    """
    Issue a challenge and register it for a single response.

    The ``encoded`` form is what the holder scans or follows.
    """
    issued = protocol.issue_challenge(
        request.verifier_id,
        request.verifier_name,
        request.kind,
        {"kind": request.kind.value, **request.params},
        ChallengeOptions(ttl_seconds=request.ttl_seconds, callback_url=request.callback_url),
    )
    await ledger.register(issued.challenge)

    return IssueChallengeResponse(challenge=issued.challenge, encoded=issued.encoded)


@router.get("/{challenge_id}", response_model=ChallengeStatusResponse)
async def get_challenge(
    challenge_id: str,
    ledger: ChallengeLedger = Depends(get_ledger),
) -> ChallengeStatusResponse:
    """Look up a challenge and its state."""
    challenge = ledger.get(challenge_id)
    if challenge is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Challenge {challenge_id} not found",
        )
    return ChallengeStatusResponse(challenge=challenge, state=ledger.state(challenge_id))


@router.post("/{challenge_id}/responses", response_model=ChallengeVerification)
async def submit_response(
    challenge_id: str,
    response: ChallengeResponse,
    verify_proof: bool = Query(False, description="Also verify the proof cryptographically"),
    ledger: ChallengeLedger = Depends(get_ledger),
    verifier: AttestationVerifier = Depends(get_verifier),
) -> ChallengeVerification:
    """
    Accept a holder's response.

    Each challenge accepts exactly one valid response. Uniqueness
    nullifiers are accepted once per scope and epoch.
    """

    async def check(challenge: Challenge, answer: ChallengeResponse) -> bool:
        result = await verifier.verify(challenge.kind, answer.proof, answer.public_signals)
        return result.valid

    return await ledger.consume(challenge_id, response, verify=check if verify_proof else None)
