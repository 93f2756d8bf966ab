"""
Verification Routes
===================

Off-chain cryptographic proof verification.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from attestkit.logging import get_logger
from attestkit.zk import AttestationKind, AttestationVerifier, VerificationResult, ZKProof
from services.verifier.dependencies import get_verifier


logger = get_logger(__name__)
router = APIRouter()


class VerifyProofRequest(BaseModel):
    """Request to verify a proof."""

    kind: AttestationKind
    proof: ZKProof
    public_signals: list[str] = Field(..., min_length=1)


@router.post("/proof", response_model=VerificationResult)
async def verify_proof(
    request: VerifyProofRequest,
    verifier: AttestationVerifier = Depends(get_verifier),
) -> VerificationResult:
    """
    Verify a proof against the circuit's verification key.

    A missing verification key is reported as ``valid=False`` with an
    error message.
    """
    logger.info("verifying_proof", kind=request.kind.value, signals=len(request.public_signals))
    return await verifier.verify(request.kind, request.proof, request.public_signals)
