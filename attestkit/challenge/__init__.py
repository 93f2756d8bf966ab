"""
Challenge-Response Module
=========================

Verifier-initiated attestation requests bound to a nonce and expiry.
"""

from attestkit.challenge.ledger import ChallengeLedger
from attestkit.challenge.models import (
    Challenge,
    ChallengeEnvelope,
    ChallengeOptions,
    ChallengeResponse,
    ChallengeState,
    ChallengeVerification,
    IssuedChallenge,
)
from attestkit.challenge.protocol import ChallengeProtocol


__all__ = [
    "ChallengeProtocol",
    "ChallengeLedger",
    "Challenge",
    "ChallengeEnvelope",
    "ChallengeOptions",
    "ChallengeResponse",
    "ChallengeState",
    "ChallengeVerification",
    "IssuedChallenge",
]
