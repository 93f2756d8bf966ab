"""
Service Dependencies
====================

Accessors for the components the lifespan stores on ``app.state``.
"""

from fastapi import Request

from attestkit.challenge import ChallengeLedger, ChallengeProtocol
from attestkit.zk import AttestationVerifier


def get_protocol(request: Request) -> ChallengeProtocol:
    return request.app.state.protocol


def get_ledger(request: Request) -> ChallengeLedger:
    return request.app.state.ledger


def get_verifier(request: Request) -> AttestationVerifier:
    return request.app.state.verifier
