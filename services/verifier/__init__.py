"""
Verifier Service
================

Issues attestation challenges, checks holder responses and verifies
proofs off-chain.
"""

__version__ = "0.1.0"
