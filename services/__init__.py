"""
attestkit Services
==================

HTTP services built on the attestkit core.

Services:
- verifier: challenge issuance, response checking and off-chain proof verification
"""

__all__ = [
    "verifier",
]
