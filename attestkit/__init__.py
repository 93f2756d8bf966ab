"""
attestkit
=========

Privacy-preserving identity attestations: zero-knowledge proofs of age,
region membership and uniqueness over a parsed identity credential,
plus a challenge-response protocol for verifiers.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - errors: Error taxonomy with machine-readable codes
    - zk: Circuit registry, proof engine, cache and verifier
    - challenge: Challenge-response protocol and ledger
    - credentials: Credential parsers
    - models: API response models

Version: 0.1.0
"""

__version__ = "0.1.0"

from attestkit.config import settings
from attestkit.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
