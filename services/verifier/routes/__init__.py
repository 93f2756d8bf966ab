"""
Verifier Service Routes
=======================

API route handlers for the verifier service.
"""

from services.verifier.routes import challenges, verification


__all__ = ["challenges", "verification"]
