"""
API Models
==========

Response envelopes shared by the HTTP services.
"""

from attestkit.models.common import ErrorResponse, HealthResponse


__all__ = [
    "ErrorResponse",
    "HealthResponse",
]
