"""
Common Models
=============

Bodies returned by the verifier service for errors and health checks.
"""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from attestkit.errors import AttestError


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ErrorResponse(BaseModel):
    """Error body; ``error_code`` is what clients branch on."""

    success: Literal[False] = False
    error: str
    error_code: str | None = None
    status_code: int
    details: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_error(cls, exc: AttestError, status_code: int) -> "ErrorResponse":
        return cls(status_code=status_code, **exc.to_dict())

    @classmethod
    def from_http(cls, status_code: int, detail: Any) -> "ErrorResponse":
        return cls(status_code=status_code, error=str(detail))


class HealthResponse(BaseModel):
    """Service status plus one entry per component."""

    status: Literal["healthy", "degraded"] = "healthy"
    service: str
    version: str
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_components(
        cls, service: str, version: str, components: dict[str, dict[str, Any]]
    ) -> "HealthResponse":
        """Degraded when any component reports something other than healthy."""
        healthy = all(c.get("status") == "healthy" for c in components.values())
        return cls(
            status="healthy" if healthy else "degraded",
            service=service,
            version=version,
            components=components,
        )
