"""
Error Taxonomy
==============

Every error raised by attestkit carries a machine-readable ``code`` and a
human-readable message. Callers branch on the class or the code, never on
the message text.

Version: 0.1.0
"""

from datetime import UTC, datetime
from typing import Any


class AttestError(Exception):
    """Base error for attestation generation and the challenge protocol."""

    code: str = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}
        self.timestamp = datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for API error bodies."""
        return {
            "error": self.message,
            "error_code": self.code,
            "details": self.details or None,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ParameterValidationError(AttestError):
    """Bad input or an unmet precondition (threshold not met, region not allowed)."""

    code = "INVALID_PARAMETERS"


class CircuitLoadError(AttestError):
    """Circuit artifact could not be fetched or parsed."""

    code = "CIRCUIT_LOAD_FAILED"

    def __init__(self, message: str, kind: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.kind = kind
        if kind is not None:
            self.details.setdefault("kind", kind)


class ProofGenerationError(AttestError):
    """The prover failed or exceeded its deadline."""

    code = "PROOF_GENERATION_FAILED"

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        *,
        timeout: bool = False,
        **kwargs: Any,
    ) -> None:
        if timeout:
            kwargs.setdefault("code", "PROOF_GENERATION_TIMEOUT")
        super().__init__(message, **kwargs)
        self.kind = kind
        self.timeout = timeout
        if kind is not None:
            self.details.setdefault("kind", kind)
        if timeout:
            self.details["timeout"] = True


class ChallengeExpiredError(AttestError):
    """The challenge is past its expiry."""

    code = "SESSION_EXPIRED"

    def __init__(self, message: str = "Challenge has expired", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ChallengeMismatchError(AttestError):
    """A response does not answer the challenge, or is structurally invalid."""

    code = "CHALLENGE_MISMATCH"


class CredentialParseError(AttestError):
    """Raw credential data could not be turned into an attribute record."""

    code = "INVALID_CREDENTIAL"
