"""
Attestation Data Models
=======================

Pydantic models for identity attributes, attestation parameters,
generated attestations and their cache bookkeeping.

Version: 0.1.0
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from attestkit.errors import ParameterValidationError


class AttestationKind(str, Enum):
    """Types of identity attestations."""

    AGE = "age"
    REGION = "region"
    UNIQUENESS = "uniqueness"


DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


class AttributeRecord(BaseModel):
    """
    Validated identity attributes supplied by a credential parser.

    Sensitive: never persisted, never logged. The identifying fields are
    excluded from ``repr``.
    """

    model_config = ConfigDict(frozen=True)

    reference_id: str = Field(..., min_length=1, repr=False)
    name: str = Field(default="", repr=False)
    date_of_birth: date = Field(..., repr=False)
    region: str = Field(..., min_length=1)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def parse_date_of_birth(cls, v: Any) -> Any:
        """Accept ISO dates as well as the DD/MM/YYYY credential format."""
        if isinstance(v, str):
            raw = v.strip()
            for fmt in DATE_FORMATS:
                try:
                    return datetime.strptime(raw, fmt).date()
                except ValueError:
                    continue
            raise ValueError(f"Unrecognized date of birth format: {raw!r}")
        return v

    @field_validator("region")
    @classmethod
    def normalize_region(cls, v: str) -> str:
        return v.strip().upper()

    def age_on(self, today: date) -> int:
        """Whole calendar years between date of birth and ``today``."""
        dob = self.date_of_birth
        years = today.year - dob.year
        if (today.month, today.day) < (dob.month, dob.day):
            years -= 1
        return years


# =============================================================================
# Attestation Parameters
# =============================================================================


class AgeParams(BaseModel):
    """Prove the holder is at least ``threshold`` years old."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["age"] = "age"
    threshold: int = Field(..., ge=0, le=150, description="Minimum age in years")
    nonce: str | None = None


class RegionParams(BaseModel):
    """Prove the holder resides in one of ``allowed_regions``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["region"] = "region"
    allowed_regions: tuple[str, ...] = Field(..., description="Allowed region codes")
    nonce: str | None = None

    @field_validator("allowed_regions", mode="before")
    @classmethod
    def normalize_regions(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(str(r).strip().upper() for r in v)
        return v


class UniquenessParams(BaseModel):
    """Prove the holder has not already participated in ``scope``/``epoch``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["uniqueness"] = "uniqueness"
    scope: str = Field(..., min_length=1, description="Application or session identifier")
    epoch: str | None = Field(default=None, description="Voting round or time window")
    nonce: str | None = None


AttestationParams = Annotated[
    Union[AgeParams, RegionParams, UniquenessParams],
    Field(discriminator="kind"),
]

PARAMS_BY_KIND: dict[AttestationKind, type[BaseModel]] = {
    AttestationKind.AGE: AgeParams,
    AttestationKind.REGION: RegionParams,
    AttestationKind.UNIQUENESS: UniquenessParams,
}

params_adapter: TypeAdapter[AttestationParams] = TypeAdapter(AttestationParams)


def parse_params(kind: AttestationKind | str, params: Any) -> AgeParams | RegionParams | UniquenessParams:
    """
    Coerce a params model or mapping into the params model for ``kind``.

    Raises:
        ParameterValidationError: Unknown kind, params of another kind, or
            params that fail validation.
    """
    try:
        kind = AttestationKind(kind)
    except ValueError as e:
        raise ParameterValidationError(f"Unknown attestation kind: {kind}") from e

    model = PARAMS_BY_KIND[kind]
    if isinstance(params, model):
        return params
    if isinstance(params, BaseModel):
        raise ParameterValidationError(
            f"Expected {kind.value} parameters, got {type(params).__name__}",
            details={"kind": kind.value},
        )
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise ParameterValidationError(
            f"Invalid {kind.value} parameters",
            details={"kind": kind.value, "errors": [err["msg"] for err in e.errors()]},
        ) from e


# =============================================================================
# Proofs and Attestations
# =============================================================================


class ZKProof(BaseModel):
    """
    A zero-knowledge proof.

    Compatible with snarkjs Groth16 proof format.
    """

    model_config = ConfigDict(frozen=True)

    # Proof points (G1 and G2 elements)
    pi_a: tuple[str, ...] = Field(..., description="Proof point A (G1)")
    pi_b: tuple[tuple[str, ...], ...] = Field(..., description="Proof point B (G2)")
    pi_c: tuple[str, ...] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    def to_calldata(self) -> list[int]:
        """Convert to verifier calldata format (8 uint256)."""
        return [
            int(self.pi_a[0], 0),
            int(self.pi_a[1], 0),
            int(self.pi_b[0][0], 0),
            int(self.pi_b[0][1], 0),
            int(self.pi_b[1][0], 0),
            int(self.pi_b[1][1], 0),
            int(self.pi_c[0], 0),
            int(self.pi_c[1], 0),
        ]

    @property
    def is_complete(self) -> bool:
        """All three proof points are present and non-empty."""
        return (
            len(self.pi_a) >= 2
            and len(self.pi_c) >= 2
            and len(self.pi_b) >= 2
            and all(len(row) >= 2 for row in self.pi_b)
            and all(p for p in (*self.pi_a, *self.pi_c, *(x for row in self.pi_b for x in row)))
        )


class ProofOutput(BaseModel):
    """Raw output of a prover backend."""

    proof: ZKProof
    public_signals: tuple[str, ...]


class AttestationMetadata(BaseModel):
    """Metadata about a generated attestation."""

    model_config = ConfigDict(frozen=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(default=0, ge=0)
    identity_commitment: str

    # Age attestations
    threshold: int | None = None

    # Region attestations
    allowed_regions: tuple[str, ...] | None = None

    # Uniqueness attestations
    scope: str | None = None
    epoch: str | None = None
    nullifier: str | None = None


class Attestation(BaseModel):
    """A proof plus the public signals a verifier checks. Immutable."""

    model_config = ConfigDict(frozen=True)

    kind: AttestationKind
    proof: ZKProof
    public_signals: tuple[str, ...]
    metadata: AttestationMetadata

    @property
    def commitment(self) -> str:
        """First public signal, by convention the commitment or nullifier."""
        return self.public_signals[0] if self.public_signals else ""

    @property
    def identity_commitment(self) -> str:
        return self.metadata.identity_commitment

    @property
    def nullifier(self) -> str | None:
        return self.metadata.nullifier


class VerificationResult(BaseModel):
    """Result of cryptographic proof verification."""

    valid: bool
    kind: AttestationKind | None = None
    commitment: str | None = None
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None


# =============================================================================
# Cache
# =============================================================================


class CacheEntry(BaseModel):
    """A cached attestation with its expiry."""

    model_config = ConfigDict(frozen=True)

    attestation: Attestation
    created_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def expiry_after_creation(self) -> "CacheEntry":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    def is_live(self, now: datetime) -> bool:
        return now < self.expires_at


class CacheStats(BaseModel):
    """Proof cache counters."""

    total: int = 0
    expired: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def live(self) -> int:
        return self.total - self.expired

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


# =============================================================================
# Batch
# =============================================================================


class BatchRequest(BaseModel):
    """One attestation requested as part of a batch."""

    kind: AttestationKind
    params: dict[str, Any] | AgeParams | RegionParams | UniquenessParams


class BatchError(BaseModel):
    """A per-kind failure inside a batch."""

    kind: AttestationKind
    code: str
    message: str


class BatchResult(BaseModel):
    """Partial results of a batch: successes by kind plus per-kind errors."""

    attestations: dict[AttestationKind, Attestation] = Field(default_factory=dict)
    errors: list[BatchError] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> int:
        return len(self.attestations)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def error_for(self, kind: AttestationKind) -> BatchError | None:
        return next((e for e in self.errors if e.kind == kind), None)
