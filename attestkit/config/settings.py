"""
Settings Module
===============

Environment-driven configuration for proving, the challenge protocol and
the verifier service. Nested groups read their own prefixes:

    ZK_*         circuits, prover command, cache and deadlines
    CHALLENGE_*  challenge lifetimes and envelope version
    CORS_*       verifier service CORS
"""

import re
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Indian state and union territory codes accepted by region attestations
DEFAULT_SUPPORTED_REGIONS: tuple[str, ...] = (
    "AN", "AP", "AR", "AS", "BR", "CH", "CG", "DD", "DL", "DN",
    "GA", "GJ", "HP", "HR", "JH", "JK", "KA", "KL", "LA", "LD",
    "MH", "ML", "MN", "MP", "MZ", "NL", "OD", "PB", "PY", "RJ",
    "SK", "TN", "TR", "TS", "UK", "UP", "WB",
)

REGION_CODE = re.compile(r"^[A-Z]{2}$")


def split_csv(value: str, *, upper: bool = False) -> list[str]:
    """Comma-separated env value to a list, blanks dropped."""
    items = [item.strip() for item in value.split(",") if item.strip()]
    return [item.upper() for item in items] if upper else items


class ZKSettings(BaseSettings):
    """Proof generation configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    circuits_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "circuits" / "build"
    )
    snarkjs_command: str = "npx snarkjs"

    proof_cache_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)

    age_timeout_seconds: float = Field(default=30.0, gt=0)
    region_timeout_seconds: float = Field(default=45.0, gt=0)
    uniqueness_timeout_seconds: float = Field(default=20.0, gt=0)

    batch_group_size: int = Field(default=3, ge=1)

    supported_regions: str = ",".join(DEFAULT_SUPPORTED_REGIONS)

    @field_validator("supported_regions")
    @classmethod
    def check_region_codes(cls, v: str) -> str:
        bad = [code for code in split_csv(v, upper=True) if not REGION_CODE.match(code)]
        if bad:
            raise ValueError(f"Region codes must be two letters: {', '.join(bad)}")
        return v

    @property
    def supported_regions_list(self) -> list[str]:
        return split_csv(self.supported_regions, upper=True)

    def timeout_for(self, kind: str) -> float:
        """Proving deadline in seconds for an attestation kind."""
        kind = getattr(kind, "value", kind)
        return getattr(self, f"{kind}_timeout_seconds")


class ChallengeSettings(BaseSettings):
    """Challenge lifetimes; every TTL must sit inside [min, max]."""

    model_config = SettingsConfigDict(env_prefix="CHALLENGE_")

    default_ttl_seconds: int = Field(default=300, gt=0)
    min_ttl_seconds: int = Field(default=1, gt=0)
    max_ttl_seconds: int = Field(default=86400, gt=0)
    encoding_version: str = "1.0"

    @model_validator(mode="after")
    def check_ttl_bounds(self) -> "ChallengeSettings":
        if not self.min_ttl_seconds <= self.default_ttl_seconds <= self.max_ttl_seconds:
            raise ValueError("default_ttl_seconds must lie between min_ttl_seconds and max_ttl_seconds")
        return self


class CORSSettings(BaseSettings):
    """CORS configuration for the verifier service."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        return split_csv(self.origins)


class ServicePorts(BaseSettings):
    verifier: int = Field(default=8004, alias="VERIFIER_PORT")


class Settings(BaseSettings):
    """
    Application settings.

    Reads the process environment and an optional ``.env`` file. Use the
    ``settings`` singleton from ``attestkit.config`` or ``get_settings()``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    ports: ServicePorts = Field(default_factory=ServicePorts)
    zk: ZKSettings = Field(default_factory=ZKSettings)
    challenge: ChallengeSettings = Field(default_factory=ChallengeSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
