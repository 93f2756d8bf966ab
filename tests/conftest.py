"""
Test Configuration
==================

Pytest fixtures for attestkit tests.
"""

import asyncio
import json
import os
from collections.abc import AsyncGenerator, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"

from attestkit.config import ChallengeSettings, ZKSettings  # noqa: E402
from attestkit.zk import (  # noqa: E402
    Attestation,
    AttestationKind,
    AttestationMetadata,
    AttributeRecord,
    CircuitArtifacts,
    CircuitRegistry,
    ProofEngine,
    ProofOutput,
    ZKProof,
)
from attestkit.zk.circuits import Circuit  # noqa: E402


FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class FakeClock:
    """Controllable time source."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeProver:
    """
    Prover backend that records calls.

    The first public signal is the nullifier when the circuit has one,
    otherwise the commitment, matching real circuit outputs.
    """

    def __init__(self, delay: float = 0.0, fail_kinds: Sequence[AttestationKind] = ()) -> None:
        self.delay = delay
        self.fail_kinds = set(fail_kinds)
        self.prove_calls: list[tuple[AttestationKind, dict[str, Any]]] = []
        self.verify_calls = 0
        self.verify_result = True

    def calls_for(self, kind: AttestationKind) -> int:
        return sum(1 for k, _ in self.prove_calls if k == kind)

    async def prove(self, circuit: Circuit, inputs: dict[str, Any]) -> ProofOutput:
        self.prove_calls.append((circuit.kind, inputs))
        if self.delay:
            await asyncio.sleep(self.delay)
        if circuit.kind in self.fail_kinds:
            raise RuntimeError(f"witness generation failed for {circuit.kind.value}")

        first = inputs.get("nullifier") or inputs["commitmentHash"]
        signals = [first, inputs["commitmentHash"]] if "nullifier" in inputs else [first, "1"]
        return ProofOutput(
            proof=ZKProof(
                pi_a=("1", "2", "1"),
                pi_b=(("3", "4"), ("5", "6"), ("1", "0")),
                pi_c=("7", "8", "1"),
            ),
            public_signals=tuple(signals),
        )

    async def verify(
        self,
        verification_key: dict[str, Any],
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> bool:
        self.verify_calls += 1
        return self.verify_result


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def prover() -> FakeProver:
    return FakeProver()


@pytest.fixture
def circuits_dir(tmp_path: Path) -> Path:
    """Build directory with artifacts for every kind."""
    for kind in AttestationKind:
        artifacts = CircuitArtifacts.conventional(tmp_path, kind)
        artifacts.wasm_path.parent.mkdir(parents=True, exist_ok=True)
        artifacts.wasm_path.write_bytes(b"\x00asm" + kind.value.encode())
        artifacts.zkey_path.write_bytes(b"zkey-" + kind.value.encode())
        artifacts.vkey_path.write_text(json.dumps({"protocol": "groth16", "nPublic": 2}))
    return tmp_path


@pytest.fixture
def zk_config(circuits_dir: Path) -> ZKSettings:
    return ZKSettings(circuits_dir=circuits_dir)


@pytest.fixture
def challenge_config() -> ChallengeSettings:
    return ChallengeSettings()


@pytest.fixture
def registry(circuits_dir: Path, zk_config: ZKSettings) -> CircuitRegistry:
    return CircuitRegistry(base_dir=circuits_dir, config=zk_config)


@pytest.fixture
def engine(prover: FakeProver, registry: CircuitRegistry, zk_config: ZKSettings, clock: FakeClock) -> ProofEngine:
    return ProofEngine(backend=prover, registry=registry, config=zk_config, clock=clock)


@pytest.fixture
def record() -> AttributeRecord:
    """Holder aged 31 on the fixed clock date, living in Karnataka."""
    return AttributeRecord(
        reference_id="123456789012",
        name="Asha Rao",
        date_of_birth="1995-01-01",
        region="KA",
    )


@pytest.fixture
def attestation() -> Attestation:
    """A standalone age attestation."""
    return Attestation(
        kind=AttestationKind.AGE,
        proof=ZKProof(pi_a=("1", "2"), pi_b=(("3", "4"), ("5", "6")), pi_c=("7", "8")),
        public_signals=("42", "1"),
        metadata=AttestationMetadata(created_at=FIXED_NOW, identity_commitment="42", threshold=18),
    )


@pytest.fixture
def qr_payload() -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<PrintLetterBarcodeData uid="123456789012" name="Asha Rao" gender="F" '
        'dob="01/01/1995" co="D/O Ravi Rao" dist="Bengaluru Urban" state="Karnataka" pc="560001"/>'
    )


@pytest_asyncio.fixture
async def verifier_client(
    prover: FakeProver,
    registry: CircuitRegistry,
    challenge_config: ChallengeSettings,
    clock: FakeClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client for the verifier service, wired to fakes."""
    from attestkit.challenge import ChallengeLedger, ChallengeProtocol
    from attestkit.zk import AttestationVerifier
    from services.verifier.main import app

    protocol = ChallengeProtocol(config=challenge_config, clock=clock)
    app.state.registry = registry
    app.state.protocol = protocol
    app.state.ledger = ChallengeLedger(protocol, clock=clock)
    app.state.verifier = AttestationVerifier(prover, registry)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
