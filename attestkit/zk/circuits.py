"""
Circuit Registry
================

Loads and memoizes per-kind circuit artifacts (witness generator WASM,
proving key, optional verification key). A circuit is loaded once and
reused until evicted.

Usage:
    registry = CircuitRegistry()
    circuit = await registry.get(AttestationKind.AGE)

Version: 0.1.0
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from attestkit.config import ZKSettings, settings
from attestkit.errors import CircuitLoadError
from attestkit.logging import get_logger
from attestkit.zk.models import AttestationKind


logger = get_logger(__name__)


class CircuitArtifacts(BaseModel):
    """Locations of the files that make up one circuit."""

    wasm_path: Path
    zkey_path: Path
    vkey_path: Path | None = None

    @classmethod
    def conventional(cls, base_dir: Path, kind: AttestationKind) -> "CircuitArtifacts":
        """Default build layout: ``<kind>_proof_js/<kind>_proof.wasm`` and friends."""
        name = f"{kind.value}_proof"
        return cls(
            wasm_path=base_dir / f"{name}_js" / f"{name}.wasm",
            zkey_path=base_dir / f"{name}_final.zkey",
            vkey_path=base_dir / f"{name}_verification_key.json",
        )


@dataclass
class Circuit:
    """Opaque loaded artifacts for one attestation kind."""

    kind: AttestationKind
    artifacts: CircuitArtifacts
    wasm: bytes | None = None
    zkey: bytes | None = None
    verification_key: dict[str, Any] | None = None
    loaded_at: datetime | None = field(default=None)

    @property
    def is_loaded(self) -> bool:
        return self.wasm is not None and self.zkey is not None


class CircuitRegistry:
    """
    Get-or-load cache of circuits keyed by attestation kind.

    Loads for the same kind are serialized; different kinds load
    concurrently. The registry performs no attestation logic.
    """

    def __init__(
        self,
        artifacts: dict[AttestationKind, CircuitArtifacts] | None = None,
        base_dir: str | Path | None = None,
        config: ZKSettings | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            artifacts: Explicit artifact locations per kind. Kinds that are
                not listed fall back to the conventional layout under
                ``base_dir``.
            base_dir: Circuit build directory. Defaults to ``ZK_CIRCUITS_DIR``.
            config: ZK settings, defaults to the global settings.
        """
        config = config or settings.zk
        self.base_dir = Path(base_dir) if base_dir else config.circuits_dir
        self._artifacts: dict[AttestationKind, CircuitArtifacts] = {
            kind: CircuitArtifacts.conventional(self.base_dir, kind) for kind in AttestationKind
        }
        if artifacts:
            self._artifacts.update(artifacts)

        self._circuits: dict[AttestationKind, Circuit] = {}
        self._locks: dict[AttestationKind, asyncio.Lock] = {}

        if not self.base_dir.exists():
            logger.warning("zk_circuit_build_dir_not_found", path=str(self.base_dir))

    def _lock_for(self, kind: AttestationKind) -> asyncio.Lock:
        lock = self._locks.get(kind)
        if lock is None:
            lock = self._locks[kind] = asyncio.Lock()
        return lock

    def artifacts_for(self, kind: AttestationKind) -> CircuitArtifacts:
        try:
            return self._artifacts[AttestationKind(kind)]
        except (KeyError, ValueError) as e:
            raise CircuitLoadError(
                f"Circuit configuration not found for {kind}",
                kind=str(getattr(kind, "value", kind)),
            ) from e

    async def load(self, kind: AttestationKind) -> Circuit:
        """
        Load the circuit for ``kind``. Idempotent.

        Raises:
            CircuitLoadError: If an artifact cannot be read or parsed.
        """
        artifacts = self.artifacts_for(kind)
        kind = AttestationKind(kind)

        circuit = self._circuits.get(kind)
        if circuit is not None:
            return circuit

        async with self._lock_for(kind):
            # Another caller may have finished loading while we waited
            circuit = self._circuits.get(kind)
            if circuit is not None:
                return circuit

            circuit = await self._read_artifacts(kind, artifacts)
            self._circuits[kind] = circuit

        logger.info(
            "circuit_loaded",
            kind=kind.value,
            wasm_bytes=len(circuit.wasm or b""),
            zkey_bytes=len(circuit.zkey or b""),
            has_verification_key=circuit.verification_key is not None,
        )
        return circuit

    async def get(self, kind: AttestationKind) -> Circuit:
        """Return the memoized circuit, loading it on first access."""
        circuit = self._circuits.get(kind)
        if circuit is not None:
            return circuit
        return await self.load(kind)

    async def preload(self, kinds: list[AttestationKind] | None = None) -> dict[AttestationKind, Circuit]:
        """Load several circuits concurrently."""
        kinds = kinds or list(self._artifacts)
        circuits = await asyncio.gather(*(self.load(kind) for kind in kinds))
        return dict(zip(kinds, circuits, strict=True))

    async def _read_artifacts(self, kind: AttestationKind, artifacts: CircuitArtifacts) -> Circuit:
        try:
            wasm = await asyncio.to_thread(artifacts.wasm_path.read_bytes)
            zkey = await asyncio.to_thread(artifacts.zkey_path.read_bytes)
        except OSError as e:
            logger.error("circuit_load_failed", kind=kind.value, error=str(e))
            raise CircuitLoadError(
                f"Failed to load {kind.value} circuit: {e}",
                kind=kind.value,
            ) from e

        verification_key = None
        vkey_path = artifacts.vkey_path
        if vkey_path is not None and vkey_path.exists():
            try:
                raw = await asyncio.to_thread(vkey_path.read_text)
                verification_key = json.loads(raw)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("verification_key_invalid", kind=kind.value, error=str(e))
                raise CircuitLoadError(
                    f"Failed to parse {kind.value} verification key: {e}",
                    kind=kind.value,
                ) from e

        return Circuit(
            kind=kind,
            artifacts=artifacts,
            wasm=wasm,
            zkey=zkey,
            verification_key=verification_key,
            loaded_at=datetime.now(UTC),
        )

    def is_loaded(self, kind: AttestationKind) -> bool:
        circuit = self._circuits.get(AttestationKind(kind))
        return circuit is not None and circuit.is_loaded

    def evict(self, kind: AttestationKind) -> bool:
        """Drop a memoized circuit. Returns True if one was loaded."""
        return self._circuits.pop(AttestationKind(kind), None) is not None

    def clear(self) -> None:
        self._circuits.clear()

    def availability(self) -> dict[str, dict[str, bool]]:
        """Local existence check for each configured artifact (diagnostics only)."""
        report: dict[str, dict[str, bool]] = {}
        for kind, artifacts in self._artifacts.items():
            report[kind.value] = {
                "wasm": artifacts.wasm_path.exists(),
                "zkey": artifacts.zkey_path.exists(),
                "vkey": artifacts.vkey_path is not None and artifacts.vkey_path.exists(),
                "loaded": self.is_loaded(kind),
            }
        return report
