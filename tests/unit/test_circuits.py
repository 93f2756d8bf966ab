"""
Unit Tests for the Circuit Registry
===================================
"""

import asyncio
from unittest.mock import patch

import pytest

from attestkit.errors import CircuitLoadError
from attestkit.zk import AttestationKind, CircuitArtifacts, CircuitRegistry


class TestCircuitRegistry:
    """Tests for get-or-load circuit caching."""

    @pytest.mark.asyncio
    async def test_load_reads_artifacts(self, registry):
        circuit = await registry.load(AttestationKind.AGE)

        assert circuit.is_loaded
        assert circuit.wasm == b"\x00asmage"
        assert circuit.verification_key == {"protocol": "groth16", "nPublic": 2}
        assert registry.is_loaded(AttestationKind.AGE)
        assert not registry.is_loaded(AttestationKind.REGION)

    @pytest.mark.asyncio
    async def test_get_memoizes(self, registry):
        first = await registry.get(AttestationKind.REGION)
        second = await registry.get(AttestationKind.REGION)
        assert first is second

    @pytest.mark.asyncio
    async def test_concurrent_loads_read_once(self, registry):
        original = registry._read_artifacts
        calls = 0

        async def counting(kind, artifacts):
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return await original(kind, artifacts)

        with patch.object(registry, "_read_artifacts", side_effect=counting):
            circuits = await asyncio.gather(*(registry.get(AttestationKind.AGE) for _ in range(5)))

        assert calls == 1
        assert all(c is circuits[0] for c in circuits)

    @pytest.mark.asyncio
    async def test_missing_artifact_fails(self, tmp_path):
        registry = CircuitRegistry(base_dir=tmp_path / "missing")

        with pytest.raises(CircuitLoadError) as exc_info:
            await registry.load(AttestationKind.UNIQUENESS)

        assert exc_info.value.code == "CIRCUIT_LOAD_FAILED"
        assert exc_info.value.kind == "uniqueness"
        assert not registry.is_loaded(AttestationKind.UNIQUENESS)

    @pytest.mark.asyncio
    async def test_bad_verification_key_fails(self, registry, circuits_dir):
        CircuitArtifacts.conventional(circuits_dir, AttestationKind.AGE).vkey_path.write_text("{not json")

        with pytest.raises(CircuitLoadError, match="verification key"):
            await registry.load(AttestationKind.AGE)

    @pytest.mark.asyncio
    async def test_verification_key_optional(self, registry, circuits_dir):
        CircuitArtifacts.conventional(circuits_dir, AttestationKind.AGE).vkey_path.unlink()

        circuit = await registry.load(AttestationKind.AGE)

        assert circuit.is_loaded
        assert circuit.verification_key is None

    @pytest.mark.asyncio
    async def test_explicit_artifacts_override(self, registry, circuits_dir):
        region = CircuitArtifacts.conventional(circuits_dir, AttestationKind.REGION)
        custom = CircuitRegistry(artifacts={AttestationKind.AGE: region}, base_dir=circuits_dir)

        circuit = await custom.load(AttestationKind.AGE)

        assert circuit.wasm == b"\x00asmregion"

    @pytest.mark.asyncio
    async def test_preload_and_evict(self, registry):
        circuits = await registry.preload()

        assert set(circuits) == set(AttestationKind)
        assert registry.evict(AttestationKind.AGE)
        assert not registry.evict(AttestationKind.AGE)
        registry.clear()
        assert not registry.is_loaded(AttestationKind.REGION)

    def test_unknown_kind(self, registry):
        with pytest.raises(CircuitLoadError):
            registry.artifacts_for("income")

    def test_availability(self, registry, circuits_dir):
        CircuitArtifacts.conventional(circuits_dir, AttestationKind.REGION).zkey_path.unlink()

        report = registry.availability()

        assert report["age"] == {"wasm": True, "zkey": True, "vkey": True, "loaded": False}
        assert report["region"]["zkey"] is False
