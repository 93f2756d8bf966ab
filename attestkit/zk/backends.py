"""
Prover Backends
===============

The engine treats the proving system as an opaque capability:

    prove(circuit, inputs) -> ProofOutput(proof, public_signals)
    verify(verification_key, proof, public_signals) -> bool

``SnarkjsBackend`` implements it with the snarkjs CLI via subprocess.

Version: 0.1.0
"""

import asyncio
import json
import shlex
import tempfile
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from attestkit.config import settings
from attestkit.logging import get_logger
from attestkit.zk.circuits import Circuit
from attestkit.zk.models import ProofOutput, ZKProof


logger = get_logger(__name__)


class ProverError(RuntimeError):
    """The external prover reported a failure."""


@runtime_checkable
class ProverBackend(Protocol):
    """Narrow capability interface over a proving system."""

    async def prove(self, circuit: Circuit, inputs: dict[str, Any]) -> ProofOutput: ...

    async def verify(
        self,
        verification_key: dict[str, Any],
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> bool: ...


class SnarkjsBackend:
    """
    Groth16 prover backed by ``snarkjs``.

    Each call works in its own temporary directory so concurrent proofs
    never share files. Cancelling a call kills the subprocess.
    """

    def __init__(self, command: str | None = None, cwd: str | Path | None = None) -> None:
        self.command = shlex.split(command or settings.zk.snarkjs_command)
        self.cwd = Path(cwd) if cwd else None

    async def _run(self, *args: str) -> tuple[int, str, str]:
        process = await asyncio.create_subprocess_exec(
            *self.command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            logger.warning("snarkjs_process_killed", args=args[:2])
            raise
        return process.returncode or 0, stdout.decode(), stderr.decode()

    async def prove(self, circuit: Circuit, inputs: dict[str, Any]) -> ProofOutput:
        artifacts = circuit.artifacts

        with tempfile.TemporaryDirectory(prefix="attestkit-prove-") as tmp:
            workdir = Path(tmp)
            input_file = workdir / "input.json"
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"
            input_file.write_text(json.dumps(inputs))

            start_time = time.perf_counter()
            returncode, _, stderr = await self._run(
                "groth16",
                "fullprove",
                str(input_file),
                str(artifacts.wasm_path),
                str(artifacts.zkey_path),
                str(proof_file),
                str(public_file),
            )
            proving_time_ms = int((time.perf_counter() - start_time) * 1000)

            if returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=stderr,
                    kind=circuit.kind.value,
                )
                raise ProverError(f"Proof generation failed: {stderr.strip()}")

            proof_json = json.loads(proof_file.read_text())
            public_signals = json.loads(public_file.read_text())

        logger.debug(
            "snarkjs_proof_generated",
            kind=circuit.kind.value,
            proving_time_ms=proving_time_ms,
        )

        return ProofOutput(
            proof=ZKProof(**proof_json),
            public_signals=tuple(str(s) for s in public_signals),
        )

    async def verify(
        self,
        verification_key: dict[str, Any],
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> bool:
        with tempfile.TemporaryDirectory(prefix="attestkit-verify-") as tmp:
            workdir = Path(tmp)
            vkey_file = workdir / "verification_key.json"
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"

            vkey_file.write_text(json.dumps(verification_key))
            proof_file.write_text(proof.model_dump_json())
            public_file.write_text(json.dumps(list(public_signals)))

            returncode, stdout, stderr = await self._run(
                "groth16",
                "verify",
                str(vkey_file),
                str(public_file),
                str(proof_file),
            )

        is_valid = returncode == 0 and "OK" in stdout
        if not is_valid:
            logger.info("snarkjs_verification_rejected", stderr=stderr.strip() or None)
        return is_valid
