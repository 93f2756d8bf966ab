#!/usr/bin/env python3
"""
Attestation Benchmark Script
============================

Times end-to-end proving per attestation kind through the proof engine and
compares the 95th percentile with that kind's proving deadline. Every
iteration uses a fresh holder and nonce, so the proof cache never answers.

Usage:
    python scripts/benchmark_proofs.py [--iterations N] [--kind age|region|uniqueness]

Requirements:
    - Node.js 18+
    - snarkjs available through ZK_SNARKJS_COMMAND
    - Circuits compiled into ZK_CIRCUITS_DIR
"""

import argparse
import asyncio
import json
import random
import statistics
import sys
import time
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path

from attestkit.errors import AttestError
from attestkit.zk import AttestationKind, AttributeRecord, ProofEngine, SnarkjsBackend
from attestkit.zk.commitment import generate_nonce


@dataclass
class KindTimings:
    """Proving times for one kind against its deadline."""

    kind: AttestationKind
    deadline_ms: int
    attempts: int = 0
    durations_ms: list[int] = field(default_factory=list)
    failures: dict[str, int] = field(default_factory=dict)

    def record_failure(self, code: str) -> None:
        self.failures[code] = self.failures.get(code, 0) + 1

    @property
    def p95_ms(self) -> int:
        if len(self.durations_ms) < 2:
            return max(self.durations_ms, default=0)
        return round(statistics.quantiles(self.durations_ms, n=20)[-1])

    @property
    def within_deadline(self) -> bool:
        return bool(self.durations_ms) and not self.failures and self.p95_ms < self.deadline_ms

    def summary(self) -> dict:
        times = self.durations_ms
        return {
            "kind": self.kind.value,
            "attempts": self.attempts,
            "succeeded": len(times),
            "failures": self.failures,
            "min_ms": min(times, default=0),
            "median_ms": statistics.median(times) if times else 0,
            "p95_ms": self.p95_ms,
            "max_ms": max(times, default=0),
            "deadline_ms": self.deadline_ms,
            "within_deadline": self.within_deadline,
        }


def random_holder(regions: list[str]) -> AttributeRecord:
    born = date(random.randint(1950, 2005), random.randint(1, 12), random.randint(1, 28))
    return AttributeRecord(
        reference_id=str(random.randint(10**11, 10**12 - 1)),
        name="Benchmark Holder",
        date_of_birth=born,
        region=random.choice(regions),
    )


def random_params(kind: AttestationKind, holder: AttributeRecord, regions: list[str]) -> dict:
    """Parameters the holder satisfies, with a fresh nonce."""
    nonce = generate_nonce()
    if kind is AttestationKind.AGE:
        return {"threshold": 18, "nonce": nonce}
    if kind is AttestationKind.REGION:
        return {"allowed_regions": sorted({holder.region, *random.sample(regions, 3)}), "nonce": nonce}
    return {"scope": "benchmark", "epoch": generate_nonce(), "nonce": nonce}


async def time_kind(engine: ProofEngine, kind: AttestationKind, iterations: int) -> KindTimings:
    regions = sorted(engine.supported_regions)
    timings = KindTimings(kind, deadline_ms=int(engine.config.timeout_for(kind) * 1000))

    print(f"\n{kind.value}: {iterations} iterations, deadline {timings.deadline_ms}ms")
    for i in range(1, iterations + 1):
        holder = random_holder(regions)
        timings.attempts += 1
        start = time.perf_counter()
        try:
            await engine.generate(kind, holder, random_params(kind, holder, regions))
        except AttestError as e:
            timings.record_failure(e.code)
            print(f"  {i:>3} failed [{e.code}] {e.message}")
            continue
        elapsed = int((time.perf_counter() - start) * 1000)
        timings.durations_ms.append(elapsed)
        print(f"  {i:>3} {elapsed}ms")

    return timings


def report(results: list[KindTimings]) -> None:
    print(f"\n{'kind':<12} {'ok':>5} {'median':>9} {'p95':>8} {'deadline':>9}  result")
    for r in results:
        s = r.summary()
        print(
            f"{s['kind']:<12} {s['succeeded']:>2}/{s['attempts']:<2} {s['median_ms']:>7.0f}ms "
            f"{s['p95_ms']:>6}ms {s['deadline_ms']:>7}ms  {'ok' if r.within_deadline else 'SLOW'}"
        )


async def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark attestation proof generation")
    parser.add_argument("--iterations", "-n", type=int, default=10, help="Iterations per kind")
    parser.add_argument(
        "--kind", "-k", choices=[k.value for k in AttestationKind], help="Benchmark one kind only"
    )
    parser.add_argument("--output", "-o", type=Path, help="Write a JSON report here")
    args = parser.parse_args()

    engine = ProofEngine(backend=SnarkjsBackend())
    kinds = [AttestationKind(args.kind)] if args.kind else list(AttestationKind)

    try:
        await engine.registry.preload(kinds)
    except AttestError as e:
        print(f"Circuits unavailable [{e.code}]: {e.message}", file=sys.stderr)
        return 1

    results = [await time_kind(engine, kind, args.iterations) for kind in kinds]
    report(results)
    passed = all(r.within_deadline for r in results)

    if args.output:
        args.output.write_text(
            json.dumps(
                {
                    "generated_at": datetime.now(UTC).isoformat(),
                    "passed": passed,
                    "kinds": [r.summary() for r in results],
                },
                indent=2,
            )
        )
        print(f"\nReport written to {args.output}")

    return 0 if passed else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
