"""
Unit Tests for the Proof Cache
==============================
"""

import asyncio

import pytest

from attestkit.zk import ProofCache


async def fill(cache, fingerprint, attestation):
    async def factory():
        return attestation

    return await cache.get_or_compute(fingerprint, factory)


class TestProofCache:
    """Tests for TTL expiry and single-flight computation."""

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            ProofCache(0)

    @pytest.mark.asyncio
    async def test_hit_after_miss(self, clock, attestation):
        cache = ProofCache(60, clock=clock)

        assert await fill(cache, "fp", attestation) == (attestation, False)
        assert await fill(cache, "fp", attestation) == (attestation, True)
        assert await fill(cache, "other", attestation) == (attestation, False)
        assert (cache.stats().hits, cache.stats().misses) == (1, 2)

    @pytest.mark.asyncio
    async def test_entry_expires(self, clock, attestation):
        cache = ProofCache(60, clock=clock)
        await fill(cache, "fp", attestation)

        clock.advance(60)

        _, hit = await fill(cache, "fp", attestation)
        assert hit is False
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_single_flight(self, clock, attestation):
        cache = ProofCache(60, clock=clock)
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.02)
            return attestation

        results = await asyncio.gather(*(cache.get_or_compute("fp", factory) for _ in range(4)))

        assert calls == 1
        assert all(a == attestation for a, _ in results)
        assert all(hit is False for _, hit in results)

        again, hit = await cache.get_or_compute("fp", factory)
        assert hit is True
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, clock, attestation):
        cache = ProofCache(60, clock=clock)
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("prover crashed")
            return attestation

        with pytest.raises(RuntimeError):
            await cache.get_or_compute("fp", flaky)

        result, hit = await cache.get_or_compute("fp", flaky)

        assert result == attestation
        assert hit is False
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_keeps_computation(self, clock, attestation):
        cache = ProofCache(60, clock=clock)
        release = asyncio.Event()

        async def factory():
            await release.wait()
            return attestation

        first = asyncio.create_task(cache.get_or_compute("fp", factory))
        second = asyncio.create_task(cache.get_or_compute("fp", factory))
        await asyncio.sleep(0)
        first.cancel()
        release.set()

        result, _ = await second
        assert result == attestation
        assert await fill(cache, "fp", attestation) == (attestation, True)

    @pytest.mark.asyncio
    async def test_sweep_and_stats(self, clock, attestation):
        cache = ProofCache(60, clock=clock)
        await fill(cache, "old", attestation)
        clock.advance(30)
        await fill(cache, "new", attestation)
        clock.advance(30)

        stats = cache.stats()
        assert stats.total == 2
        assert stats.expired == 1

        assert await cache.sweep_expired() == 1
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0
        assert cache.stats().hits == 0
