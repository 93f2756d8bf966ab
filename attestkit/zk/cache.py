"""
Proof Cache
===========

TTL cache of attestations keyed by a deterministic fingerprint, with
single-flight computation: concurrent callers for the same fingerprint
await one shared task instead of invoking the prover twice.

Version: 0.1.0
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from attestkit.logging import get_logger
from attestkit.zk.models import Attestation, CacheEntry, CacheStats


logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ProofCache:
    """
    In-memory attestation cache.

    Entries expire lazily on read or through ``sweep_expired``. Failed,
    timed out or cancelled computations are never stored.
    """

    def __init__(self, ttl_seconds: float, clock: Clock | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utc_now
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[Attestation]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, fingerprint: str) -> Attestation | None:
        entry = self._entries.get(fingerprint)
        if entry is not None and not entry.is_live(self._clock()):
            del self._entries[fingerprint]
            entry = None

        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        return entry.attestation

    def _store(self, fingerprint: str, attestation: Attestation) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(attestation=attestation, created_at=now, expires_at=now + self.ttl)
        self._entries[fingerprint] = entry
        return entry

    async def get_or_compute(
        self,
        fingerprint: str,
        factory: Callable[[], Awaitable[Attestation]],
    ) -> tuple[Attestation, bool]:
        """
        Return a cached attestation or compute it at most once.

        Returns:
            Tuple of (attestation, cache_hit). Callers that joined an
            in-flight computation report ``cache_hit=False``.
        """
        async with self._lock:
            cached = self._lookup(fingerprint)
            if cached is not None:
                return cached, True

            task = self._inflight.get(fingerprint)
            if task is None:
                task = asyncio.create_task(self._compute(fingerprint, factory))
                task.add_done_callback(_consume_exception)
                self._inflight[fingerprint] = task
            else:
                logger.debug("proof_cache_join_inflight", fingerprint=fingerprint[:24])

        # A cancelled waiter must not cancel the computation other callers share
        return await asyncio.shield(task), False

    async def _compute(
        self,
        fingerprint: str,
        factory: Callable[[], Awaitable[Attestation]],
    ) -> Attestation:
        try:
            attestation = await factory()
            async with self._lock:
                self._store(fingerprint, attestation)
            return attestation
        finally:
            self._inflight.pop(fingerprint, None)

    async def sweep_expired(self) -> int:
        """Remove every entry with ``expires_at <= now``."""
        async with self._lock:
            now = self._clock()
            expired = [fp for fp, entry in self._entries.items() if entry.expires_at <= now]
            for fp in expired:
                del self._entries[fp]

        if expired:
            logger.info("proof_cache_swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def stats(self) -> CacheStats:
        now = self._clock()
        return CacheStats(
            total=len(self._entries),
            expired=sum(1 for entry in self._entries.values() if entry.expires_at <= now),
            hits=self._hits,
            misses=self._misses,
        )

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters re-raise the error; this only stops "exception never retrieved" noise
    if not task.cancelled():
        task.exception()
