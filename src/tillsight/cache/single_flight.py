"""
Single-flight TTL cache for generated insight bundles.

For each key the cache decides between three outcomes:
- serve a fresh cached entry,
- join the generation already running for the key,
- start a new generation.

At most one generation runs per key. Every caller attached to it receives
the same result, success or failure. A failed generation never touches the
stored entry, and an entry is only replaced by a strictly newer one.
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Awaitable, Callable, Dict, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel

from tillsight.schema import CacheEntry, InsightBundle


logger = logging.getLogger(__name__)


GeneratorFn = Callable[[], Awaitable[InsightBundle]]

ALL_TILLS = "all"


def make_cache_key(user_id: str, range_key: str, till_id: Optional[str] = None) -> str:
    """
    Compose the cache key for a merchant / window / till.

    Parts are percent-encoded so a separator inside an id cannot make two
    requests collide. A missing till means all tills.
    """
    parts = (user_id, range_key.strip().lower(), till_id or ALL_TILLS)
    return "|".join(quote(part, safe="") for part in parts)


class CacheOutcome(BaseModel):
    """What a caller of get_or_generate receives."""

    bundle: InsightBundle
    cached: bool
    generated_at: datetime
    expires_at: datetime
    joined: bool = False


def _consume_exception(task: asyncio.Task) -> None:
    # Failures are delivered to attached callers; this only keeps asyncio
    # from reporting them again when every caller has gone away.
    if not task.cancelled():
        task.exception()


class SingleFlightCache:
    """
    Keyed TTL cache with in-flight de-duplication.

    The lock guards in-memory map operations only and is never held across
    a generation.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=30),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the cache.

        Args:
            ttl: Lifetime of an entry from the moment its generation started
            clock: Time source (defaults to UTC now)
        """
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    async def get_or_generate(
        self,
        key: str,
        generator_fn: GeneratorFn,
        force: bool = False,
    ) -> CacheOutcome:
        """
        Return the bundle for ``key``, generating it if needed.

        Args:
            key: Cache key
            generator_fn: Coroutine function producing a validated bundle
            force: Skip the fresh-entry check (a running generation is still joined)

        Raises:
            Whatever ``generator_fn`` raises, delivered to every attached caller
        """
        async with self._lock:
            if not force:
                entry = self._entries.get(key)
                if entry is not None and entry.expires_at > self._clock():
                    logger.debug(f"Cache hit: {key}")
                    return CacheOutcome(
                        bundle=entry.bundle,
                        cached=True,
                        generated_at=entry.generated_at,
                        expires_at=entry.expires_at,
                    )

            task = self._in_flight.get(key)
            joined = task is not None
            if task is None:
                started_at = self._clock()
                task = asyncio.ensure_future(self._run(key, generator_fn, started_at))
                task.add_done_callback(_consume_exception)
                self._in_flight[key] = task

        if joined:
            logger.info(f"Joining in-flight generation: {key}")
        else:
            logger.info(f"Starting generation: {key}")

        # shield: a cancelled caller must not cancel the shared generation
        entry, stored = await asyncio.shield(task)
        return CacheOutcome(
            bundle=entry.bundle,
            cached=not stored,
            generated_at=entry.generated_at,
            expires_at=entry.expires_at,
            joined=joined,
        )

    async def _run(
        self, key: str, generator_fn: GeneratorFn, started_at: datetime
    ) -> Tuple[CacheEntry, bool]:
        """Run one generation; return the entry now cached for ``key`` and whether it is this one."""
        try:
            bundle = await generator_fn()
        except BaseException as e:
            async with self._lock:
                self._release(key)
            logger.warning(f"Generation failed for {key}: {type(e).__name__}")
            raise

        entry = CacheEntry(bundle=bundle, generated_at=started_at, expires_at=started_at + self.ttl)
        async with self._lock:
            stored = self._store(key, entry)
            self._release(key)
            # A discarded result is never handed out: callers get what the cache holds
            return self._entries[key], stored

    def _release(self, key: str) -> None:
        """Destroy the ticket for ``key`` if it belongs to the current task."""
        if self._in_flight.get(key) is asyncio.current_task():
            del self._in_flight[key]

    def _store(self, key: str, entry: CacheEntry) -> bool:
        """Replace the entry for ``key`` only with a strictly newer one."""
        existing = self._entries.get(key)
        if existing is not None and entry.generated_at <= existing.generated_at:
            logger.info(
                f"Discarding stale result for {key}: generated {entry.generated_at.isoformat()}, "
                f"cached {existing.generated_at.isoformat()}"
            )
            return False
        self._entries[key] = entry
        logger.info(f"Cached insights for {key} until {entry.expires_at.isoformat()}")
        return True

    async def put(self, key: str, bundle: InsightBundle, generated_at: datetime) -> bool:
        """
        Store a bundle generated at ``generated_at``.

        Returns:
            False if an entry at least as new is already cached
        """
        entry = CacheEntry(bundle=bundle, generated_at=generated_at, expires_at=generated_at + self.ttl)
        async with self._lock:
            return self._store(key, entry)

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Current entry for ``key``, fresh or stale."""
        return self._entries.get(key)

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def __len__(self) -> int:
        return len(self._entries)
