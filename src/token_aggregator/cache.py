"""Time-bounded, single-flight cache for aggregation results."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from cachetools import TLRUCache

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Producer = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A successfully computed value and its lifetime window."""

    key: str
    value: T
    computed_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


def _entry_expiry(_key: str, entry: CacheEntry[Any], _now: float) -> float:
    return entry.expires_at


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Retrieve the failure even when every waiter was cancelled.
    if not task.cancelled():
        task.exception()


class CacheStore:
    """Per-key cache with wall-clock TTL and fetch coalescing.

    ``fetch`` computes a missing value with exactly one producer call per key,
    no matter how many callers arrive while it is running. The producer runs
    as its own task, so a caller that gives up does not cancel the work other
    callers are waiting on. Values are stored only when the producer
    succeeds, and expire ``ttl`` seconds after the producer finished.
    """

    def __init__(
        self,
        default_ttl: float = 60.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: TLRUCache[str, CacheEntry[Any]] = TLRUCache(
            maxsize=max_entries, ttu=_entry_expiry, timer=clock
        )
        self._in_flight: dict[str, asyncio.Task[Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return the live cached value for ``key``, or None. Never computes."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_live(self._clock()):
            return None
        return entry.value

    def entry(self, key: str) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None or not entry.is_live(self._clock()):
            return None
        return entry

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def fetch(
        self, key: str, producer: Producer[T], ttl: float | None = None
    ) -> T:
        """Return the cached value for ``key``, computing it with ``producer`` if missing.

        Args:
            key: Opaque cache key, already scoped by namespace and network
            producer: Zero-argument coroutine factory computing the value
            ttl: Lifetime in seconds; defaults to the store's ``default_ttl``

        Returns:
            The cached or freshly computed value

        Raises:
            Whatever ``producer`` raised. Every caller coalesced onto the same
            computation observes the same exception; nothing is cached.
        """
        entry = self.entry(key)
        if entry is not None:
            logger.debug("Cache hit for %s", key)
            return entry.value

        task = self._in_flight.get(key)
        if task is None:
            logger.debug("Cache miss for %s, computing", key)
            task = asyncio.ensure_future(
                self._produce(key, producer, self.default_ttl if ttl is None else ttl)
            )
            task.add_done_callback(_consume_exception)
            self._in_flight[key] = task
        else:
            logger.debug("Joining in-flight computation for %s", key)

        return await asyncio.shield(task)

    async def _produce(self, key: str, producer: Producer[T], ttl: float) -> T:
        try:
            value = await producer()
            computed_at = self._clock()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                computed_at=computed_at,
                expires_at=computed_at + ttl,
            )
            return value
        finally:
            self._in_flight.pop(key, None)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class CachedFetcher(Generic[T]):
    """A named cache slot scoped to one network.

    Two ways to read it: ``fetch`` returns the cached value or None and never
    computes; ``fetch_or_compute`` fills a missing slot through the store's
    single-flight path.
    """

    def __init__(
        self,
        namespace: str,
        chain_id: int,
        store: CacheStore,
        ttl: float | None = None,
    ):
        self.namespace = namespace
        self.chain_id = chain_id
        self.store = store
        self.ttl = ttl

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.chain_id}"

    async def fetch(self) -> T | None:
        return self.store.get(self.key)

    async def fetch_or_compute(self, producer: Producer[T]) -> T:
        return await self.store.fetch(self.key, producer, self.ttl)
