from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple
import asyncio
import logging

from dashboard.cache.clock import Clock, now_ms
from dashboard.cache.entry_store import EntryStore
from dashboard.cache.keys import CacheKey
from dashboard.cache.policy import DEFAULT_MAX_AGE_MS, is_fresh
from dashboard.cache.registry import CollectionRegistry

logger = logging.getLogger(__name__)

RemoteFetch = Callable[[], Awaitable[Any]]


class FetchOrchestrator:
    """Read-through glue used by every cached read site.

    Concurrent ``resolve`` calls for the same key share one remote fetch,
    unless a write to the collection landed after that fetch started.
    Callers that stop waiting do not cancel it; its result is still cached.
    """

    def __init__(
        self,
        entries: EntryStore,
        registry: CollectionRegistry,
        clock: Clock = now_ms,
        default_max_age: int = DEFAULT_MAX_AGE_MS,
    ):
        self.entries = entries
        self.registry = registry
        self.clock = clock
        self.default_max_age = default_max_age
        self._in_flight: Dict[str, Tuple["asyncio.Task[Any]", int]] = {}
        self._superseded: Set["asyncio.Task[Any]"] = set()

    def is_fresh(
        self,
        key: CacheKey,
        max_age: Optional[int] = None,
        server_modified_at: Optional[int] = None,
    ) -> bool:
        return is_fresh(
            self.entries.get_metadata(key),
            self.registry.read(key.collection),
            self.default_max_age if max_age is None else max_age,
            self.clock(),
            server_modified_at,
        )

    def in_flight(self) -> int:
        return len(self._in_flight)

    async def resolve(
        self,
        key: CacheKey,
        remote_fetch: RemoteFetch,
        max_age: Optional[int] = None,
        force_refresh: bool = False,
        server_modified_at: Optional[int] = None,
    ) -> Any:
        if not force_refresh:
            entry = self.entries.get_entry(key)
            if entry is not None and is_fresh(
                entry.metadata,
                self.registry.read(key.collection),
                self.default_max_age if max_age is None else max_age,
                self.clock(),
                server_modified_at,
            ):
                logger.debug(f"Cache hit for '{key}'")
                return entry.data

        try:
            return await asyncio.shield(self._shared_fetch(key, remote_fetch))
        except Exception as e:
            stale = self.entries.get_entry(key)
            if stale is None:
                raise
            logger.error(f"Remote fetch for '{key}' failed, serving cached copy from {stale.fetched_at}: {e}")
            return stale.data

    def _shared_fetch(self, key: CacheKey, remote_fetch: RemoteFetch) -> "asyncio.Task[Any]":
        storage_key = key.storage_key
        current = self._in_flight.get(storage_key)
        if current is not None:
            task, started_at = current
            # a fetch that began before the latest write cannot serve a read issued after it
            if started_at >= self.registry.read(key.collection).last_update_time:
                logger.debug(f"Joining in-flight fetch for '{key}'")
                return task
            logger.debug(f"In-flight fetch for '{key}' predates a write, starting another")
            self._superseded.add(task)

        # Fetch time is taken before the remote read so that a write landing
        # while it is in flight still reads as unseen afterwards.
        started_at = self.clock()
        task = asyncio.ensure_future(self._fetch_and_store(key, remote_fetch, started_at))
        self._in_flight[storage_key] = (task, started_at)

        def _forget(done: "asyncio.Task[Any]") -> None:
            entry = self._in_flight.get(storage_key)
            if entry is not None and entry[0] is done:
                del self._in_flight[storage_key]
            self._superseded.discard(done)
            if not done.cancelled():
                # mark the exception as retrieved when every waiter went away
                done.exception()

        task.add_done_callback(_forget)
        return task

    async def _fetch_and_store(self, key: CacheKey, remote_fetch: RemoteFetch, started_at: int) -> Any:
        logger.info(f"Fetching '{key}' from the document store")
        result = await remote_fetch()
        if asyncio.current_task() in self._superseded:
            # a newer fetch owns the entry; its waiters still get this result
            return result
        if self.entries.put(key, result):
            self.registry.mark_fetched(key.collection, started_at)
        return result
