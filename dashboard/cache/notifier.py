from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

from dashboard.cache.keys import CollectionName, collection_name
from dashboard.cache.registry import CollectionRegistry

logger = logging.getLogger(__name__)


class MutationNotifier:
    """Declares that a collection changed remotely.

    Only the collection's ``lastUpdateTime`` moves; individual entries are
    left alone and read as stale through the freshness check.
    """

    def __init__(self, registry: CollectionRegistry):
        self.registry = registry

    def on_mutation(self, collection: CollectionName, at: Optional[int] = None) -> None:
        if at is None:
            # A write in the same millisecond as the last fetch must still read as unseen
            at = max(self.registry.clock(), self.registry.read(collection).last_fetch_time + 1)
        timestamps = self.registry.mark_updated(collection, at)
        logger.info(f"Collection '{collection_name(collection)}' marked updated at {timestamps.last_update_time}")

    @asynccontextmanager
    async def tracking(self, collection: CollectionName) -> AsyncIterator[None]:
        """Wrap a remote write; the collection is only marked if the block succeeds."""
        yield
        self.on_mutation(collection)
