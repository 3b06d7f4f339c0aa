from typing import Optional
import logging

from pydantic import ValidationError

from dashboard.cache.clock import Clock, now_ms
from dashboard.cache.keys import CollectionName, collection_name, timestamps_key
from dashboard.cache.policy import should_fetch_collection
from dashboard.cache.storage import Storage
from dashboard.core.errors import StorageError
from dashboard.schemas.cache import CollectionTimestamps

logger = logging.getLogger(__name__)


class CollectionRegistry:
    """Per-collection ``{lastUpdateTime, lastFetchTime}`` records."""

    def __init__(self, storage: Storage, clock: Clock = now_ms):
        self.storage = storage
        self.clock = clock

    def read(self, collection: CollectionName) -> CollectionTimestamps:
        raw = self.storage.get(timestamps_key(collection))
        if raw is None:
            return CollectionTimestamps()
        try:
            return CollectionTimestamps.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Corrupt timestamps for '{collection_name(collection)}', treating as never fetched")
            return CollectionTimestamps()

    def _save(self, collection: CollectionName, timestamps: CollectionTimestamps) -> bool:
        try:
            self.storage.set(timestamps_key(collection), timestamps.model_dump_json(by_alias=True))
        except StorageError as e:
            logger.error(f"Could not save timestamps for '{collection_name(collection)}': {e}")
            return False
        return True

    def mark_fetched(self, collection: CollectionName, at: Optional[int] = None) -> CollectionTimestamps:
        current = self.read(collection)
        updated = current.model_copy(update={"last_fetch_time": self.clock() if at is None else at})
        return updated if self._save(collection, updated) else current

    def mark_updated(self, collection: CollectionName, at: Optional[int] = None) -> CollectionTimestamps:
        current = self.read(collection)
        at = self.clock() if at is None else at
        # lastUpdateTime only moves forward; reset() is the one way back
        updated = current.model_copy(update={"last_update_time": max(current.last_update_time, at)})
        return updated if self._save(collection, updated) else current

    def mark_both(self, collection: CollectionName, at: Optional[int] = None) -> CollectionTimestamps:
        current = self.read(collection)
        at = self.clock() if at is None else at
        updated = CollectionTimestamps(last_update_time=max(current.last_update_time, at), last_fetch_time=at)
        return updated if self._save(collection, updated) else current

    def reset(self, collection: CollectionName) -> None:
        self.storage.remove(timestamps_key(collection))

    def should_fetch(self, collection: CollectionName, max_age: int) -> bool:
        return should_fetch_collection(self.read(collection), max_age, self.clock())
