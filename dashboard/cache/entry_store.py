from typing import Any, List, Optional, Union
import logging

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from dashboard.cache.clock import Clock, now_ms
from dashboard.cache.keys import CacheKey, CollectionName, collection_name, timestamps_key
from dashboard.cache.storage import Storage
from dashboard.core.errors import StorageError
from dashboard.schemas.cache import CacheEntry, EntryMetadata

logger = logging.getLogger(__name__)

KeyLike = Union[CacheKey, str]


def _raw_key(key: KeyLike) -> str:
    return key.storage_key if isinstance(key, CacheKey) else key


class EntryStore:
    """Stores ``{data, fetchedAt, modifiedAt}`` envelopes. No freshness policy here."""

    def __init__(self, storage: Storage, clock: Clock = now_ms):
        self.storage = storage
        self.clock = clock

    def put(self, key: KeyLike, data: Any, modified_at: Optional[int] = None) -> bool:
        raw_key = _raw_key(key)
        now = self.clock()
        entry = CacheEntry(
            data=data,
            fetched_at=now,
            modified_at=now if modified_at is None else modified_at,
        )
        try:
            payload = entry.model_dump_json(by_alias=True)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(f"Cache entry '{raw_key}' is not serializable, keeping previous value: {e}")
            return False
        try:
            self.storage.set(raw_key, payload)
        except StorageError as e:
            logger.error(f"Cache write failed for '{raw_key}', keeping previous value: {e}")
            return False
        return True

    def get_entry(self, key: KeyLike) -> Optional[CacheEntry]:
        raw_key = _raw_key(key)
        raw = self.storage.get(raw_key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt cache entry '{raw_key}': {e.error_count()} error(s)")
            return None

    def get(self, key: KeyLike) -> Optional[Any]:
        entry = self.get_entry(key)
        return entry.data if entry is not None else None

    def get_metadata(self, key: KeyLike) -> Optional[EntryMetadata]:
        entry = self.get_entry(key)
        return entry.metadata if entry is not None else None

    def remove(self, key: KeyLike) -> None:
        self.storage.remove(_raw_key(key))

    def remove_all_with_prefix(self, prefix: str) -> int:
        doomed = [k for k in self.storage.keys() if k.startswith(prefix)]
        for k in doomed:
            self.storage.remove(k)
        if doomed:
            logger.info(f"Removed {len(doomed)} cache entries with prefix '{prefix}'")
        return len(doomed)

    def keys_for_collection(self, collection: CollectionName) -> List[str]:
        name = collection_name(collection)
        registry_key = timestamps_key(name)
        return [
            k for k in self.storage.keys()
            if (k == name or k.startswith(f"{name}_")) and k != registry_key
        ]
