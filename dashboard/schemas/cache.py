from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

# Records are persisted with the camelCase field names of the browser layout,
# so every model accepts both spellings and dumps by alias.


class CollectionTimestamps(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_update_time: int = Field(0, alias="lastUpdateTime")
    last_fetch_time: int = Field(0, alias="lastFetchTime")


class EntryMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fetched_at: int = Field(..., alias="fetchedAt")
    modified_at: int = Field(..., alias="modifiedAt")


class CacheEntry(EntryMetadata):
    data: Any

    @property
    def metadata(self) -> EntryMetadata:
        return EntryMetadata(fetched_at=self.fetched_at, modified_at=self.modified_at)


class SyncMessage(BaseModel):
    """Storage-change notification passed between open contexts."""

    key: str
    # raw stored string, None when the key was removed
    value: Optional[str] = None
    origin: str


class CollectionCacheStatus(BaseModel):
    collection: str
    last_update_time: int
    last_fetch_time: int
    should_fetch: bool
    max_age_ms: int
    cached_keys: int = 0
    in_flight: Optional[int] = None
