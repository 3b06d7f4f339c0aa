"""Freshness decisions. Pure functions: callers pass in every reading, including ``now``."""
from typing import Optional

from dashboard.schemas.cache import CollectionTimestamps, EntryMetadata

DEFAULT_MAX_AGE_MS = 5 * 60 * 1000


def has_unseen_write(timestamps: CollectionTimestamps) -> bool:
    return timestamps.last_update_time > timestamps.last_fetch_time


def is_fresh(
    entry: Optional[EntryMetadata],
    timestamps: CollectionTimestamps,
    max_age: int,
    now: int,
    server_modified_at: Optional[int] = None,
) -> bool:
    """Return True when a cached entry may be served without a remote read.

    A write to the owning collection that this client has not fetched since
    invalidates every entry of that collection, whichever query produced it.
    """
    if entry is None:
        return False
    if has_unseen_write(timestamps):
        return False
    if server_modified_at is not None and server_modified_at > entry.modified_at:
        return False
    return now - entry.fetched_at < max_age


def should_fetch_collection(timestamps: CollectionTimestamps, max_age: int, now: int) -> bool:
    if has_unseen_write(timestamps):
        return True
    return now - timestamps.last_fetch_time > max_age
