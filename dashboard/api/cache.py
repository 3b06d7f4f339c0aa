from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from dashboard.cache.keys import Collection
from dashboard.core.container import Container, get_container
from dashboard.schemas.cache import CollectionCacheStatus

router = APIRouter(prefix="/cache", tags=["cache"])

KNOWN_COLLECTIONS = {c.value for c in Collection}


@router.get("/collections/{collection}", response_model=CollectionCacheStatus)
async def collection_cache_status(
    collection: str,
    max_age_ms: Optional[int] = Query(None, ge=0),
    container: Container = Depends(get_container),
):
    """Registry timestamps of one collection and whether a read would refetch."""
    if collection not in KNOWN_COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection '{collection}'")

    max_age = container.config.CACHE_MAX_AGE_MS if max_age_ms is None else max_age_ms
    timestamps = container.registry.read(collection)
    return CollectionCacheStatus(
        collection=collection,
        last_update_time=timestamps.last_update_time,
        last_fetch_time=timestamps.last_fetch_time,
        should_fetch=container.registry.should_fetch(collection, max_age),
        max_age_ms=max_age,
        cached_keys=len(container.entries.keys_for_collection(collection)),
        in_flight=container.orchestrator.in_flight(),
    )
