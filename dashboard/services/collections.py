from functools import partial
from typing import Any, Dict, Iterator, List, Optional
import hashlib
import json
import logging

from dashboard.cache.keys import CacheKey, CollectionName, cache_key, collection_name
from dashboard.cache.notifier import MutationNotifier
from dashboard.cache.orchestrator import FetchOrchestrator
from dashboard.core.errors import DocumentNotFound, UnknownCollection
from dashboard.db.documents import Document, DocumentStore

logger = logging.getLogger(__name__)


def filter_digest(filters: Dict[str, Any]) -> str:
    """Stable short digest of a filter object, independent of key order."""
    canonical = json.dumps(filters, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _matches(value: Any, term: str) -> bool:
    if isinstance(value, str):
        return term in value.lower()
    if isinstance(value, list):
        return any(isinstance(v, str) and term in v.lower() for v in value)
    return False


class CollectionService:
    """Cache-aware reads and cache-invalidating writes for one collection."""

    def __init__(
        self,
        collection: CollectionName,
        documents: DocumentStore,
        orchestrator: FetchOrchestrator,
        notifier: MutationNotifier,
        max_age: Optional[int] = None,
    ):
        self.collection = collection_name(collection)
        self.documents = documents
        self.orchestrator = orchestrator
        self.notifier = notifier
        self.max_age = max_age

    def key(self, *parts: object) -> CacheKey:
        return cache_key(self.collection, *parts)

    async def list_all(self, force_refresh: bool = False) -> List[Document]:
        return await self.orchestrator.resolve(
            self.key(),
            partial(self.documents.find_all, self.collection),
            max_age=self.max_age,
            force_refresh=force_refresh,
        )

    async def find_by_filter(self, filters: Dict[str, Any], force_refresh: bool = False) -> List[Document]:
        return await self.orchestrator.resolve(
            self.key("filter", filter_digest(filters)),
            partial(self.documents.find_by_filter, self.collection, filters),
            max_age=self.max_age,
            force_refresh=force_refresh,
        )

    async def find_by_id(self, document_id: str, force_refresh: bool = False) -> Document:
        # A missing document is cached as null until the next write to the collection.
        document = await self.orchestrator.resolve(
            self.key(document_id),
            partial(self.documents.find_by_id, self.collection, document_id),
            max_age=self.max_age,
            force_refresh=force_refresh,
        )
        if document is None:
            raise DocumentNotFound(self.collection, document_id)
        return document

    async def distinct_values(self, field: str, force_refresh: bool = False) -> List[str]:
        async def collect() -> List[str]:
            # on a miss this fetch and the nested list_all both mark the collection fetched
            documents = await self.list_all(force_refresh=force_refresh)
            return sorted({str(d[field]) for d in documents if d.get(field) not in (None, "")})

        return await self.orchestrator.resolve(
            self.key("distinct", field),
            collect,
            max_age=self.max_age,
            force_refresh=force_refresh,
        )

    async def search(self, term: str) -> List[Document]:
        documents = await self.list_all()
        term = (term or "").strip().lower()
        if not term:
            return documents
        return [d for d in documents if any(_matches(v, term) for k, v in d.items() if k != "id")]

    async def create(self, document: Document) -> Document:
        async with self.notifier.tracking(self.collection):
            created = await self.documents.insert(self.collection, document)
        logger.info(f"Created {self.collection}/{created['id']}")
        return created

    async def update(self, document_id: str, patch: Document) -> Document:
        async with self.notifier.tracking(self.collection):
            updated = await self.documents.update(self.collection, document_id, patch)
        self.orchestrator.entries.remove(self.key(document_id))
        return updated

    async def delete(self, document_id: str) -> None:
        async with self.notifier.tracking(self.collection):
            await self.documents.delete(self.collection, document_id)
        self.orchestrator.entries.remove(self.key(document_id))
        logger.info(f"Deleted {self.collection}/{document_id}")


class ServiceRegistry:
    def __init__(self, services: Dict[str, CollectionService]):
        self._services = services

    def get(self, collection: CollectionName) -> CollectionService:
        name = collection_name(collection)
        service = self._services.get(name)
        if service is None:
            raise UnknownCollection(name)
        return service

    def names(self) -> List[str]:
        return list(self._services)

    def __iter__(self) -> Iterator[CollectionService]:
        return iter(self._services.values())
