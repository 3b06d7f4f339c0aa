from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import copy
import logging
import uuid

from dashboard.cache.clock import Clock, now_ms
from dashboard.core.errors import DocumentNotFound, DocumentStoreError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Remote document store consumed by the collection services.

    Every operation is asynchronous and may raise ``DocumentStoreError``.
    """

    @abstractmethod
    async def find_all(self, collection: str) -> List[Document]:
        pass

    @abstractmethod
    async def find_by_filter(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        pass

    @abstractmethod
    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    async def insert(self, collection: str, document: Document) -> Document:
        pass

    @abstractmethod
    async def update(self, collection: str, document_id: str, patch: Document) -> Document:
        pass

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        pass


class InMemoryDocumentStore(DocumentStore):
    """Process-local stand-in for the managed backend.

    ``calls`` records every operation so callers can tell cache hits from
    remote reads; ``fail_next`` makes the following operations raise.
    """

    def __init__(self, clock: Clock = now_ms, latency: float = 0.0):
        self.clock = clock
        self.latency = latency
        self.calls: List[Tuple[str, str]] = []
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._failures: List[Exception] = []

    def fail_next(self, error: Optional[Exception] = None, count: int = 1) -> None:
        for _ in range(count):
            self._failures.append(error or DocumentStoreError("Document store unavailable"))

    def count_calls(self, operation: str, collection: Optional[str] = None) -> int:
        return sum(1 for op, c in self.calls if op == operation and (collection is None or c == collection))

    async def _begin(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        # Always suspend once so callers observe a real await point
        await asyncio.sleep(self.latency)
        if self._failures:
            error = self._failures.pop(0)
            logger.warning(f"Simulated failure for {operation} on '{collection}': {error}")
            raise error

    def _docs(self, collection: str) -> Dict[str, Document]:
        return self._collections.setdefault(collection, {})

    async def find_all(self, collection: str) -> List[Document]:
        await self._begin("find_all", collection)
        return [copy.deepcopy(d) for d in self._docs(collection).values()]

    async def find_by_filter(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        await self._begin("find_by_filter", collection)
        return [
            copy.deepcopy(d)
            for d in self._docs(collection).values()
            if all(d.get(field) == value for field, value in filters.items())
        ]

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]:
        await self._begin("find_by_id", collection)
        doc = self._docs(collection).get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def insert(self, collection: str, document: Document) -> Document:
        await self._begin("insert", collection)
        now = self.clock()
        doc = copy.deepcopy(document)
        doc["id"] = str(doc.get("id") or uuid.uuid4())
        doc.setdefault("createdAt", now)
        doc["modifiedDate"] = now
        self._docs(collection)[doc["id"]] = doc
        return copy.deepcopy(doc)

    async def update(self, collection: str, document_id: str, patch: Document) -> Document:
        await self._begin("update", collection)
        docs = self._docs(collection)
        if document_id not in docs:
            raise DocumentNotFound(collection, document_id)
        doc = docs[document_id]
        doc.update({k: copy.deepcopy(v) for k, v in patch.items() if k != "id"})
        doc["modifiedDate"] = self.clock()
        return copy.deepcopy(doc)

    async def delete(self, collection: str, document_id: str) -> None:
        await self._begin("delete", collection)
        if self._docs(collection).pop(document_id, None) is None:
            raise DocumentNotFound(collection, document_id)
