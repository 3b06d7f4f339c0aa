from typing import Dict, Optional
import logging

from dashboard.cache.clock import Clock, now_ms
from dashboard.cache.keys import Collection
from dashboard.cache.notifier import MutationNotifier
from dashboard.cache.orchestrator import FetchOrchestrator
from dashboard.cache.registry import CollectionRegistry
from dashboard.cache.storage import InMemoryStorage, JsonFileStorage, Storage
from dashboard.cache.sync import OpenContext, SyncChannel
from dashboard.core.config import Settings, settings
from dashboard.db.documents import DocumentStore, InMemoryDocumentStore
from dashboard.services.collections import CollectionService, ServiceRegistry
from dashboard.services.session import SessionService

logger = logging.getLogger(__name__)

SERVER_CONTEXT = "server"


def build_storage(config: Settings) -> Storage:
    if config.CACHE_BACKEND == "memory":
        return InMemoryStorage(quota_bytes=config.CACHE_QUOTA_BYTES)
    if config.CACHE_BACKEND == "file":
        return JsonFileStorage(config.CACHE_FILE_PATH)
    raise ValueError(f"Unknown CACHE_BACKEND '{config.CACHE_BACKEND}'")


class Container:
    """Wires the cache layer, the document store and the services together."""

    def __init__(
        self,
        config: Settings,
        storage: Optional[Storage] = None,
        documents: Optional[DocumentStore] = None,
        clock: Clock = now_ms,
    ):
        self.config = config
        self.clock = clock
        self.channel = SyncChannel()
        self.shared_storage = storage if storage is not None else build_storage(config)

        self.context = OpenContext(self.shared_storage, self.channel, SERVER_CONTEXT, clock)
        self.entries = self.context.entries
        self.registry = CollectionRegistry(self.context.storage, clock)
        self.orchestrator = FetchOrchestrator(self.entries, self.registry, clock, config.CACHE_MAX_AGE_MS)
        self.notifier = MutationNotifier(self.registry)
        self.documents = documents if documents is not None else InMemoryDocumentStore(clock)

        self.services = ServiceRegistry({
            c.value: CollectionService(c, self.documents, self.orchestrator, self.notifier)
            for c in Collection
        })
        self.session = SessionService(self.context, self.registry, self.services.names())
        self._contexts: Dict[str, OpenContext] = {}

    def open_context(self, context_id: str) -> OpenContext:
        """Attach another context (a second tab) to the same shared storage."""
        if context_id == SERVER_CONTEXT:
            return self.context
        if context_id not in self._contexts:
            self._contexts[context_id] = OpenContext(self.shared_storage, self.channel, context_id, self.clock)
            logger.info(f"Opened context '{context_id}'")
        return self._contexts[context_id]

    def close_context(self, context_id: str) -> None:
        ctx = self._contexts.pop(context_id, None)
        if ctx is not None:
            ctx.close()


container = Container(settings)


def get_container() -> Container:
    return container
