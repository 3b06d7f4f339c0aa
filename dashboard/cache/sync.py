"""Cross-context propagation of a few shared keys.

Every context (a browser tab, a worker, a test client) reads and writes the
same underlying ``Storage``. Writes made through a context's
``BroadcastingStorage`` are announced on the ``SyncChannel``; the other
contexts re-parse the watched keys and apply them to their own in-memory
state. Delivery is best-effort and at-most-once; a context that subscribes
late only sees later writes.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError

from dashboard.cache.clock import Clock, now_ms
from dashboard.cache.entry_store import EntryStore
from dashboard.cache.keys import SESSION_USER_KEY, STORE_PROFILE_KEY
from dashboard.cache.storage import Storage
from dashboard.schemas.cache import CacheEntry, SyncMessage

logger = logging.getLogger(__name__)

Handler = Callable[[SyncMessage], None]
Applier = Callable[[Optional[Any]], None]


class SyncChannel:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, context_id: str, handler: Handler) -> Callable[[], None]:
        self._subscribers.setdefault(context_id, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(context_id, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._subscribers.pop(context_id, None)

        return unsubscribe

    def publish(self, message: SyncMessage) -> int:
        delivered = 0
        for context_id, handlers in list(self._subscribers.items()):
            if context_id == message.origin:
                continue
            for handler in list(handlers):
                try:
                    handler(message)
                    delivered += 1
                except Exception as e:
                    logger.error(f"Sync handler in context '{context_id}' failed for '{message.key}': {e}")
        return delivered


class BroadcastingStorage(Storage):
    """One context's view of the shared storage; announces its own writes."""

    def __init__(self, inner: Storage, channel: SyncChannel, context_id: str):
        self.inner = inner
        self.channel = channel
        self.context_id = context_id

    def get(self, key: str) -> Optional[str]:
        return self.inner.get(key)

    def set(self, key: str, value: str) -> None:
        self.inner.set(key, value)
        self.channel.publish(SyncMessage(key=key, value=value, origin=self.context_id))

    def remove(self, key: str) -> None:
        self.inner.remove(key)
        self.channel.publish(SyncMessage(key=key, value=None, origin=self.context_id))

    def keys(self) -> List[str]:
        return self.inner.keys()


class CrossTabSync:
    def __init__(self, channel: SyncChannel, context_id: str):
        self.context_id = context_id
        self._appliers: Dict[str, Applier] = {}
        self._unsubscribe = channel.subscribe(context_id, self._on_message)

    def watch(self, key: str, apply: Applier) -> None:
        self._appliers[key] = apply

    def close(self) -> None:
        self._unsubscribe()

    def _on_message(self, message: SyncMessage) -> None:
        apply = self._appliers.get(message.key)
        if apply is None:
            return
        if message.value is None:
            apply(None)
            return
        try:
            entry = CacheEntry.model_validate_json(message.value)
        except ValidationError:
            logger.warning(f"Ignoring unparsable value for '{message.key}' from context '{message.origin}'")
            return
        apply(entry.data)


class ContextState:
    """In-memory session state held by one open context."""

    def __init__(self, context_id: str):
        self.context_id = context_id
        self.current_user: Optional[Dict[str, Any]] = None
        self.store_profile: Optional[Dict[str, Any]] = None

    def load(self, entries: EntryStore) -> "ContextState":
        self.current_user = entries.get(SESSION_USER_KEY)
        self.store_profile = entries.get(STORE_PROFILE_KEY)
        return self

    def bind(self, sync: CrossTabSync) -> "ContextState":
        sync.watch(SESSION_USER_KEY, self._apply_user)
        sync.watch(STORE_PROFILE_KEY, self._apply_store_profile)
        return self

    def _apply_user(self, value: Optional[Any]) -> None:
        self.current_user = value
        logger.debug(f"Context '{self.context_id}' applied session user change")

    def _apply_store_profile(self, value: Optional[Any]) -> None:
        self.store_profile = value

    def as_dict(self) -> Dict[str, Any]:
        return {
            "context_id": self.context_id,
            "current_user": self.current_user,
            "store_profile": self.store_profile,
        }


class OpenContext:
    """One context attached to the shared storage: its own view, sync and state."""

    def __init__(self, shared: Storage, channel: SyncChannel, context_id: str, clock: Clock = now_ms):
        self.context_id = context_id
        self.storage = BroadcastingStorage(shared, channel, context_id)
        self.entries = EntryStore(self.storage, clock)
        self.sync = CrossTabSync(channel, context_id)
        self.state = ContextState(context_id).load(self.entries).bind(self.sync)

    def close(self) -> None:
        self.sync.close()
