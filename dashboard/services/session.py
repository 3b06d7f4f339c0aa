from typing import Any, Dict, Iterable, List
import logging

from dashboard.cache.keys import SESSION_USER_KEY, STORE_PROFILE_KEY
from dashboard.cache.registry import CollectionRegistry
from dashboard.cache.sync import OpenContext

logger = logging.getLogger(__name__)


class SessionService:
    """Session identity and store profile for one context, plus the logout sweep.

    Both values are written through the context's broadcasting storage, so
    every other open context picks them up without reloading.
    """

    def __init__(self, context: OpenContext, registry: CollectionRegistry, collections: Iterable[str]):
        self.context = context
        self.registry = registry
        self.collections: List[str] = list(collections)

    @property
    def state(self):
        return self.context.state

    def sign_in(self, user: Dict[str, Any]) -> bool:
        stored = self.context.entries.put(SESSION_USER_KEY, user)
        self.state.current_user = user
        logger.info(f"Session started in context '{self.context.context_id}'")
        return stored

    def save_store_profile(self, profile: Dict[str, Any]) -> bool:
        stored = self.context.entries.put(STORE_PROFILE_KEY, profile)
        self.state.store_profile = profile
        return stored

    def sign_out(self) -> int:
        """Clear every cached entry, registry record and session key."""
        entries = self.context.entries
        removed = 0
        for collection in self.collections:
            self.registry.reset(collection)
            if self.context.storage.get(collection) is not None:
                entries.remove(collection)
                removed += 1
            removed += entries.remove_all_with_prefix(f"{collection}_")
        entries.remove(SESSION_USER_KEY)
        entries.remove(STORE_PROFILE_KEY)
        self.state.current_user = None
        self.state.store_profile = None
        logger.info(f"Signed out, cleared {removed} cached keys")
        return removed
