from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

TIMESTAMPS_SUFFIX = "timestamps"

# Keys shared across open contexts (see dashboard.cache.sync)
SESSION_USER_KEY = "session_user"
STORE_PROFILE_KEY = "store_profile"


class Collection(str, Enum):
    PRODUCTS = "products"
    INVENTORY = "inventory"
    INVOICES = "invoices"
    CUSTOMERS = "customers"
    USERS = "users"
    WAREHOUSES = "warehouses"
    STORE_INFO = "storeinfo"


CollectionName = Union[Collection, str]


def collection_name(collection: CollectionName) -> str:
    if isinstance(collection, Collection):
        return collection.value
    return collection


def timestamps_key(collection: CollectionName) -> str:
    return f"{collection_name(collection)}_{TIMESTAMPS_SUFFIX}"


@dataclass(frozen=True)
class CacheKey:
    """A cache key bound to the collection whose writes invalidate it."""

    collection: str
    parts: Tuple[str, ...] = ()

    @property
    def storage_key(self) -> str:
        return "_".join((self.collection,) + self.parts)

    def __str__(self) -> str:
        return self.storage_key


def cache_key(collection: CollectionName, *parts: object) -> CacheKey:
    """Build the key for one cached read of ``collection``.

    ``cache_key("products")`` is the full list, ``cache_key("products", id)``
    a single entity, ``cache_key("products", "distinct", "category")`` an
    aggregate.
    """
    name = collection_name(collection)
    if not name:
        raise ValueError("Collection name must not be empty")
    str_parts = tuple(str(p) for p in parts)
    if str_parts == (TIMESTAMPS_SUFFIX,):
        raise ValueError(f"'{TIMESTAMPS_SUFFIX}' is reserved for the collection registry")
    return CacheKey(collection=name, parts=str_parts)
