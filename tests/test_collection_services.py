import asyncio

import pytest

from dashboard.cache.keys import Collection, cache_key
from dashboard.core.errors import DocumentNotFound, DocumentStoreError, UnknownCollection
from dashboard.services.collections import CollectionService, ServiceRegistry, filter_digest


@pytest.fixture
def products(documents, orchestrator, notifier):
    return CollectionService(Collection.PRODUCTS, documents, orchestrator, notifier)


def seed_products(documents):
    async def run():
        await documents.insert("products", {"id": "p1", "name": "Basmati Rice", "category": "Grocery", "keywords": ["rice"]})
        await documents.insert("products", {"id": "p2", "name": "Olive Oil", "category": "Grocery"})
        await documents.insert("products", {"id": "p3", "name": "Desk Lamp", "category": "Home"})
    asyncio.run(run())
    documents.calls.clear()


def test_list_all_reads_remote_once(products, documents):
    seed_products(documents)

    first = asyncio.run(products.list_all())
    second = asyncio.run(products.list_all())

    assert len(first) == 3
    assert second == first
    assert documents.count_calls("find_all", "products") == 1


def test_create_invalidates_cached_list(products, documents, clock):
    seed_products(documents)
    asyncio.run(products.list_all())

    clock.advance(5)
    created = asyncio.run(products.create({"name": "Tea", "category": "Grocery"}))
    clock.advance(5)
    listing = asyncio.run(products.list_all())

    assert created["id"]
    assert {p["id"] for p in listing} >= {created["id"]}
    assert documents.count_calls("find_all", "products") == 2


def test_write_through_one_query_invalidates_another(products, documents, clock):
    seed_products(documents)
    grocery = {"category": "Grocery"}
    asyncio.run(products.find_by_filter(grocery))
    asyncio.run(products.find_by_filter({"category": "Home"}))

    clock.advance(5)
    asyncio.run(products.update("p3", {"category": "Grocery"}))
    clock.advance(5)
    refreshed = asyncio.run(products.find_by_filter(grocery))

    assert {p["id"] for p in refreshed} == {"p1", "p2", "p3"}
    assert documents.count_calls("find_by_filter", "products") == 3


def test_failed_write_leaves_caches_valid(products, documents, registry, clock):
    seed_products(documents)
    asyncio.run(products.list_all())
    before = registry.read("products")

    clock.advance(5)
    documents.fail_next()
    with pytest.raises(DocumentStoreError):
        asyncio.run(products.create({"name": "Never stored"}))

    assert registry.read("products") == before
    asyncio.run(products.list_all())
    assert documents.count_calls("find_all", "products") == 1


def test_list_falls_back_to_stale_copy(products, documents, notifier, clock):
    seed_products(documents)
    cached = asyncio.run(products.list_all())
    clock.advance(5)
    notifier.on_mutation("products")

    documents.fail_next()
    assert asyncio.run(products.list_all()) == cached


def test_find_by_id_caches_and_raises_for_missing(products, documents):
    seed_products(documents)

    assert asyncio.run(products.find_by_id("p2"))["name"] == "Olive Oil"
    assert asyncio.run(products.find_by_id("p2"))["name"] == "Olive Oil"
    assert documents.count_calls("find_by_id", "products") == 1

    with pytest.raises(DocumentNotFound):
        asyncio.run(products.find_by_id("nope"))
    with pytest.raises(DocumentNotFound):
        asyncio.run(products.find_by_id("nope"))
    assert documents.count_calls("find_by_id", "products") == 2


def test_delete_drops_entity_entry(products, documents, entries, clock):
    seed_products(documents)
    asyncio.run(products.find_by_id("p1"))
    assert entries.get(cache_key("products", "p1")) is not None

    clock.advance(5)
    asyncio.run(products.delete("p1"))

    assert entries.get_entry(cache_key("products", "p1")) is None
    with pytest.raises(DocumentNotFound):
        asyncio.run(products.find_by_id("p1"))


def test_distinct_values_is_a_cached_aggregate(products, documents):
    seed_products(documents)

    assert asyncio.run(products.distinct_values("category")) == ["Grocery", "Home"]
    assert asyncio.run(products.distinct_values("category")) == ["Grocery", "Home"]
    assert documents.count_calls("find_all", "products") == 1


def test_search_matches_text_and_keywords(products, documents):
    seed_products(documents)

    assert [p["id"] for p in asyncio.run(products.search("RICE"))] == ["p1"]
    assert len(asyncio.run(products.search("  "))) == 3
    assert asyncio.run(products.search("grocery")) and all(
        p["category"] == "Grocery" for p in asyncio.run(products.search("grocery"))
    )


def test_filter_digest_ignores_key_order():
    assert filter_digest({"a": 1, "b": "x"}) == filter_digest({"b": "x", "a": 1})
    assert filter_digest({"a": 1}) != filter_digest({"a": 2})


def test_service_registry_rejects_unknown_collection(products):
    services = ServiceRegistry({"products": products})
    assert services.get(Collection.PRODUCTS) is products
    with pytest.raises(UnknownCollection):
        services.get("spaceships")
