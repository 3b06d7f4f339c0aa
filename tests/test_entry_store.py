from dashboard.cache.entry_store import EntryStore
from dashboard.cache.keys import cache_key
from dashboard.cache.storage import InMemoryStorage


def test_put_then_get_round_trip(entries):
    key = cache_key("products", "page1")
    data = [{"id": "A", "name": "Rice 5kg", "tags": ["grain"]}, {"id": "B", "price": 12.5}]

    assert entries.put(key, data) is True
    assert entries.get(key) == data


def test_metadata_defaults_modified_at_to_write_time(entries, clock):
    clock.set(4200)
    entries.put(cache_key("customers"), [])

    meta = entries.get_metadata(cache_key("customers"))
    assert meta.fetched_at == 4200
    assert meta.modified_at == 4200


def test_metadata_keeps_caller_modified_at(entries, clock):
    clock.set(5000)
    entries.put("invoices_2024", {"total": 3}, modified_at=1234)

    meta = entries.get_metadata("invoices_2024")
    assert meta.fetched_at == 5000
    assert meta.modified_at == 1234


def test_persisted_layout_uses_camel_case(entries, storage):
    entries.put(cache_key("products"), ["x"], modified_at=7)
    raw = storage.get("products")
    assert '"fetchedAt"' in raw
    assert '"modifiedAt":7' in raw


def test_absent_key_reads_as_none(entries):
    assert entries.get("products_missing") is None
    assert entries.get_metadata("products_missing") is None


def test_corrupt_json_reads_as_absent(entries, storage):
    storage.set("products_page1", "{not json")
    assert entries.get("products_page1") is None
    assert entries.get_metadata("products_page1") is None


def test_incompatible_record_reads_as_absent(entries, storage):
    storage.set("products_page1", '{"data": [1, 2]}')
    assert entries.get("products_page1") is None


def test_unserializable_put_is_a_noop(entries):
    key = cache_key("products")
    entries.put(key, ["kept"])

    assert entries.put(key, {"bad": object()}) is False
    assert entries.get(key) == ["kept"]


def test_quota_exceeded_keeps_previous_entry(clock):
    store = EntryStore(InMemoryStorage(quota_bytes=200), clock)
    key = cache_key("products")
    assert store.put(key, ["small"]) is True

    assert store.put(key, ["x" * 500]) is False
    assert store.get(key) == ["small"]


def test_null_payload_is_a_real_entry(entries):
    entries.put(cache_key("products", "gone"), None)
    assert entries.get_entry(cache_key("products", "gone")) is not None
    assert entries.get(cache_key("products", "gone")) is None


def test_remove_and_remove_all_with_prefix(entries, storage):
    entries.put(cache_key("products", "1"), {"id": "1"})
    entries.put(cache_key("products", "2"), {"id": "2"})
    entries.put(cache_key("customers", "1"), {"id": "1"})

    entries.remove(cache_key("products", "1"))
    assert entries.get(cache_key("products", "1")) is None

    assert entries.remove_all_with_prefix("products_") == 1
    assert storage.keys() == ["customers_1"]


def test_keys_for_collection_skips_registry_record(entries, registry):
    entries.put(cache_key("products"), [])
    entries.put(cache_key("products", "distinct", "category"), [])
    entries.put(cache_key("productsarchive"), [])
    registry.mark_fetched("products")

    assert sorted(entries.keys_for_collection("products")) == ["products", "products_distinct_category"]
