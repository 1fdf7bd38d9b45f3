from concurrent.futures import ThreadPoolExecutor

import pytest

from calcfinder.catalog_index import CatalogItem, DuplicateIdentifierError
from calcfinder.resolver import resolve
from calcfinder.store import IndexStore


def test_starts_empty():
    store = IndexStore()
    assert len(store.current) == 0
    assert store.generation == 0


def test_reload_swaps_index(two_items):
    store = IndexStore()
    old = store.current
    new = store.reload(two_items)
    assert store.current is new
    assert store.current is not old
    assert store.generation == 1
    assert resolve("mortgage", store.current).identifier == "mortgage-calculator"


def test_failed_reload_keeps_previous_index(two_items):
    store = IndexStore()
    good = store.reload(two_items)
    with pytest.raises(DuplicateIdentifierError):
        store.reload(two_items + [two_items[0]])
    assert store.current is good
    assert store.generation == 1


def test_readers_see_whole_snapshots(two_items, sample_items):
    store = IndexStore()
    store.reload(two_items)
    allowed = {frozenset(i.identifier for i in two_items), frozenset(i.identifier for i in sample_items)}

    def read(_):
        index = store.current
        result = resolve("mortgage", index)
        assert index.all_identifiers() in allowed
        return result.identifier

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(read, n) for n in range(200)]
        for n in range(10):
            store.reload(sample_items if n % 2 == 0 else two_items)
        results = [f.result() for f in futures]
    assert set(results) == {"mortgage-calculator"}


def test_initial_index_can_be_supplied(two_item_index):
    store = IndexStore(two_item_index)
    assert store.current is two_item_index
