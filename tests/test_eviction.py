from spillcache.eviction.manager import EvictionManager
from spillcache.index import EntryDescriptor, MetadataIndex, now_ms

import pytest

#-------------FIXTURES----------------
@pytest.fixture
def index():
    return MetadataIndex()

@pytest.fixture
def manager(index):
    return EvictionManager(index)

def add(index, key, size, expires_in):
    index.put(EntryDescriptor(
        key=key,
        locator=f"cache_{key}.dat",
        expires_at=now_ms() + expires_in,
        size=size,
    ))

def remover(index):
    def remove(descriptor):
        return index.remove(descriptor.key, descriptor.locator) is not None
    return remove

#-------------BUDGET----------------
def test_unlimited_budget_never_evicts(index, manager):
    add(index, "a", 100, -1000)
    assert manager.free_up_space(0, 10_000, remover(index)) == []
    assert index.keys() == ["a"]

def test_within_budget_is_untouched(index, manager):
    add(index, "a", 40, -1000)
    add(index, "b", 40, 60_000)
    assert manager.free_up_space(100, 20, remover(index)) == []
    # expired entries only go when space is needed
    assert sorted(index.keys()) == ["a", "b"]

def test_expired_entries_are_swept_first(index, manager):
    add(index, "live", 40, 60_000)
    add(index, "old1", 40, -1000)
    add(index, "old2", 40, -2000)

    evicted = manager.free_up_space(100, 40, remover(index))

    # sweeping one expired entry would have sufficed, both go anyway
    assert evicted == []
    assert index.keys() == ["live"]
    assert manager.get_metrics()["n_expired"] == 2

#-------------ORDERING----------------
def test_furthest_expiry_is_evicted_first(index, manager):
    add(index, "soon", 40, 10_000)
    add(index, "late", 40, 90_000)
    add(index, "middle", 40, 50_000)

    evicted = manager.free_up_space(100, 40, remover(index))

    assert evicted == ["late", "middle"]
    assert index.keys() == ["soon"]
    assert index.size() + 40 <= 100

def test_equal_expiry_keeps_insertion_order(index, manager):
    expires_at = now_ms() + 60_000
    for key in ("first", "second", "third"):
        index.put(EntryDescriptor(key=key, locator=f"cache_{key}.dat", expires_at=expires_at, size=40))

    assert manager.free_up_space(100, 20, remover(index)) == ["first"]
    assert index.keys() == ["second", "third"]

def test_soonest_expiry_algorithm(index):
    manager = EvictionManager(index, algo_name="soonest_expiry")
    add(index, "soon", 40, 10_000)
    add(index, "late", 40, 90_000)
    add(index, "middle", 40, 50_000)

    assert manager.free_up_space(100, 40, remover(index)) == ["soon", "middle"]
    assert index.keys() == ["late"]

def test_candidates_already_gone_are_skipped(index, manager):
    add(index, "late", 40, 90_000)
    add(index, "soon", 40, 10_000)

    def remove(descriptor):
        if descriptor.key == "late":
            return False
        return index.remove(descriptor.key) is not None

    assert manager.free_up_space(60, 20, remove) == ["soon"]
    assert manager.get_metrics()["n_evicts"] == 1

def test_exhausted_candidates(index, manager):
    add(index, "a", 40, 60_000)
    assert manager.free_up_space(50, 50, remover(index)) == ["a"]
    assert index.size() == 0

def test_unknown_algorithm(index):
    with pytest.raises(ValueError):
        EvictionManager(index, algo_name="random")
