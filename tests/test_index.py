from spillcache.index import EntryDescriptor, MetadataIndex, now_ms

import pytest

#-------------FIXTURES----------------
@pytest.fixture
def index():
    return MetadataIndex()

def descriptor(key, size=10, locator=None, expires_at=None):
    return EntryDescriptor(
        key=key,
        locator=locator or f"cache_{key}.dat",
        expires_at=expires_at if expires_at is not None else now_ms() + 60_000,
        size=size,
    )

#-------------PUT / GET----------------
def test_empty_index(index):
    assert index.size() == 0
    assert index.keys() == []
    assert index.get("missing") is None
    assert len(index) == 0

def test_put_adds_size(index):
    assert index.put(descriptor("a", 10)) is None
    assert index.put(descriptor("b", 25)) is None
    assert index.size() == 35
    assert sorted(index.keys()) == ["a", "b"]
    assert "a" in index

def test_put_replaces_existing_key(index):
    old = descriptor("a", 10, locator="cache_old.dat")
    index.put(old)
    replaced = index.put(descriptor("a", 4, locator="cache_new.dat"))
    assert replaced == old
    assert index.size() == 4
    assert index.get("a").locator == "cache_new.dat"
    assert len(index) == 1

#-------------REMOVE----------------
def test_remove_subtracts_size(index):
    index.put(descriptor("a", 10))
    index.put(descriptor("b", 5))
    removed = index.remove("a")
    assert removed.key == "a"
    assert index.size() == 5
    assert index.keys() == ["b"]

def test_remove_absent_key(index):
    assert index.remove("nope") is None
    assert index.size() == 0

def test_remove_with_stale_locator_is_ignored(index):
    index.put(descriptor("a", 10, locator="cache_new.dat"))
    assert index.remove("a", locator="cache_old.dat") is None
    assert index.size() == 10
    assert index.remove("a", locator="cache_new.dat") is not None
    assert index.size() == 0

def test_clear(index):
    index.put(descriptor("a", 10))
    index.put(descriptor("b", 5))
    removed = index.clear()
    assert sorted(d.key for d in removed) == ["a", "b"]
    assert index.size() == 0
    assert index.keys() == []

#-------------SNAPSHOTS----------------
def test_snapshots_are_copies(index):
    index.put(descriptor("a"))
    keys = index.keys()
    entries = index.entries()
    index.put(descriptor("b"))
    assert keys == ["a"]
    assert [d.key for d in entries] == ["a"]
    assert index.locators() == ["cache_a.dat", "cache_b.dat"]

def test_is_expired():
    now = now_ms()
    assert descriptor("a", expires_at=now - 1).is_expired(now)
    assert descriptor("a", expires_at=now).is_expired(now)
    assert not descriptor("a", expires_at=now + 1).is_expired(now)
