import random
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from simplecache.core.cache_engine import CacheEngine, ttl_to_seconds
from simplecache.domain.exceptions import (
    InvalidArgumentError,
    InvalidKeyError,
    InvalidNamespaceError,
    StoreError,
)
from simplecache.domain.interfaces.entry_store import EntryStore
from simplecache.domain.models.common import TTL_INFINITE, CacheSettings

RESERVED = list("{}()/\\@:")


# --- Round trip & misses ---

def test_set_then_get_round_trip(engine):
    assert engine.set("greeting", b"hello") is True
    assert engine.get("greeting") == b"hello"


def test_get_never_written_returns_default(engine):
    assert engine.get("missing") is None
    assert engine.get("missing", b"fallback") == b"fallback"


def test_set_accepts_bytes_like_values(engine):
    engine.set("ba", bytearray(b"abc"))
    engine.set("mv", memoryview(b"xyz"))
    assert engine.get("ba") == b"abc"
    assert engine.get("mv") == b"xyz"


def test_set_rejects_non_bytes_values(engine):
    with pytest.raises(TypeError, match="raw bytes"):
        engine.set("k", "text")


def test_last_write_wins(engine):
    engine.set("k", b"one")
    engine.set("k", b"two")
    assert engine.get("k") == b"two"


# --- Key validation happens before any storage access ---

@pytest.mark.parametrize("char", RESERVED)
def test_invalid_keys_raise_and_touch_nothing(engine, cache_root, char):
    key = f"bad{char}key"
    for call in (lambda: engine.get(key), lambda: engine.set(key, b"v"),
                 lambda: engine.delete(key), lambda: engine.has(key)):
        with pytest.raises(InvalidKeyError):
            call()
    assert not cache_root.exists()


def test_empty_key_raises(engine, cache_root):
    with pytest.raises(InvalidKeyError):
        engine.set("", b"v")
    assert not cache_root.exists()


def test_invalid_key_never_reaches_the_store(settings):
    store = MagicMock(spec=EntryStore)
    engine = CacheEngine(settings, store=store)

    with pytest.raises(InvalidKeyError):
        engine.set("a@b", b"v")

    store.write.assert_not_called()
    store.remove.assert_not_called()


# --- TTL semantics ---

def test_entry_expires_after_ttl(engine, clock):
    engine.set("k", b"v", ttl=30)
    clock.advance(29)
    assert engine.get("k") == b"v"
    clock.advance(1)
    assert engine.get("k", b"gone") == b"gone"
    assert engine.has("k") is False


def test_zero_ttl_expires_immediately(engine):
    assert engine.set("k", b"v", ttl=0) is True
    assert engine.get("k", b"default") == b"default"


def test_negative_ttl_removes_existing_entry(engine, entry_files, cache_root):
    engine.set("k", b"v")
    assert engine.set("k", b"new", ttl=-5) is True
    assert engine.has("k") is False
    assert entry_files(cache_root) == []


def test_timedelta_ttl(engine, clock):
    engine.set("k", b"v", ttl=timedelta(minutes=1))
    clock.advance(59)
    assert engine.has("k")
    clock.advance(1)
    assert not engine.has("k")


def test_default_ttl_from_settings(cache_root, clock):
    engine = CacheEngine(CacheSettings(base_dir=cache_root, default_ttl=10), clock=clock)
    engine.set("k", b"v")
    clock.advance(10)
    assert engine.get("k") is None


def test_explicit_ttl_overrides_default(cache_root, clock):
    engine = CacheEngine(CacheSettings(base_dir=cache_root, default_ttl=10), clock=clock)
    engine.set("k", b"v", ttl=100)
    clock.advance(50)
    assert engine.get("k") == b"v"


@pytest.mark.parametrize("default_ttl", [None, TTL_INFINITE, float("inf"), 10 ** 400])
def test_infinite_default_ttl_never_expires(cache_root, clock, default_ttl):
    engine = CacheEngine(CacheSettings(base_dir=cache_root, default_ttl=default_ttl), clock=clock)
    engine.set("k", b"v")
    clock.advance(10 ** 12)
    assert engine.get("k") == b"v"


@pytest.mark.parametrize("ttl", [True, "60", [60], float("nan")])
def test_illegal_ttl_raises(engine, ttl):
    with pytest.raises(InvalidArgumentError):
        engine.set("k", b"v", ttl=ttl)


def test_ttl_to_seconds():
    assert ttl_to_seconds(5) == 5.0
    assert ttl_to_seconds(timedelta(hours=1)) == 3600.0
    assert ttl_to_seconds(TTL_INFINITE) is None
    assert ttl_to_seconds(10 ** 400) is None


# --- delete / has / clear ---

def test_delete_returns_true_exactly_once(engine):
    engine.set("k", b"v")
    assert engine.delete("k") is True
    assert engine.delete("k") is False
    assert engine.delete("k") is False


def test_has(engine):
    assert engine.has("k") is False
    engine.set("k", b"")
    assert engine.has("k") is True


def test_clear_removes_all_keys_in_namespace(engine):
    engine.set_multiple({"a": b"1", "b": b"2", "c": b"3"})

    assert engine.clear() is True

    assert engine.get_multiple(["a", "b", "c"], b"default") == {"a": b"default", "b": b"default", "c": b"default"}


def test_clear_on_empty_namespace_succeeds(engine):
    assert engine.clear() is True


def test_clear_leaves_other_namespaces_alone(engine, clock):
    other = CacheEngine(CacheSettings(base_dir=engine.settings.base_dir, init_dir="other"), clock=clock)
    engine.set("k", b"mine")
    other.set("k", b"theirs")

    engine.clear()

    assert engine.get("k") is None
    assert other.get("k") == b"theirs"


def test_namespaces_isolate_identical_keys(engine):
    sub = engine.for_namespace("sub")
    engine.set("k", b"parent")
    sub.set("k", b"child")

    assert engine.get("k") == b"parent"
    assert sub.get("k") == b"child"
    assert sub.namespace == "app/sub"


def test_clearing_a_namespace_clears_nested_namespaces(engine):
    sub = engine.for_namespace("sub")
    sub.set("k", b"child")
    engine.clear()
    assert sub.get("k") is None


def test_unsafe_namespace_rejected_at_construction(cache_root):
    with pytest.raises(InvalidNamespaceError):
        CacheEngine(CacheSettings(base_dir=cache_root, init_dir="../escape"))


@pytest.mark.parametrize("probability", [-0.1, 1.5])
def test_gc_probability_must_be_a_probability(cache_root, probability):
    with pytest.raises(InvalidArgumentError):
        CacheEngine(CacheSettings(base_dir=cache_root, gc_probability=probability))


# --- Bulk operations ---

def test_get_multiple_preserves_order_and_defaults(engine):
    engine.set("k2", b"v2")

    result = engine.get_multiple(["k1", "k2", "k3"], b"dflt")

    assert list(result) == ["k1", "k2", "k3"]
    assert result == {"k1": b"dflt", "k2": b"v2", "k3": b"dflt"}


def test_get_multiple_rejects_whole_batch_before_reading(settings):
    store = MagicMock(spec=EntryStore)
    engine = CacheEngine(settings, store=store)

    with pytest.raises(InvalidKeyError):
        engine.get_multiple(["ok", "bad:key"])
    store.read.assert_not_called()


def test_set_multiple_with_bad_key_writes_nothing(engine, cache_root, entry_files):
    with pytest.raises(InvalidKeyError):
        engine.set_multiple({"good1": b"1", "bad@key": b"2", "good2": b"3"})

    assert entry_files(cache_root) == []
    assert engine.get("good1") is None
    assert engine.get("good2") is None


def test_set_multiple_with_bad_value_writes_nothing(engine, cache_root, entry_files):
    with pytest.raises(TypeError):
        engine.set_multiple([("good", b"1"), ("also-good", 2)])
    assert entry_files(cache_root) == []


def test_set_multiple_accepts_pairs_and_ttl(engine, clock):
    assert engine.set_multiple([("a", b"1"), ("b", b"2")], ttl=5) is True
    assert engine.get_multiple(["a", "b"]) == {"a": b"1", "b": b"2"}
    clock.advance(5)
    assert engine.get_multiple(["a", "b"]) == {"a": None, "b": None}


def test_set_multiple_rejects_strings(engine):
    with pytest.raises(InvalidKeyError):
        engine.set_multiple("not-a-mapping")


def test_set_multiple_reports_partial_failure_without_rollback(settings, mocker):
    engine = CacheEngine(settings)
    real_write = engine._store.write

    def failing_write(location, payload, expires_at, created_at=None):
        if location.key == "b":
            raise StoreError("disk full", location.path)
        return real_write(location, payload, expires_at, created_at)

    mocker.patch.object(engine._store, "write", side_effect=failing_write)

    assert engine.set_multiple({"a": b"1", "b": b"2", "c": b"3"}) is False
    assert engine.get("a") == b"1"
    assert engine.get("b") is None
    assert engine.get("c") == b"3"


def test_delete_multiple(engine):
    engine.set_multiple({"a": b"1", "b": b"2"})

    assert engine.delete_multiple(["a", "b", "never-set"]) is True
    assert engine.get_multiple(["a", "b"]) == {"a": None, "b": None}


def test_delete_multiple_rejects_whole_batch(engine):
    engine.set("a", b"1")
    with pytest.raises(InvalidKeyError):
        engine.delete_multiple(["a", "b{c}"])
    assert engine.get("a") == b"1"


# --- Store failures never escape ---

@pytest.fixture
def broken_engine(settings):
    store = MagicMock(spec=EntryStore)
    error = StoreError("permission denied")
    store.read.side_effect = error
    store.write.side_effect = error
    store.remove.side_effect = error
    store.remove_all.side_effect = error
    store.prune_expired.side_effect = error
    return CacheEngine(settings, store=store)


def test_store_failures_become_false_or_default(broken_engine):
    assert broken_engine.get("k", b"default") == b"default"
    assert broken_engine.has("k") is False
    assert broken_engine.set("k", b"v") is False
    assert broken_engine.delete("k") is False
    assert broken_engine.clear() is False
    assert broken_engine.get_multiple(["a", "b"]) == {"a": None, "b": None}
    assert broken_engine.set_multiple({"a": b"1"}) is False
    assert broken_engine.delete_multiple(["a"]) is False
    assert broken_engine.prune() == -1


def test_real_io_failure_on_write_returns_false(engine, mocker):
    mocker.patch("simplecache.infrastructure.cache.file_entry_store.os.replace", side_effect=OSError(28, "No space left"))
    assert engine.set("k", b"v") is False


# --- Garbage collection ---

def test_prune_removes_only_expired(engine, clock, cache_root, entry_files):
    engine.set("short", b"1", ttl=5)
    engine.set("long", b"2", ttl=500)
    clock.advance(10)

    assert engine.prune() == 1
    assert len(entry_files(cache_root)) == 1
    assert engine.get("long") == b"2"


def test_on_write_gc_runs_with_probability(cache_root, clock, mocker):
    rng = MagicMock(spec=random.Random)
    rng.random.return_value = 0.0
    engine = CacheEngine(CacheSettings(base_dir=cache_root, gc_probability=0.5), clock=clock, rng=rng)
    prune = mocker.patch.object(engine, "prune", return_value=0)

    engine.set("k", b"v")

    prune.assert_called_once()


def test_on_write_gc_disabled_by_default(engine, mocker):
    prune = mocker.patch.object(engine, "prune", return_value=0)
    engine.set("k", b"v")
    prune.assert_not_called()


def test_root_namespace_clear_and_prune_leave_user_files_alone(cache_root, clock):
    engine = CacheEngine(CacheSettings(base_dir=cache_root), clock=clock)
    engine.set("k", b"v", ttl=5)
    (cache_root / "project").mkdir()
    foreign = cache_root / "project" / "thumbs.cache"
    foreign.write_bytes(b"user data")
    empty_dir = cache_root / "empty_user_dir"
    empty_dir.mkdir()

    clock.advance(10)
    assert engine.prune() == 1
    engine.set("k", b"v")
    assert engine.clear() is True

    assert engine.has("k") is False
    assert foreign.read_bytes() == b"user data"
    assert empty_dir.is_dir()


def test_ttl_beyond_float_range_never_expires(engine, clock):
    assert engine.set("k", b"v", ttl=10 ** 400) is True
    clock.advance(10 ** 12)
    assert engine.get("k") == b"v"


def test_namespaces_differing_only_in_case_are_isolated(cache_root, clock):
    lower = CacheEngine(CacheSettings(base_dir=cache_root, init_dir="menu"), clock=clock)
    upper = CacheEngine(CacheSettings(base_dir=cache_root, init_dir="Menu"), clock=clock)
    lower.set("k", b"lower")
    upper.set("k", b"upper")

    upper.clear()

    assert lower.get("k") == b"lower"
    assert upper.get("k") is None
