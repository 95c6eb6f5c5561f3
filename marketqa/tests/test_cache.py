"""Tests for the process-local mart cache."""
from __future__ import annotations

from marketqa.cache import MartCache, MartCacheKey


def test_loader_invoked_once_while_fresh() -> None:
    cache = MartCache(ttl_seconds=60)
    key = MartCacheKey(category_id="code_readers", snapshot_date="2025-02-01")
    calls: list[int] = []

    def loader() -> dict[str, object]:
        calls.append(1)
        return {"value": 42}

    first = cache.get_or_build(key, loader, now=0.0)
    second = cache.get_or_build(key, loader, now=30.0)
    assert first is second
    assert len(calls) == 1


def test_entry_expires_after_ttl() -> None:
    cache = MartCache(ttl_seconds=60)
    key = MartCacheKey(category_id="code_readers", snapshot_date="2025-02-01")
    cache.put(key, {"value": 1}, now=0.0)

    assert cache.has(key, now=60.0)
    assert not cache.has(key, now=60.5)
    assert len(cache) == 0


def test_missing_snapshot_is_cached_as_none() -> None:
    cache = MartCache(ttl_seconds=60)
    key = MartCacheKey(category_id="code_readers", snapshot_date="2023-01-01")
    calls = {"count": 0}

    def loader() -> None:
        calls["count"] += 1
        return None

    assert cache.get_or_build(key, loader, now=0.0) is None
    assert cache.get_or_build(key, loader, now=1.0) is None
    assert calls["count"] == 1
    entry = cache.get(key, now=2.0)
    assert entry is not None
    assert entry.value is None


def test_keys_include_snapshot_date() -> None:
    cache = MartCache()
    key_a = MartCacheKey(category_id="code_readers", snapshot_date="2025-01-01")
    key_b = MartCacheKey(category_id="code_readers", snapshot_date="2025-02-01")
    cache.put(key_a, "jan", now=0.0)

    assert cache.get(key_b, now=0.0) is None
    assert str(key_b) == "code_readers:2025-02-01"


def test_invalidate_and_clear_drop_fresh_entries() -> None:
    ticks = iter([0.0, 1.0, 2.0, 3.0])
    cache = MartCache(ttl_seconds=600, clock=lambda: next(ticks))
    key_a = MartCacheKey(category_id="a", snapshot_date="2025-02-01")
    key_b = MartCacheKey(category_id="b", snapshot_date="2025-02-01")
    cache.put(key_a, 1)
    cache.put(key_b, 2)

    cache.invalidate(key_a)
    assert cache.get(key_a) is None
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
