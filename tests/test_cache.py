"""Unit tests for the TTL cache."""

import os
import time

import pytest

from safescore.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)


class TestTTLCacheMemory:

    def test_set_then_get_returns_value(self, cache):
        cache.set("fixtures:PL:2026-01-10:2026-01-10", [{"id": 1}])
        assert cache.get("fixtures:PL:2026-01-10:2026-01-10", 300) == [{"id": 1}]

    def test_zero_max_age_is_always_absent(self, cache):
        cache.set("k", "v")
        assert cache.get("k", 0) is None

    def test_missing_key(self, cache):
        assert cache.get("nope", 300) is None

    def test_entry_younger_than_max_age_is_returned(self, cache, clock):
        cache.set("k", "v")
        clock.now += 299.9
        assert cache.get("k", 300) == "v"

    def test_entry_at_max_age_is_expired_and_evicted(self, cache, clock):
        cache.set("k", "v")
        clock.now += 300
        assert cache.get("k", 300) is None
        assert cache.size() == 0

    def test_max_age_is_chosen_per_read(self, cache, clock):
        cache.set("k", "v")
        clock.now += 500
        assert cache.get("k", 3600) == "v"
        assert cache.get("k", 300) is None

    def test_set_overwrites_and_restamps(self, cache, clock):
        cache.set("k", "old")
        clock.now += 200
        cache.set("k", "new")
        clock.now += 200
        assert cache.get("k", 300) == "new"

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a", 300) is None
        assert cache.size() == 1
        cache.clear()
        assert cache.size() == 0

    def test_delete_missing_key_is_noop(self, cache):
        cache.delete("missing")
        assert cache.size() == 0


class TestTTLCacheDiskMirror:

    def test_entry_survives_new_instance(self, tmp_path):
        TTLCache(cache_dir=tmp_path).set("standings:PL", {"standings": []})

        fresh = TTLCache(cache_dir=tmp_path)
        assert fresh.get("standings:PL", 3600) == {"standings": []}
        assert fresh.size() == 1

    def test_key_is_sanitized_into_filename(self, tmp_path):
        TTLCache(cache_dir=tmp_path).set("standings:PL", {"a": 1})
        assert (tmp_path / "standings_PL.json").exists()

    def test_expired_file_is_removed(self, tmp_path):
        TTLCache(cache_dir=tmp_path).set("standings:PL", {"a": 1})
        path = tmp_path / "standings_PL.json"
        old = time.time() - 7200
        os.utime(path, (old, old))

        assert TTLCache(cache_dir=tmp_path).get("standings:PL", 3600) is None
        assert not path.exists()

    def test_corrupt_file_is_ignored(self, tmp_path):
        (tmp_path / "standings_PL.json").write_text("{not json", encoding="utf-8")
        assert TTLCache(cache_dir=tmp_path).get("standings:PL", 3600) is None

    def test_delete_removes_file(self, tmp_path):
        cache = TTLCache(cache_dir=tmp_path)
        cache.set("standings:PL", {"a": 1})
        cache.delete("standings:PL")
        assert not (tmp_path / "standings_PL.json").exists()

    def test_clear_removes_mirrored_entries(self, tmp_path):
        cache = TTLCache(cache_dir=tmp_path)
        cache.set("standings:PL", {"a": 1})
        cache.set("standings:SA", {"b": 2})

        cache.clear()

        assert cache.size() == 0
        assert cache.get("standings:PL", 3600) is None
        assert list(tmp_path.glob("*.json")) == []
        assert TTLCache(cache_dir=tmp_path).get("standings:SA", 3600) is None
