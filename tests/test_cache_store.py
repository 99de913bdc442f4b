"""Tests for the durable content cache."""

import json
import os
from datetime import timedelta

import pytest

from homeboard.cache.store import (
    EMPTY_KEY_NAME,
    CacheError,
    CacheIOError,
    ContentCache,
    CorruptEntryError,
    safe_file_name,
)
from homeboard.models import TaskItem


class TestWriteRead:
    def test_read_when_never_written_then_not_found(self, cache):
        result = cache.read("missing", timedelta(minutes=5))

        assert result.found is False
        assert result.stale is False
        assert result.error is None
        assert result.entry is None

    def test_write_then_read_returns_payload(self, cache):
        payload = {"temperature": 12.5, "tags": ["a", "b"], "nested": {"ok": True}}

        cache.write("weather:JP:Himeji", payload, {"city": "Himeji"})
        result = cache.read("weather:JP:Himeji", timedelta(days=365))

        assert result.found is True
        assert result.stale is False
        assert result.entry.payload == payload
        assert result.entry.meta == {"city": "Himeji"}

    def test_write_stamps_fetched_at_from_clock(self, cache, clock):
        entry = cache.write("k", [1, 2, 3])

        assert entry.fetched_at == clock.now.isoformat()
        assert entry.fetched_at_dt == clock.now

    def test_write_replaces_previous_entry(self, cache, clock):
        cache.write("k", {"old": 1}, {"v": "1"})
        clock.advance(minutes=1)
        cache.write("k", {"new": 2})

        result = cache.read("k", timedelta(0))

        assert result.entry.payload == {"new": 2}
        assert result.entry.meta == {}
        assert result.entry.fetched_at == clock.now.isoformat()

    def test_file_layout(self, cache):
        cache.write("plain-key", {"x": 1}, {"m": "v"})

        data = json.loads(cache.path_for("plain-key").read_text(encoding="utf-8"))

        assert cache.path_for("plain-key").name == "plain-key.json"
        assert set(data) == {"payload", "fetchedAt", "meta"}
        assert data["payload"] == {"x": 1}

    def test_write_creates_directory(self, tmp_path, clock):
        cache = ContentCache(tmp_path / "a" / "b", clock=clock)

        cache.write("k", 1)

        assert (tmp_path / "a" / "b" / "k.json").exists()

    def test_write_leaves_no_temporary_files(self, cache, cache_dir):
        for i in range(3):
            cache.write("k", i)

        assert sorted(p.name for p in cache_dir.iterdir()) == ["k.json"]

    def test_write_dumps_models_by_alias(self, cache, clock):
        task = TaskItem(id="1", title="Buy milk", created_at=clock.now)

        cache.write("tasks", [task])
        payload = cache.read("tasks", timedelta(0)).entry.payload

        assert payload[0]["createdAt"] == clock.now.isoformat()
        assert "dueDate" in payload[0]

    def test_write_unserialisable_payload_raises(self, cache):
        with pytest.raises(CacheError):
            cache.write("k", object())

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions")
    def test_write_into_read_only_directory_raises_io_error(self, cache, cache_dir):
        cache_dir.mkdir()
        cache_dir.chmod(0o500)
        try:
            with pytest.raises(CacheIOError):
                cache.write("k", 1)
        finally:
            cache_dir.chmod(0o700)


class TestStaleness:
    def test_zero_ttl_is_never_stale(self, cache, clock):
        cache.write("k", 1)
        clock.advance(days=3650)

        assert cache.read("k", timedelta(0)).stale is False
        assert cache.read("k", timedelta(seconds=-1)).stale is False

    def test_entry_aged_exactly_ttl_is_fresh(self, cache, clock):
        cache.write("k", 1)
        clock.advance(minutes=5)

        assert cache.read("k", timedelta(minutes=5)).stale is False

    def test_entry_older_than_ttl_is_stale(self, cache, clock):
        cache.write("k", 1)
        clock.advance(minutes=5, microseconds=1)

        result = cache.read("k", timedelta(minutes=5))

        assert result.stale is True
        assert result.found is True
        assert result.error is None

    def test_same_entry_fresh_or_stale_depending_on_ttl(self, cache, clock):
        cache.write("k", 1)
        clock.advance(hours=1)

        assert cache.read("k", timedelta(minutes=5)).stale is True
        assert cache.read("k", timedelta(hours=2)).stale is False


class TestCorruption:
    def test_invalid_json_is_found_stale_with_error(self, cache, cache_dir):
        cache_dir.mkdir()
        cache.path_for("k").write_text("{not json", encoding="utf-8")

        result = cache.read("k", timedelta(minutes=5))

        assert result.found is True
        assert result.stale is True
        assert isinstance(result.error, CorruptEntryError)
        assert result.usable is False

    def test_missing_fields_are_corrupt(self, cache, cache_dir):
        cache_dir.mkdir()
        cache.path_for("k").write_text(json.dumps({"payload": 1}), encoding="utf-8")

        result = cache.read("k", timedelta(0))

        assert result.found is True
        assert isinstance(result.error, CorruptEntryError)

    def test_naive_fetched_at_is_corrupt(self, cache, cache_dir):
        cache_dir.mkdir()
        cache.path_for("k").write_text(
            json.dumps({"payload": 1, "fetchedAt": "2026-03-01T09:00:00", "meta": {}}),
            encoding="utf-8",
        )

        result = cache.read("k", timedelta(minutes=5))

        assert result.stale is True
        assert isinstance(result.error, CorruptEntryError)

    def test_read_typed_validation_failure_forces_stale(self, cache):
        cache.write("tasks", [{"id": "1"}])

        result = cache.read_typed("tasks", timedelta(days=1), list[TaskItem])

        assert result.found is True
        assert result.stale is True
        assert isinstance(result.error, CorruptEntryError)
        assert result.value is None

    def test_read_typed_returns_models(self, cache, clock):
        cache.write("tasks", [TaskItem(id="1", title="t", created_at=clock.now)])

        result = cache.read_typed("tasks", timedelta(days=1), list[TaskItem])

        assert result.fresh is True
        assert result.value[0].title == "t"
        assert result.value[0].created_at == clock.now


class TestDelete:
    def test_delete_removes_entry(self, cache):
        cache.write("k", 1)

        cache.delete("k")

        assert cache.read("k", timedelta(0)).found is False

    def test_delete_missing_is_not_an_error(self, cache):
        cache.delete("never-written")

    def test_fetched_at_empty_when_absent(self, cache, clock):
        assert cache.fetched_at("k") == ""
        cache.write("k", 1)
        assert cache.fetched_at("k") == clock.now.isoformat()


class TestSafeFileName:
    def test_safe_key_is_unchanged(self):
        assert safe_file_name("nextcloud_tasks_items_all") == "nextcloud_tasks_items_all"

    def test_empty_key_uses_sentinel(self):
        assert safe_file_name("") == EMPTY_KEY_NAME

    def test_unsafe_characters_are_replaced(self):
        name = safe_file_name("weather:JP:Himeji")

        assert name.startswith("weather_JP_Himeji-")
        assert len(name) == len("weather_JP_Himeji-") + 8

    @pytest.mark.parametrize("key", ["", "plain", "a:b/c", "姫路市", "../../etc/passwd"])
    def test_sanitising_twice_is_idempotent(self, key):
        once = safe_file_name(key)

        assert safe_file_name(once) == once

    def test_keys_differing_in_replaced_characters_do_not_collide(self):
        assert safe_file_name("a:b") != safe_file_name("a/b")
        assert safe_file_name("a:b") != safe_file_name("a_b")

    def test_path_stays_inside_cache_directory(self, cache, cache_dir):
        assert cache.path_for("../../etc/passwd").parent == cache_dir
