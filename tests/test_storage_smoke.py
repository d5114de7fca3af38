"""Smoke tests for storage/key_value module."""

import json

import pytest

from edugame_progress.storage import key_value
from edugame_progress.storage.key_value import (
    JsonKeyValueStore,
    MemoryKeyValueStore,
    StorageError,
)


@pytest.fixture
def kv(tmp_path):
    return JsonKeyValueStore(tmp_path / "profiles" / "default.json")


class TestJsonKeyValueStore:
    def test_missing_file_is_empty(self, kv):
        assert kv.read_all() == {}
        assert kv.keys() == []
        assert kv.get("userName") is None

    def test_write_creates_file(self, kv):
        kv.write_batch({"userName": "Ada"})
        assert kv.path.exists()
        assert json.loads(kv.path.read_text()) == {"userName": "Ada"}

    def test_write_batch_applies_updates_and_deletions(self, kv):
        kv.write_batch({"a": 1, "b": True, "c": "x"})
        kv.write_batch({"a": 2}, deletions=["b", "missing"])
        assert kv.read_all() == {"a": 2, "c": "x"}

    def test_write_preserves_foreign_keys(self, kv):
        kv.write_batch({"BinaryGamePhase": "intro"})
        kv.write_batch({"userName": "Ada"})
        assert kv.get("BinaryGamePhase") == "intro"

    def test_delete(self, kv):
        kv.write_batch({"a": 1, "b": 2})
        kv.delete("a")
        assert kv.keys() == ["b"]

    def test_corrupted_file_raises(self, kv):
        kv.path.parent.mkdir(parents=True)
        kv.path.write_text("{not json")
        with pytest.raises(StorageError):
            kv.read_all()

    def test_deeply_nested_file_raises(self, kv):
        kv.path.parent.mkdir(parents=True)
        kv.path.write_text("[" * 200000 + "]" * 200000)
        with pytest.raises(StorageError):
            kv.read_all()

    def test_failed_replace_removes_temp_file(self, kv, monkeypatch):
        kv.write_batch({"a": 1})

        def failing_replace(src, dst):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(key_value.os, "replace", failing_replace)
        with pytest.raises(StorageError):
            kv.write_batch({"a": 2})
        assert list(kv.path.parent.glob("*.json")) == [kv.path]
        assert kv.get("a") == 1

    def test_non_object_file_raises(self, kv):
        kv.path.parent.mkdir(parents=True)
        kv.path.write_text("[1, 2]")
        with pytest.raises(StorageError):
            kv.read_all()

    def test_write_replaces_corrupted_file(self, kv):
        kv.path.parent.mkdir(parents=True)
        kv.path.write_text("garbage")
        kv.write_batch({"userName": "Ada"})
        assert kv.read_all() == {"userName": "Ada"}

    def test_no_temp_files_left_behind(self, kv):
        kv.write_batch({"a": 1})
        kv.write_batch({"a": 2})
        json_files = list(kv.path.parent.glob("*.json"))
        assert json_files == [kv.path]


class TestMemoryKeyValueStore:
    def test_initial_values(self):
        kv = MemoryKeyValueStore({"a": 1})
        assert kv.get("a") == 1
        assert kv.get("b", "fallback") == "fallback"

    def test_read_all_returns_copy(self):
        kv = MemoryKeyValueStore({"a": 1})
        kv.read_all()["a"] = 99
        assert kv.get("a") == 1

    def test_batch_and_delete(self):
        kv = MemoryKeyValueStore()
        kv.write_batch({"a": 1, "b": 2}, deletions=["a"])
        assert kv.keys() == ["b"]
        kv.delete("b")
        assert kv.read_all() == {}
