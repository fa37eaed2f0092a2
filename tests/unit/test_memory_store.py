"""
tests/unit/test_memory_store.py — Bounded Memory Store Tests

Covers:
  - add() keeps only the newest max_entries entries, in order
  - get() returns a copy and [] for unknown identities
  - windows are independent per identity
  - clear() / clear_all()
  - write-through: a new store on the same path sees identical windows
  - reloading under a smaller cap trims each window
  - corrupt or wrongly shaped files raise MemoryStoreError
"""

from __future__ import annotations

import json

import pytest

from intentflow.exceptions import MemoryStoreError
from intentflow.memory.store import DEFAULT_MAX_ENTRIES, MemoryStore


@pytest.fixture
def path(tmp_path):
    return tmp_path / "memory.json"


class TestWindow:
    def test_trims_oldest_beyond_cap(self, path):
        store = MemoryStore(path, max_entries=2)
        for entry in ("a", "b", "c"):
            store.add("u1", entry)
        assert store.get("u1") == ["b", "c"]

    def test_many_adds_keep_last_k_in_order(self, path):
        store = MemoryStore(path, max_entries=3)
        for i in range(25):
            store.add("u1", f"e{i}")
        assert store.get("u1") == ["e22", "e23", "e24"]

    def test_default_cap_is_ten(self, path):
        store = MemoryStore(path)
        assert store.max_entries == DEFAULT_MAX_ENTRIES == 10

    def test_unknown_identity_is_empty(self, path):
        assert MemoryStore(path).get("nobody") == []

    def test_get_returns_copy(self, path):
        store = MemoryStore(path)
        store.add("u1", "a")
        window = store.get("u1")
        window.append("mutated")
        assert store.get("u1") == ["a"]

    def test_identities_are_independent(self, path):
        store = MemoryStore(path, max_entries=2)
        store.add("u1", "a")
        store.add("u2", "x")
        store.add("u1", "b")
        store.add("u1", "c")
        assert store.get("u1") == ["b", "c"]
        assert store.get("u2") == ["x"]

    def test_rejects_non_positive_cap(self, path):
        with pytest.raises(ValueError):
            MemoryStore(path, max_entries=0)


class TestClear:
    def test_clear_one_identity(self, path):
        store = MemoryStore(path)
        store.add("u1", "a")
        store.add("u2", "b")
        store.clear("u1")
        assert store.get("u1") == []
        assert store.get("u2") == ["b"]

    def test_clear_unknown_identity_is_noop(self, path):
        store = MemoryStore(path)
        store.clear("ghost")
        assert store.get("ghost") == []

    def test_clear_all(self, path):
        store = MemoryStore(path)
        store.add("u1", "a")
        store.add("u2", "b")
        store.clear_all()
        assert store.identities() == []
        assert MemoryStore(path).identities() == []


class TestPersistence:
    def test_reload_reproduces_windows(self, path):
        store = MemoryStore(path, max_entries=3)
        for i in range(5):
            store.add("u1", f"e{i}")
        store.add("u2", "hello")
        store.clear("u2")
        store.add("u3", "ünïcode")

        reloaded = MemoryStore(path, max_entries=3)
        for identity in ("u1", "u2", "u3"):
            assert reloaded.get(identity) == store.get(identity)

    def test_file_layout(self, path):
        store = MemoryStore(path, max_entries=4)
        store.add("u1", "User: hi")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"version": 1, "max_entries": 4, "windows": {"u1": ["User: hi"]}}

    def test_reload_with_smaller_cap_trims(self, path):
        big = MemoryStore(path, max_entries=5)
        for i in range(5):
            big.add("u1", f"e{i}")
        small = MemoryStore(path, max_entries=2)
        assert small.get("u1") == ["e3", "e4"]

    def test_creates_parent_directories(self, tmp_path):
        store = MemoryStore(tmp_path / "nested" / "dir" / "memory.json")
        store.add("u1", "a")
        assert (tmp_path / "nested" / "dir" / "memory.json").exists()

    def test_no_temp_files_left_behind(self, path):
        store = MemoryStore(path)
        store.add("u1", "a")
        store.add("u1", "b")
        assert [p.name for p in path.parent.iterdir()] == [path.name]

    def test_corrupt_file_raises(self, path):
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MemoryStoreError):
            MemoryStore(path)

    def test_wrong_layout_raises(self, path):
        path.write_text(json.dumps(["a", "b"]), encoding="utf-8")
        with pytest.raises(MemoryStoreError):
            MemoryStore(path)

    def test_window_of_non_strings_raises(self, path):
        path.write_text(json.dumps({"version": 1, "windows": {"u1": [1, 2]}}), encoding="utf-8")
        with pytest.raises(MemoryStoreError):
            MemoryStore(path)

    def test_unsupported_version_raises(self, path):
        path.write_text(json.dumps({"version": 99, "windows": {}}), encoding="utf-8")
        with pytest.raises(MemoryStoreError):
            MemoryStore(path)
