"""Tests for the state store — atomic JSON snapshots."""

import json
from pathlib import Path

import pytest

from bullion.persistence.state_store import SNAPSHOT_VERSION, StateStore


class TestStateStore:
    def test_missing_file_loads_none(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert not store.exists()
        assert store.load() is None

    def test_roundtrip(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save({"admin_id": "admin", "balances": {"alice": 25}})
        loaded = store.load()
        assert loaded["admin_id"] == "admin"
        assert loaded["balances"] == {"alice": 25}
        assert loaded["version"] == SNAPSHOT_VERSION

    def test_save_creates_parent_dirs(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nested" / "state.json")
        store.save({})
        assert store.exists()

    def test_no_temp_file_left(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save({"a": 1})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    def test_save_overwrites(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save({"a": 1})
        store.save({"a": 2})
        assert store.load()["a"] == 2

    def test_unknown_version_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99}), encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported snapshot version"):
            StateStore(path).load()
