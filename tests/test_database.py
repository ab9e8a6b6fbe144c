"""Tests for the SQLite key/value store."""

from __future__ import annotations

from pathlib import Path

from shelfsync.library.database import Database


class TestKeyValue:
    def test_set_and_get(self, db: Database):
        db.set_value("greeting", "hello")
        assert db.get_value("greeting") == "hello"

    def test_get_missing(self, db: Database):
        assert db.get_value("nonexistent") is None

    def test_set_overwrites(self, db: Database):
        db.set_value("k", "v1")
        db.set_value("k", "v2")
        assert db.get_value("k") == "v2"
        assert db.list_keys() == ["k"]

    def test_delete(self, db: Database):
        db.set_value("k", "v")
        db.delete_value("k")
        assert db.get_value("k") is None

    def test_delete_missing_is_noop(self, db: Database):
        db.delete_value("nothing-here")
        assert db.list_keys() == []

    def test_persists_across_connections(self, tmp_path: Path):
        path = tmp_path / "persist.db"
        first = Database(path)
        first.set_value("k", "kept")
        first.close()

        second = Database(path)
        try:
            assert second.get_value("k") == "kept"
        finally:
            second.close()
