"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from shelfsync.config import AppConfig
from shelfsync.library.database import Database
from shelfsync.library.models import CatalogRecord, PreferenceRecord, Session
from shelfsync.remote.client import CatalogClient
from shelfsync.sync.local_cache import LocalPreferenceCache

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db(tmp_path: Path) -> Database:
    db_path = tmp_path / "test.db"
    database = Database(db_path)
    yield database
    database.close()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def local(db: Database) -> LocalPreferenceCache:
    return LocalPreferenceCache(db)


@pytest.fixture
def remote() -> Mock:
    """CatalogClient double; every coroutine method is an AsyncMock."""
    client = Mock(spec=CatalogClient)
    for name in (
        "list_preferences",
        "get_preference",
        "create_preference",
        "update_preference",
        "update_preference_status",
        "update_preference_progress",
        "delete_preference",
        "start_session",
        "end_session",
        "list_sessions",
        "get_statistics",
        "get_items",
        "get_item",
        "update_item",
        "close",
    ):
        setattr(client, name, AsyncMock())
    return client


def make_item(item_id: int = 1, **kwargs) -> CatalogRecord:
    defaults = dict(
        title=f"Novel {item_id}",
        author="Author",
        description="A story",
        genres=["Fantasy"],
        total_chapters=100,
    )
    defaults.update(kwargs)
    return CatalogRecord(id=item_id, **defaults)


def make_pref(item_id: int = 1, **kwargs) -> PreferenceRecord:
    return PreferenceRecord(item_id=item_id, **kwargs)


def make_session(
    session_id: int = 1, item_id: int = 1, started_at: str = "2026-03-14T11:00:00", **kwargs
) -> Session:
    return Session(id=session_id, item_id=item_id, started_at=started_at, **kwargs)
