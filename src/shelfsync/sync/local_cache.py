"""Local fallback for the preference overlay.

The whole preference map lives as one JSON document under a single key and
is always read and written in full.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Optional

from shelfsync.errors import LocalStoreError
from shelfsync.library.database import Database
from shelfsync.library.models import PreferenceRecord

log = logging.getLogger(__name__)

PREFERENCES_KEY = "user-preferences"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalPreferenceCache:
    def __init__(self, db: Database, key: str = PREFERENCES_KEY) -> None:
        self._db = db
        self._key = key

    def read_all(self) -> dict[int, PreferenceRecord]:
        try:
            raw = self._db.get_value(self._key)
        except sqlite3.Error as e:
            raise LocalStoreError(f"Local preference storage unavailable: {e}") from e
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            return {
                int(item_id): PreferenceRecord.from_dict(entry)
                for item_id, entry in data.items()
            }
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise LocalStoreError(f"Local preference data is corrupt: {e}") from e

    def write_all(self, preferences: dict[int, PreferenceRecord]) -> None:
        payload = json.dumps(
            {str(item_id): pref.to_dict() for item_id, pref in preferences.items()}
        )
        try:
            self._db.set_value(self._key, payload)
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to save local preferences: {e}") from e

    def get(self, item_id: int) -> Optional[PreferenceRecord]:
        return self.read_all().get(item_id)

    def upsert(self, item_id: int, changes: dict[str, Any]) -> PreferenceRecord:
        """Apply changes to the record for item_id, creating it if missing."""
        prefs = self.read_all()
        now = _now_iso()
        existing = prefs.get(item_id)
        if existing is None:
            data: dict[str, Any] = {
                "item_id": item_id,
                "id": int(time.time() * 1000),  # placeholder until synced
                "created_at": now,
            }
            log.debug("Creating local preference for item %s", item_id)
        else:
            data = existing.to_dict()
        data.update(changes)
        data["updated_at"] = now
        record = PreferenceRecord.from_dict(data)
        self.write_all({**prefs, item_id: record})
        return record

    def delete(self, item_id: int) -> None:
        prefs = self.read_all()
        if item_id in prefs:
            self.write_all({k: v for k, v in prefs.items() if k != item_id})
