"""Preference overlay store.

Holds the per-item preference records for the current user. Reads go to the
remote service first; the first outright failure switches the store to the
local fallback for the rest of the logical session. Remote and local state
are never merged.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional

from shelfsync.errors import NotFoundError, RemoteError
from shelfsync.library.models import USER_STATUSES, PreferenceRecord
from shelfsync.remote.client import CatalogClient
from shelfsync.sync.local_cache import LocalPreferenceCache

log = logging.getLogger(__name__)


class PreferenceStore:
    def __init__(self, remote: CatalogClient, local: LocalPreferenceCache) -> None:
        self._remote = remote
        self._local = local
        self._preferences: dict[int, PreferenceRecord] = {}
        self._offline = False

    @property
    def preferences(self) -> Mapping[int, PreferenceRecord]:
        return MappingProxyType(self._preferences)

    @property
    def is_offline(self) -> bool:
        return self._offline

    def reset_backend(self) -> None:
        """Start a new logical session that tries the remote service again.

        Records written to the local fallback meanwhile are not pushed to
        the remote service.
        """
        if self._offline:
            log.info("Leaving local preference fallback")
        self._offline = False

    def _switch_to_local(self, error: RemoteError) -> None:
        log.warning(
            "Remote preferences unavailable (%s), using local fallback", error
        )
        self._offline = True

    def _replace(self, record: PreferenceRecord) -> PreferenceRecord:
        self._preferences = {**self._preferences, record.item_id: record}
        return record

    # ── Reads ──────────────────────────────────────────────

    async def load_all(self) -> Mapping[int, PreferenceRecord]:
        if not self._offline:
            records: Optional[list[PreferenceRecord]] = None
            try:
                records = await self._remote.list_preferences()
            except NotFoundError:
                log.info("Remote has no preferences yet")
                records = []
            except RemoteError as e:
                self._switch_to_local(e)
            if records is not None:
                self._preferences = {r.item_id: r for r in records}
                log.info("Loaded %d preferences from remote", len(records))
                return self.preferences

        self._preferences = self._local.read_all()
        log.info("Loaded %d preferences from local fallback", len(self._preferences))
        return self.preferences

    async def get(self, item_id: int) -> Optional[PreferenceRecord]:
        if not self._offline:
            try:
                record = await self._remote.get_preference(item_id)
            except NotFoundError:
                return None
            except RemoteError as e:
                self._switch_to_local(e)
            else:
                return self._replace(record)

        record = self._local.get(item_id)
        return self._replace(record) if record is not None else None

    # ── Upserts ────────────────────────────────────────────

    async def _upsert(
        self,
        item_id: int,
        changes: dict[str, Any],
        update: Optional[Callable[[], Awaitable[PreferenceRecord]]] = None,
    ) -> PreferenceRecord:
        if self._offline:
            return self._replace(self._local.upsert(item_id, changes))

        try:
            if update is not None:
                record = await update()
            else:
                record = await self._remote.update_preference(item_id, changes)
        except NotFoundError:
            log.info("No preference for item %s yet, creating one", item_id)
            record = await self._remote.create_preference(item_id, changes)
        return self._replace(record)

    async def set_status(self, item_id: int, status: str) -> PreferenceRecord:
        if status not in USER_STATUSES:
            raise ValueError(f"Unknown reading status: {status!r}")
        return await self._upsert(
            item_id,
            {"status": status},
            lambda: self._remote.update_preference_status(item_id, status),
        )

    async def toggle_favorite(self, item_id: int) -> PreferenceRecord:
        current = await self.get(item_id)
        favorite = not (current.is_favorite if current else False)
        return await self._upsert(item_id, {"is_favorite": favorite})

    async def set_rating(self, item_id: int, rating: Optional[int]) -> PreferenceRecord:
        if rating is not None and not 1 <= rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {rating}")
        return await self._upsert(item_id, {"rating": rating})

    async def set_notes(self, item_id: int, notes: str) -> PreferenceRecord:
        return await self._upsert(item_id, {"personal_notes": notes})

    async def update_progress(self, item_id: int, chapter: int) -> PreferenceRecord:
        if chapter < 0:
            raise ValueError(f"Chapter must not be negative, got {chapter}")
        return await self._upsert(
            item_id,
            {"current_chapter": chapter},
            lambda: self._remote.update_preference_progress(item_id, chapter),
        )

    async def delete(self, item_id: int) -> None:
        if self._offline:
            self._local.delete(item_id)
        else:
            try:
                await self._remote.delete_preference(item_id)
            except NotFoundError:
                log.debug("Preference for item %s already absent", item_id)
        self._preferences = {
            k: v for k, v in self._preferences.items() if k != item_id
        }
