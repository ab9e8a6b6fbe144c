"""Snapshot of the remote catalog, with pass-through updates."""

from __future__ import annotations

import logging
from typing import Any, Optional

from shelfsync.library.models import CatalogRecord
from shelfsync.remote.client import CatalogClient

log = logging.getLogger(__name__)


class CatalogCache:
    def __init__(self, remote: CatalogClient) -> None:
        self._remote = remote
        self._items: tuple[CatalogRecord, ...] = ()

    @property
    def items(self) -> tuple[CatalogRecord, ...]:
        return self._items

    async def load(self) -> tuple[CatalogRecord, ...]:
        items = await self._remote.get_items()
        self._items = tuple(items)
        log.info("Loaded %d catalog items", len(items))
        return self._items

    def get(self, item_id: int) -> Optional[CatalogRecord]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    async def update(self, item_id: int, changes: dict[str, Any]) -> CatalogRecord:
        updated = await self._remote.update_item(item_id, changes)
        if self.get(item_id) is None:
            self._items = self._items + (updated,)
        else:
            self._items = tuple(
                updated if item.id == item_id else item for item in self._items
            )
        return updated
