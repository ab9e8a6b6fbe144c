"""shelfsync - reading tracker sync core."""

from __future__ import annotations

import logging
from typing import Optional

from shelfsync.config import AppConfig, load_config
from shelfsync.library.database import Database
from shelfsync.library.models import EnhancedView, Session
from shelfsync.remote.client import CatalogClient
from shelfsync.sync.catalog import CatalogCache
from shelfsync.sync.local_cache import LocalPreferenceCache
from shelfsync.sync.preferences import PreferenceStore
from shelfsync.sync.sessions import SessionTracker
from shelfsync.sync.statistics import StatisticsAggregator
from shelfsync.sync.views import compose

log = logging.getLogger(__name__)


class ShelfSync:
    """Wires the stores together. Presentation code holds one instance."""

    def __init__(
        self,
        config: AppConfig | None = None,
        remote: CatalogClient | None = None,
    ) -> None:
        self.config = config or load_config()
        self.db = Database(self.config.db_path)
        self.remote = remote or CatalogClient(self.config)
        self.catalog = CatalogCache(self.remote)
        self.preferences = PreferenceStore(
            self.remote, LocalPreferenceCache(self.db)
        )
        self.sessions = SessionTracker(self.remote, device_tag=self.config.device_tag)
        self.statistics = StatisticsAggregator(
            self.preferences, self.sessions, self.remote
        )

    def views(self) -> list[EnhancedView]:
        return compose(self.catalog.items, self.preferences.preferences)

    async def refresh(self) -> list[EnhancedView]:
        await self.catalog.load()
        await self.preferences.load_all()
        return self.views()

    async def end_session(
        self, item_id: int, final_chapter: Optional[int] = None
    ) -> Session:
        """End the item's session and refresh global statistics afterwards."""
        return await self.sessions.end(
            item_id,
            final_chapter=final_chapter,
            on_ended=lambda _session: self.statistics.load_statistics(),
        )

    async def close(self) -> None:
        await self.remote.close()
        self.db.close()


def setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("shelfsync")
    root.setLevel(config.log_level)
    root.addHandler(handler)


def open_sync(config: AppConfig | None = None) -> ShelfSync:
    """Load config, set up logging, and build a ShelfSync instance."""
    config = config or load_config()
    setup_logging(config)
    return ShelfSync(config=config)
