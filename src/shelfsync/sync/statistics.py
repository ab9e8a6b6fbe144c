"""Reading statistics: local counts, remote aggregates, and the day streak."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Iterable, Optional

from shelfsync.errors import InvalidTimestampError, ShelfSyncError
from shelfsync.library.models import (
    USER_STATUSES,
    LibraryCounts,
    ReadingStatistics,
    Session,
)
from shelfsync.remote.client import CatalogClient
from shelfsync.sync.preferences import PreferenceStore
from shelfsync.sync.sessions import SessionTracker, parse_utc_timestamp, utc_now

log = logging.getLogger(__name__)

_STATUS_COUNTERS = {
    "Reading": "reading",
    "Wishlist": "wishlist",
    "Completed": "completed",
    "On Hold": "on_hold",
    "Dropped": "dropped",
}


def _is_number(value: Any) -> bool:
    # json accepts NaN and Infinity
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _number(payload: dict[str, Any], key: str) -> float:
    value = payload.get(key)
    return value if _is_number(value) else 0


def parse_statistics(
    payload: Any, item_id: Optional[int] = None
) -> Optional[ReadingStatistics]:
    """Validate a remote statistics payload. Returns None if it is unusable."""
    if not isinstance(payload, dict):
        return None
    total = payload.get("total_reading_time_minutes")
    if not _is_number(total):
        return None

    count = int(_number(payload, "reading_sessions_count"))
    average = payload.get("average_session_minutes")
    if not _is_number(average):
        average = total / count if count else 0.0

    genres = payload.get("favorite_genres")
    return ReadingStatistics(
        total_reading_time_minutes=total,
        reading_sessions_count=count,
        average_session_minutes=float(average),
        current_streak_days=int(_number(payload, "current_streak_days")),
        longest_streak_days=int(_number(payload, "longest_streak_days")),
        chapters_read_today=int(_number(payload, "chapters_read_today")),
        chapters_read=int(_number(payload, "chapters_read")),
        progress_percentage=float(_number(payload, "progress_percentage")),
        total_novels=int(_number(payload, "total_novels")),
        novels_completed=int(_number(payload, "novels_completed")),
        novels_reading=int(_number(payload, "novels_reading")),
        average_rating=float(_number(payload, "average_rating")),
        favorite_genres=[g for g in genres if isinstance(g, str)]
        if isinstance(genres, list)
        else [],
        first_read_date=payload.get("first_read_date"),
        last_read_date=payload.get("last_read_date"),
        item_id=item_id if item_id is not None else payload.get("novel_id"),
        raw=payload,
    )


def calculate_streak(sessions: Iterable[Session], today: Optional[date] = None) -> int:
    """Count consecutive UTC days with at least one session.

    The streak may start yesterday when nothing has been logged today yet.
    """
    if today is None:
        today = utc_now().date()

    days = set()
    for session in sessions:
        try:
            days.add(parse_utc_timestamp(session.started_at).date())
        except InvalidTimestampError:
            log.debug("Skipping session %s with bad start time", session.id)

    streak = 0
    expected: Optional[int] = None
    for day in sorted(days, reverse=True):
        gap = (today - day).days
        if gap < 0:
            continue
        if expected is None:
            if gap > 1:
                break
            expected = gap
        elif gap != expected:
            break
        streak += 1
        expected += 1
    return streak


class StatisticsAggregator:
    def __init__(
        self,
        preferences: PreferenceStore,
        sessions: SessionTracker,
        remote: CatalogClient,
    ) -> None:
        self._preferences = preferences
        self._sessions = sessions
        self._remote = remote
        self.statistics: Optional[ReadingStatistics] = None

    # ── Local counts ───────────────────────────────────────

    def library_counts(self) -> LibraryCounts:
        counts = LibraryCounts()
        for pref in self._preferences.preferences.values():
            counts.total += 1
            if pref.is_favorite:
                counts.favorites += 1
            attr = _STATUS_COUNTERS.get(pref.status or "")
            if attr:
                setattr(counts, attr, getattr(counts, attr) + 1)
        return counts

    def item_ids_with_status(self, status: str) -> list[int]:
        return [
            item_id
            for item_id, pref in self._preferences.preferences.items()
            if pref.status == status
        ]

    def favorite_item_ids(self) -> list[int]:
        return [
            item_id
            for item_id, pref in self._preferences.preferences.items()
            if pref.is_favorite
        ]

    def statuses_in_use(self) -> list[str]:
        used = {pref.status for pref in self._preferences.preferences.values()}
        return [s for s in USER_STATUSES if s in used]

    def current_streak(self, today: Optional[date] = None) -> int:
        return calculate_streak(self._sessions.sessions, today=today)

    # ── Remote aggregates ──────────────────────────────────

    @staticmethod
    def _validate(payload: Any, item_id: Optional[int] = None) -> Optional[ReadingStatistics]:
        stats = parse_statistics(payload, item_id=item_id)
        if stats is None:
            log.warning("Ignoring malformed statistics payload: %r", payload)
        return stats

    async def load_statistics(self) -> Optional[ReadingStatistics]:
        """Fetch global statistics. A failed fetch keeps the previous value."""
        try:
            payload = await self._remote.get_statistics()
        except ShelfSyncError as e:
            log.error("Failed to load reading statistics: %s", e)
            return None
        self.statistics = self._validate(payload)
        return self.statistics

    async def item_statistics(self, item_id: int) -> Optional[ReadingStatistics]:
        try:
            payload = await self._remote.get_statistics(item_id)
        except ShelfSyncError as e:
            log.error("Failed to load statistics for item %s: %s", item_id, e)
            return None
        return self._validate(payload, item_id=item_id)
