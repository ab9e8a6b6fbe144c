"""Reading session tracking.

Each item is either idle or has exactly one open session. Remote session
timestamps carry no zone marker and are always UTC.
"""

from __future__ import annotations

import inspect
import logging
import re
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from shelfsync.errors import InvalidStateError, InvalidTimestampError
from shelfsync.library.models import Session
from shelfsync.remote.client import CatalogClient

log = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?"
    r"\s*(Z|[+-]\d{2}:?\d{2})?$"
)

SessionCallback = Callable[[Session], Any]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_utc_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a missing zone means UTC."""
    m = _TIMESTAMP_RE.match(value.strip()) if value else None
    if not m:
        raise InvalidTimestampError(f"Invalid session timestamp: {value!r}")
    year, month, day, hour, minute, second, fraction, zone = m.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))

    try:
        tz = timezone.utc
        if zone and zone != "Z":
            sign = 1 if zone[0] == "+" else -1
            digits = zone[1:].replace(":", "")
            tz = timezone(
                sign * timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
            )
        parsed = datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second or 0),
            micros,
            tzinfo=tz,
        )
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise InvalidTimestampError(f"Invalid session timestamp: {value!r}") from e


def compute_duration_minutes(started_at: str, now: datetime) -> int:
    """Whole minutes since started_at, never less than one."""
    elapsed = now - parse_utc_timestamp(started_at)
    if elapsed < timedelta(0):
        log.warning(
            "Negative session duration (%s), clock skew? Using 1 minute", elapsed
        )
        return 1
    return max(1, int(elapsed.total_seconds() // 60))


def format_session_duration(duration_minutes: Optional[int]) -> str:
    if not duration_minutes:
        return "Unknown"
    hours, minutes = divmod(duration_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


class SessionTracker:
    def __init__(
        self,
        remote: CatalogClient,
        device_tag: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._remote = remote
        self._device_tag = device_tag
        self._clock = clock
        self._active: dict[int, Session] = {}
        self._sessions: list[Session] = []

    @property
    def active_sessions(self) -> Mapping[int, Session]:
        return MappingProxyType(self._active)

    @property
    def sessions(self) -> list[Session]:
        """Known sessions, newest first."""
        return list(self._sessions)

    def recent_sessions(self, limit: int = 10) -> list[Session]:
        return self._sessions[:limit]

    def get_active_session(self, item_id: int) -> Optional[Session]:
        return self._active.get(item_id)

    def has_active_session(self, item_id: int) -> bool:
        return item_id in self._active

    async def load_sessions(
        self,
        item_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Session]:
        sessions = await self._remote.list_sessions(
            item_id=item_id, limit=limit, offset=offset
        )
        self._sessions = list(sessions)
        return self.sessions

    async def start(self, item_id: int, chapter: Optional[int] = None) -> Session:
        if item_id in self._active:
            raise InvalidStateError(
                f"Item {item_id} already has an open session "
                f"({self._active[item_id].id})"
            )

        log.info("Starting reading session for item %s", item_id)
        session = await self._remote.start_session(
            item_id, chapter_number=chapter, device_type=self._device_tag
        )
        self._active = {**self._active, item_id: session}
        self._sessions = [session, *self._sessions]
        return session

    async def end(
        self,
        item_id: int,
        final_chapter: Optional[int] = None,
        on_ended: Optional[SessionCallback] = None,
    ) -> Session:
        active = self._active.get(item_id)
        if active is None:
            raise InvalidStateError(f"No active session for item {item_id}")

        now = self._clock()
        duration = compute_duration_minutes(active.started_at, now)
        log.info("Reading session %s ended: %d minutes", active.id, duration)

        ended = await self._remote.end_session(
            active.id, duration, chapter_number=final_chapter
        )

        self._active = {k: v for k, v in self._active.items() if k != item_id}
        self._sessions = [ended if s.id == ended.id else s for s in self._sessions]

        if on_ended is not None:
            await self._notify(on_ended, ended)
        return ended

    @staticmethod
    async def _notify(callback: SessionCallback, session: Session) -> None:
        try:
            result = callback(session)
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception("Session-ended callback failed for session %s", session.id)

    def clear(self) -> None:
        self._active = {}
        self._sessions = []
