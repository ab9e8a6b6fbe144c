"""Tests for statistics aggregation and the streak calculation."""

from __future__ import annotations

from datetime import date
from unittest.mock import Mock

import pytest

from conftest import make_pref, make_session
from shelfsync.errors import RemoteError, UnreachableError
from shelfsync.library.models import LibraryCounts
from shelfsync.sync.local_cache import LocalPreferenceCache
from shelfsync.sync.preferences import PreferenceStore
from shelfsync.sync.sessions import SessionTracker
from shelfsync.sync.statistics import (
    StatisticsAggregator,
    calculate_streak,
    parse_statistics,
)

TODAY = date(2026, 3, 14)


def _on(day: int, hour: int = 20) -> str:
    return f"2026-03-{day:02d}T{hour:02d}:15:00"


@pytest.fixture
def aggregator(remote: Mock, local: LocalPreferenceCache) -> StatisticsAggregator:
    prefs = PreferenceStore(remote, local)
    sessions = SessionTracker(remote)
    return StatisticsAggregator(prefs, sessions, remote)


class TestParseStatistics:
    def test_valid_payload(self):
        stats = parse_statistics(
            {
                "total_reading_time_minutes": 120,
                "reading_sessions_count": 4,
                "current_streak_days": 3,
                "chapters_read_today": 2,
                "favorite_genres": ["Fantasy", 7],
            }
        )
        assert stats is not None
        assert stats.total_reading_time_minutes == 120
        assert stats.average_session_minutes == 30.0
        assert stats.current_streak_days == 3
        assert stats.chapters_read_today == 2
        assert stats.favorite_genres == ["Fantasy"]

    def test_missing_total_is_none(self):
        assert parse_statistics({"reading_sessions_count": 4}) is None

    def test_non_numeric_total_is_none(self):
        assert parse_statistics({"total_reading_time_minutes": "120"}) is None
        assert parse_statistics({"total_reading_time_minutes": True}) is None

    def test_array_payload_is_none(self):
        assert parse_statistics([{"total_reading_time_minutes": 1}]) is None

    @pytest.mark.parametrize("payload", [None, "", 0, "oops"])
    def test_non_object_is_none(self, payload):
        assert parse_statistics(payload) is None

    def test_bad_optional_fields_default(self):
        stats = parse_statistics(
            {"total_reading_time_minutes": 0, "reading_sessions_count": "many"}
        )
        assert stats is not None
        assert stats.reading_sessions_count == 0
        assert stats.average_session_minutes == 0.0

    def test_non_finite_optional_fields_default(self):
        stats = parse_statistics(
            {
                "total_reading_time_minutes": 10,
                "reading_sessions_count": float("inf"),
                "average_session_minutes": float("nan"),
                "current_streak_days": float("-inf"),
                "progress_percentage": float("nan"),
            }
        )
        assert stats is not None
        assert stats.reading_sessions_count == 0
        assert stats.average_session_minutes == 0.0
        assert stats.current_streak_days == 0
        assert stats.progress_percentage == 0.0

    @pytest.mark.parametrize("total", [float("inf"), float("nan")])
    def test_non_finite_total_is_none(self, total):
        assert parse_statistics({"total_reading_time_minutes": total}) is None

    def test_remote_average_preferred(self):
        stats = parse_statistics(
            {
                "total_reading_time_minutes": 100,
                "reading_sessions_count": 3,
                "average_session_minutes": 25.5,
            }
        )
        assert stats.average_session_minutes == 25.5


class TestStreak:
    def test_empty(self):
        assert calculate_streak([], today=TODAY) == 0

    def test_three_consecutive_days(self):
        sessions = [make_session(i, started_at=_on(d)) for i, d in enumerate((14, 13, 12))]
        assert calculate_streak(sessions, today=TODAY) == 3

    def test_gap_stops_streak(self):
        sessions = [make_session(1, started_at=_on(14)), make_session(2, started_at=_on(12))]
        assert calculate_streak(sessions, today=TODAY) == 1

    def test_today_not_logged_yet(self):
        sessions = [make_session(1, started_at=_on(13)), make_session(2, started_at=_on(12))]
        assert calculate_streak(sessions, today=TODAY) == 2

    def test_stale_history(self):
        sessions = [make_session(1, started_at=_on(10))]
        assert calculate_streak(sessions, today=TODAY) == 0

    def test_several_sessions_same_day(self):
        sessions = [
            make_session(1, started_at=_on(14, 8)),
            make_session(2, started_at=_on(14, 21)),
            make_session(3, started_at=_on(13)),
        ]
        assert calculate_streak(sessions, today=TODAY) == 2

    def test_unordered_input(self):
        sessions = [make_session(i, started_at=_on(d)) for i, d in enumerate((12, 14, 13))]
        assert calculate_streak(sessions, today=TODAY) == 3

    def test_utc_day_boundary(self):
        # 23:30 UTC on the 13th counts for the 13th
        sessions = [
            make_session(1, started_at="2026-03-13T23:30:00"),
            make_session(2, started_at="2026-03-14T00:10:00"),
        ]
        assert calculate_streak(sessions, today=TODAY) == 2

    def test_bad_timestamps_skipped(self):
        sessions = [
            make_session(1, started_at="garbage"),
            make_session(2, started_at="2026-03-13T11:00:00+99:00"),
            make_session(3, started_at=_on(14)),
        ]
        assert calculate_streak(sessions, today=TODAY) == 1


class TestLibraryCounts:
    @pytest.mark.asyncio
    async def test_counts(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.list_preferences.return_value = [
            make_pref(1, status="Reading", is_favorite=True),
            make_pref(2, status="Reading"),
            make_pref(3, status="On Hold"),
            make_pref(4, status="Wishlist", is_favorite=True),
            make_pref(5, status="rereading"),
            make_pref(6),
        ]
        await aggregator._preferences.load_all()
        counts = aggregator.library_counts()
        assert counts == LibraryCounts(
            total=6, reading=2, wishlist=1, completed=0, on_hold=1, dropped=0, favorites=2
        )
        remote.get_statistics.assert_not_called()

    @pytest.mark.asyncio
    async def test_queries(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.list_preferences.return_value = [
            make_pref(1, status="Dropped", is_favorite=True),
            make_pref(2, status="Reading"),
            make_pref(3, status="Reading"),
        ]
        await aggregator._preferences.load_all()
        assert aggregator.item_ids_with_status("Reading") == [2, 3]
        assert aggregator.favorite_item_ids() == [1]
        assert aggregator.statuses_in_use() == ["Reading", "Dropped"]

    def test_empty(self, aggregator: StatisticsAggregator):
        assert aggregator.library_counts() == LibraryCounts()


class TestRemoteStatistics:
    @pytest.mark.asyncio
    async def test_load(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.return_value = {"total_reading_time_minutes": 42}
        stats = await aggregator.load_statistics()
        assert stats is not None
        assert aggregator.statistics is stats

    @pytest.mark.asyncio
    async def test_malformed_yields_none(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.return_value = {"sessions": 3}
        assert await aggregator.load_statistics() is None
        assert aggregator.statistics is None

    @pytest.mark.asyncio
    async def test_non_finite_count_degrades(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.return_value = {
            "total_reading_time_minutes": 10,
            "reading_sessions_count": float("inf"),
        }
        stats = await aggregator.load_statistics()
        assert stats is not None
        assert stats.reading_sessions_count == 0
        assert stats.average_session_minutes == 0.0

    @pytest.mark.asyncio
    async def test_fetch_failure_yields_none(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.return_value = {"total_reading_time_minutes": 42}
        previous = await aggregator.load_statistics()
        remote.get_statistics.side_effect = UnreachableError("down")
        assert await aggregator.load_statistics() is None
        assert aggregator.statistics is previous

    @pytest.mark.asyncio
    async def test_item_statistics(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.return_value = {
            "novel_id": 4,
            "total_reading_time_minutes": 90,
            "reading_sessions_count": 3,
            "progress_percentage": 42.5,
        }
        stats = await aggregator.item_statistics(4)
        remote.get_statistics.assert_awaited_once_with(4)
        assert stats.item_id == 4
        assert stats.average_session_minutes == 30.0
        assert stats.progress_percentage == 42.5

    @pytest.mark.asyncio
    async def test_item_statistics_error(self, aggregator: StatisticsAggregator, remote: Mock):
        remote.get_statistics.side_effect = RemoteError("boom", status_code=500)
        assert await aggregator.item_statistics(4) is None

    @pytest.mark.asyncio
    async def test_current_streak_uses_tracker(
        self, aggregator: StatisticsAggregator, remote: Mock
    ):
        remote.list_sessions.return_value = [
            make_session(1, started_at=_on(14)),
            make_session(2, started_at=_on(13)),
        ]
        await aggregator._sessions.load_sessions()
        assert aggregator.current_streak(today=TODAY) == 2
