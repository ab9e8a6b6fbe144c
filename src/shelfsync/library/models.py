"""Data models for the catalog, preference overlay, and reading sessions."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Presentation-facing reading statuses, in display order.
USER_STATUSES = ("Reading", "Wishlist", "Completed", "On Hold", "Dropped")

# Remote catalog statuses (publication state of the item itself).
CATALOG_STATUSES = ("ongoing", "completed", "hiatus", "cancelled")


@dataclass
class CatalogRecord:
    id: int
    title: str
    author: str = "Unknown"
    description: str = ""
    status: str = "ongoing"  # one of CATALOG_STATUSES
    genres: list[str] = field(default_factory=list)
    total_chapters: int = 0
    total_volumes: int = 0
    cover_url: Optional[str] = None
    source_url: Optional[str] = None
    content_type: str = ""
    raw_status: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogRecord:
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            author=data.get("author") or "Unknown",
            description=data.get("description") or "",
            status=data.get("status") or "ongoing",
            genres=list(data.get("genres") or []),
            total_chapters=int(data.get("total_chapters") or 0),
            total_volumes=int(data.get("total_volumes") or 0),
            cover_url=data.get("cover_url"),
            source_url=data.get("source_url"),
            content_type=data.get("content_type") or "",
            raw_status=data.get("raw_status") or "",
        )


@dataclass
class PreferenceRecord:
    item_id: int
    status: Optional[str] = None  # presentation vocabulary, see USER_STATUSES
    is_favorite: bool = False
    current_chapter: int = 0
    rating: Optional[int] = None  # 1 - 5
    personal_notes: Optional[str] = None
    date_started: Optional[str] = None
    date_completed: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreferenceRecord:
        """Build from an already-translated dict (``status`` key, not ``user_status``)."""
        return cls(
            item_id=int(data["item_id"]),
            status=data.get("status"),
            is_favorite=bool(data.get("is_favorite", False)),
            current_chapter=int(data.get("current_chapter") or 0),
            rating=data.get("rating"),
            personal_notes=data.get("personal_notes"),
            date_started=data.get("date_started"),
            date_completed=data.get("date_completed"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            id=data.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Session:
    id: int
    item_id: int
    started_at: str  # ISO-8601, no zone marker means UTC
    chapter_number: Optional[int] = None
    ended_at: Optional[str] = None
    duration_minutes: Optional[int] = None
    device_type: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            id=int(data["id"]),
            item_id=int(data["novel_id"]),
            started_at=data["started_at"],
            chapter_number=data.get("chapter_number"),
            ended_at=data.get("ended_at"),
            duration_minutes=data.get("duration_minutes"),
            device_type=data.get("device_type"),
        )


@dataclass(frozen=True)
class EnhancedView:
    """Catalog record joined with its preference overlay. Derived, never stored."""

    item: CatalogRecord
    preference: Optional[PreferenceRecord] = None
    user_status: Optional[str] = None
    is_favorite: bool = False
    current_chapter: int = 0
    rating: Optional[int] = None
    personal_notes: Optional[str] = None
    date_started: Optional[str] = None
    date_completed: Optional[str] = None

    @property
    def id(self) -> int:
        return self.item.id


@dataclass
class LibraryCounts:
    total: int = 0
    reading: int = 0
    wishlist: int = 0
    completed: int = 0
    on_hold: int = 0
    dropped: int = 0
    favorites: int = 0


@dataclass
class ReadingStatistics:
    """Validated aggregate statistics, global or for a single item."""

    total_reading_time_minutes: float
    reading_sessions_count: int = 0
    average_session_minutes: float = 0.0
    current_streak_days: int = 0
    longest_streak_days: int = 0
    chapters_read_today: int = 0
    chapters_read: int = 0
    progress_percentage: float = 0.0
    total_novels: int = 0
    novels_completed: int = 0
    novels_reading: int = 0
    average_rating: float = 0.0
    favorite_genres: list[str] = field(default_factory=list)
    first_read_date: Optional[str] = None
    last_read_date: Optional[str] = None
    item_id: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)
