"""Enhanced views: catalog records joined with the preference overlay."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from shelfsync.library.models import CatalogRecord, EnhancedView, PreferenceRecord

ALL_STATUSES = "All Status"
ALL_GENRES = "All Genres"


def enhance(item: CatalogRecord, pref: Optional[PreferenceRecord]) -> EnhancedView:
    if pref is None:
        return EnhancedView(item=item)
    return EnhancedView(
        item=item,
        preference=pref,
        user_status=pref.status,
        is_favorite=pref.is_favorite,
        current_chapter=pref.current_chapter,
        rating=pref.rating,
        personal_notes=pref.personal_notes,
        date_started=pref.date_started,
        date_completed=pref.date_completed,
    )


def compose(
    items: Iterable[CatalogRecord],
    preferences: Mapping[int, PreferenceRecord],
) -> list[EnhancedView]:
    """Left-join catalog items with preferences. One view per item, catalog order."""
    return [enhance(item, preferences.get(item.id)) for item in items]


def matches_query(view: EnhancedView, query: str) -> bool:
    term = query.strip().lower()
    if not term:
        return True
    item = view.item
    return (
        term in item.title.lower()
        or term in item.author.lower()
        or term in item.description.lower()
    )


def filter_views(
    views: Iterable[EnhancedView],
    query: str = "",
    status: str = ALL_STATUSES,
    genre: str = ALL_GENRES,
) -> list[EnhancedView]:
    result = [v for v in views if matches_query(v, query)]
    if status != ALL_STATUSES:
        result = [v for v in result if v.user_status == status]
    if genre != ALL_GENRES:
        result = [v for v in result if genre in v.item.genres]
    return result


def available_genres(items: Iterable[CatalogRecord]) -> list[str]:
    return sorted({g for item in items for g in item.genres})


def favorite_views(views: Iterable[EnhancedView]) -> list[EnhancedView]:
    return [v for v in views if v.is_favorite]


def currently_reading(views: Iterable[EnhancedView]) -> list[EnhancedView]:
    return [v for v in views if v.user_status == "Reading"]
