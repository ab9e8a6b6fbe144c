from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from shelfsync.config import AppConfig
from shelfsync.errors import NotFoundError, RemoteError, UnreachableError
from shelfsync.library.models import CatalogRecord, PreferenceRecord, Session

log = logging.getLogger(__name__)

T = TypeVar("T")

# Presentation vocabulary <-> remote vocabulary for reading status.
STATUS_TO_REMOTE = {
    "Reading": "reading",
    "Wishlist": "plan_to_read",
    "Completed": "completed",
    "On Hold": "on_hold",
    "Dropped": "dropped",
}
STATUS_FROM_REMOTE = {v: k for k, v in STATUS_TO_REMOTE.items()}

_PREFERENCE_FIELDS = (
    "is_favorite",
    "current_chapter",
    "rating",
    "personal_notes",
    "date_started",
    "date_completed",
)


def status_to_remote(status: Optional[str]) -> Optional[str]:
    if not status:
        return None
    return STATUS_TO_REMOTE.get(status, status)


def status_from_remote(status: Optional[str]) -> Optional[str]:
    if not status:
        return None
    return STATUS_FROM_REMOTE.get(status, status)


def preference_to_remote(changes: dict[str, Any]) -> dict[str, Any]:
    """Map presentation field names to the remote request body, dropping unset keys."""
    body: dict[str, Any] = {}
    if changes.get("status") is not None:
        body["user_status"] = status_to_remote(changes["status"])
    for key in _PREFERENCE_FIELDS:
        if key in changes:
            body[key] = changes[key]
    return body


def preference_from_remote(data: dict[str, Any]) -> PreferenceRecord:
    return PreferenceRecord(
        item_id=int(data["novel_id"]),
        status=status_from_remote(data.get("user_status")),
        is_favorite=bool(data.get("is_favorite") or False),
        current_chapter=int(data.get("current_chapter") or 0),
        rating=data.get("rating"),
        personal_notes=data.get("personal_notes"),
        date_started=data.get("date_started"),
        date_completed=data.get("date_completed"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
        id=data.get("id"),
    )


def _decode(parse: Callable[[Any], T], data: Any) -> T:
    try:
        return parse(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        log.error("Unexpected response body: %s: %s", type(e).__name__, e)
        raise RemoteError(f"Unexpected response format: {type(e).__name__} {e}") from e


def _decode_list(parse: Callable[[Any], T], data: Any) -> list[T]:
    if not isinstance(data, list):
        log.error("Expected a JSON array, got %s", type(data).__name__)
        raise RemoteError(
            f"Unexpected response format: expected a list, got {type(data).__name__}"
        )
    return [_decode(parse, d) for d in data]


class CatalogClient:
    """Async client for the catalog, preference, session and statistics endpoints."""

    def __init__(
        self,
        config: AppConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._config.api_base_url.rstrip("/")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Transport ──────────────────────────────────────────

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        url = f"{base_url or self.base_url}{endpoint}"
        client = self._get_client()
        try:
            resp = await client.request(
                method,
                url,
                json=json,
                params=params,
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
            if resp.status_code == 204:
                return {}
            return resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = self._error_message(e.response)
            if status == 404:
                log.debug("Not found: %s %s", method, url)
                raise NotFoundError(f"{method} {endpoint}: {message}") from e
            log.error("API error: %s %s -> %s %s", method, url, status, message)
            raise RemoteError(
                f"{method} {endpoint} failed: HTTP {status} ({message})",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            log.error(
                "Request error: %s %s -> %s",
                type(e).__name__,
                url,
                e,
            )
            raise UnreachableError(
                f"{method} {endpoint} failed: {type(e).__name__} ({url})"
            ) from e
        except ValueError as e:
            log.error("Unexpected response format from %s: %s", url, e)
            raise RemoteError(f"{method} {endpoint} failed: invalid JSON body") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if data.get("detail"):
                return str(data["detail"])
        return response.reason_phrase

    # ── System ─────────────────────────────────────────────

    async def health_check(self) -> dict[str, Any]:
        return await self._request("GET", "/health", base_url=self._config.root_url)

    # ── Catalog ────────────────────────────────────────────

    async def get_items(self) -> list[CatalogRecord]:
        data = await self._request("GET", "/novels")
        return _decode_list(CatalogRecord.from_dict, data)

    async def get_item(self, item_id: int) -> CatalogRecord:
        data = await self._request("GET", f"/novels/{item_id}")
        return _decode(CatalogRecord.from_dict, data)

    async def update_item(self, item_id: int, changes: dict[str, Any]) -> CatalogRecord:
        data = await self._request("PATCH", f"/novels/{item_id}", json=changes)
        return _decode(CatalogRecord.from_dict, data)

    # ── Preferences ────────────────────────────────────────

    async def list_preferences(self) -> list[PreferenceRecord]:
        data = await self._request("GET", "/user-preferences")
        return _decode_list(preference_from_remote, data)

    async def get_preference(self, item_id: int) -> PreferenceRecord:
        data = await self._request("GET", f"/user-preferences/{item_id}")
        return _decode(preference_from_remote, data)

    async def create_preference(
        self, item_id: int, changes: dict[str, Any]
    ) -> PreferenceRecord:
        data = await self._request(
            "POST", f"/user-preferences/{item_id}", json=preference_to_remote(changes)
        )
        return _decode(preference_from_remote, data)

    async def update_preference(
        self, item_id: int, changes: dict[str, Any]
    ) -> PreferenceRecord:
        data = await self._request(
            "PATCH", f"/user-preferences/{item_id}", json=preference_to_remote(changes)
        )
        return _decode(preference_from_remote, data)

    async def update_preference_status(
        self, item_id: int, status: str
    ) -> PreferenceRecord:
        data = await self._request(
            "PATCH",
            f"/user-preferences/{item_id}/status",
            json={"user_status": status_to_remote(status)},
        )
        return _decode(preference_from_remote, data)

    async def update_preference_progress(
        self, item_id: int, chapter: int
    ) -> PreferenceRecord:
        data = await self._request(
            "PATCH",
            f"/user-preferences/{item_id}/progress",
            json={"current_chapter": chapter},
        )
        return _decode(preference_from_remote, data)

    async def delete_preference(self, item_id: int) -> None:
        await self._request("DELETE", f"/user-preferences/{item_id}")

    # ── Reading sessions ───────────────────────────────────

    async def start_session(
        self,
        item_id: int,
        chapter_number: Optional[int] = None,
        device_type: Optional[str] = None,
    ) -> Session:
        body: dict[str, Any] = {"device_type": device_type or self._config.device_tag}
        if chapter_number is not None:
            body["chapter_number"] = chapter_number
        data = await self._request(
            "POST", f"/reading-sessions/{item_id}/start", json=body
        )
        return _decode(Session.from_dict, data)

    async def end_session(
        self,
        session_id: int,
        duration_minutes: int,
        chapter_number: Optional[int] = None,
    ) -> Session:
        body: dict[str, Any] = {"duration_minutes": duration_minutes}
        if chapter_number is not None:
            body["chapter_number"] = chapter_number
        data = await self._request(
            "PATCH", f"/reading-sessions/{session_id}/end", json=body
        )
        return _decode(Session.from_dict, data)

    async def list_sessions(
        self,
        item_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Session]:
        params: dict[str, Any] = {}
        if item_id:
            params["novel_id"] = item_id
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        data = await self._request("GET", "/reading-sessions", params=params or None)
        return _decode_list(Session.from_dict, data)

    # ── Statistics ─────────────────────────────────────────

    async def get_statistics(self, item_id: Optional[int] = None) -> Any:
        """Raw aggregate payload; shape is validated by the caller."""
        params = {"novel_id": item_id} if item_id is not None else None
        return await self._request("GET", "/reading-statistics", params=params)
