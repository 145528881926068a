"""Durable cache for a learner's in-progress practice draft."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from ..db.models import CachedDraftModel
from ..db.session import get_session_factory, session_scope
from ..practice_models import CachedDraft, Draft
from ..telemetry import track_draft_discarded

logger = logging.getLogger(__name__)


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty when caching drafts.")
    return normalized


class DraftStorage(Protocol):
    """Key/value backend holding the JSON form of cached drafts."""

    def read(self, user_id: str) -> Optional[Dict[str, Any]]:  # pragma: no cover - protocol definition
        ...

    def write(self, user_id: str, payload: Dict[str, Any]) -> None:  # pragma: no cover - protocol definition
        ...

    def delete(self, user_id: str) -> None:  # pragma: no cover - protocol definition
        ...


class MemoryDraftStorage:
    """Process-local storage, used in tests and ephemeral deployments."""

    def __init__(self) -> None:
        self._entries: Dict[str, Dict[str, Any]] = {}

    def read(self, user_id: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(user_id)
        return json.loads(json.dumps(entry)) if entry is not None else None

    def write(self, user_id: str, payload: Dict[str, Any]) -> None:
        self._entries[user_id] = json.loads(json.dumps(payload))

    def delete(self, user_id: str) -> None:
        self._entries.pop(user_id, None)


class LocalDraftStorage:
    """JSON file mapping each user id to that user's cached draft.

    An unreadable file is reported as corrupt for every user; deleting any entry
    from it removes the file.
    """

    _CORRUPT: Dict[str, Any] = {"__corrupt__": True}

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    def _load_unlocked(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable draft cache at %s: %s", self._path, exc)
            return None
        if not isinstance(raw, dict):
            logger.warning("Draft cache at %s is not a user map", self._path)
            return None
        return raw

    def _write_unlocked(self, entries: Dict[str, Any]) -> None:
        if not entries:
            self._path.unlink(missing_ok=True)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as handle:
            json.dump(entries, handle, indent=2)

    def read(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entries = self._load_unlocked()
        if entries is None:
            return dict(self._CORRUPT)
        entry = entries.get(user_id)
        if entry is None:
            return None
        return entry if isinstance(entry, dict) else dict(self._CORRUPT)

    def write(self, user_id: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            entries = self._load_unlocked()
            if entries is None:
                logger.warning("Replacing unreadable draft cache at %s", self._path)
                entries = {}
            entries[user_id] = payload
            self._write_unlocked(entries)

    def delete(self, user_id: str) -> None:
        with self._lock:
            entries = self._load_unlocked()
            if entries is None:
                self._path.unlink(missing_ok=True)
                return
            if entries.pop(user_id, None) is not None:
                self._write_unlocked(entries)


class DatabaseDraftStorage:
    """One ``cached_drafts`` row per user."""

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        self._session_factory = session_factory

    def _factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    def read(self, user_id: str) -> Optional[Dict[str, Any]]:
        with session_scope(commit=False, factory=self._factory()) as session:
            row = session.execute(
                select(CachedDraftModel).where(CachedDraftModel.user_id == user_id)
            ).scalar_one_or_none()
            return dict(row.payload) if row is not None else None

    def write(self, user_id: str, payload: Dict[str, Any]) -> None:
        with session_scope(factory=self._factory()) as session:
            row = session.execute(
                select(CachedDraftModel).where(CachedDraftModel.user_id == user_id)
            ).scalar_one_or_none()
            if row is None:
                row = CachedDraftModel(user_id=user_id, session_length=0, payload={})
                session.add(row)
            row.session_length = int(payload.get("sessionLength", 0))
            row.payload = payload

    def delete(self, user_id: str) -> None:
        with session_scope(factory=self._factory()) as session:
            session.execute(delete(CachedDraftModel).where(CachedDraftModel.user_id == user_id))


class DraftCache:
    """Reads and writes ``CachedDraft`` payloads, enforcing ownership and expiry."""

    def __init__(
        self,
        storage: DraftStorage,
        *,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage
        self._ttl = ttl
        self._clock = clock

    def load(self, user_id: str) -> Optional[CachedDraft]:
        """Return the cached draft for ``user_id``, or ``None`` if absent or unusable."""
        key = _normalize_user_id(user_id)
        raw = self._storage.read(key)
        if raw is None:
            return None
        try:
            cached = CachedDraft.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt cached draft for %s: %s", key, exc)
            self._storage.delete(key)
            track_draft_discarded(key, "corrupt")
            return None

        if cached.user_id != key:
            logger.info("Ignoring cached draft owned by another user (requested %s)", key)
            track_draft_discarded(key, "user_mismatch")
            return None

        if self._is_expired(cached):
            logger.info("Cached draft for %s expired (cached at %s)", key, cached.timestamp.isoformat())
            self._storage.delete(key)
            track_draft_discarded(key, "expired")
            return None

        if not cached.activities:
            return None
        return cached

    def save(self, draft: Draft) -> Optional[CachedDraft]:
        """Persist a non-empty draft. Empty drafts are never written."""
        if not draft.activities:
            return None
        key = _normalize_user_id(draft.user_id)
        cached = CachedDraft(
            activities=[activity.model_copy(deep=True) for activity in draft.activities],
            session_length=draft.session_length,
            timestamp=self._clock(),
            user_id=key,
        )
        self._storage.write(key, cached.model_dump(mode="json", by_alias=True))
        return cached

    def clear(self, user_id: str) -> None:
        self._storage.delete(_normalize_user_id(user_id))

    def _is_expired(self, cached: CachedDraft) -> bool:
        if self._ttl is None:
            return False
        stamp = cached.timestamp
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return self._clock() - stamp > self._ttl


def build_draft_cache(settings: Settings) -> DraftCache:
    storage: DraftStorage
    if settings.draft_storage_mode == "database":
        storage = DatabaseDraftStorage()
    elif settings.draft_storage_mode == "memory":
        storage = MemoryDraftStorage()
    else:
        storage = LocalDraftStorage(Path(settings.draft_cache_path))
    ttl = timedelta(hours=settings.draft_cache_ttl_hours) if settings.draft_cache_ttl_hours > 0 else None
    return DraftCache(storage, ttl=ttl)


__all__ = [
    "DatabaseDraftStorage",
    "DraftCache",
    "DraftStorage",
    "LocalDraftStorage",
    "MemoryDraftStorage",
    "build_draft_cache",
]
