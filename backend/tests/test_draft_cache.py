from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

from sqlalchemy.orm import sessionmaker

from app.cache import DatabaseDraftStorage, DraftCache, LocalDraftStorage, MemoryDraftStorage
from app.db.base import Base
from app.db.session import build_engine
from app.practice_models import Activity, Draft
from app.telemetry import TelemetryEvent, clear_listeners, register_listener


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _draft(user_id: str, length: int = 30) -> Draft:
    return Draft(
        user_id=user_id,
        session_length=length,
        activities=[
            Activity(id="a-0", kind="warmup", title="Warm Up", duration=5),
            Activity(id="a-1", kind="exercise", title="Scales", duration=25, source_exercise_id="major-scales"),
        ],
    )


def _collect() -> List[TelemetryEvent]:
    events: List[TelemetryEvent] = []
    clear_listeners()
    register_listener(events.append)
    return events


def test_cached_draft_is_not_loaded_for_another_user(tmp_path: Path) -> None:
    cache = DraftCache(LocalDraftStorage(tmp_path / "draft.json"))
    cache.save(_draft("u1"))

    assert cache.load("u2") is None
    restored = cache.load("u1")

    assert restored is not None
    assert restored.user_id == "u1"
    assert [activity.id for activity in restored.activities] == ["a-0", "a-1"]


def test_entry_filed_under_the_wrong_user_is_ignored(tmp_path: Path) -> None:
    events = _collect()
    path = tmp_path / "draft.json"
    DraftCache(LocalDraftStorage(path)).save(_draft("u1"))
    entries = json.loads(path.read_text(encoding="utf-8"))
    path.write_text(json.dumps({"u2": entries["u1"]}), encoding="utf-8")

    assert DraftCache(LocalDraftStorage(path)).load("u2") is None
    assert [event.payload["reason"] for event in events if event.name == "draft_discarded"] == ["user_mismatch"]
    clear_listeners()


def test_local_storage_keeps_each_users_draft(tmp_path: Path) -> None:
    path = tmp_path / "draft.json"
    cache = DraftCache(LocalDraftStorage(path))
    cache.save(_draft("u1", 30))
    cache.save(_draft("u2", 45))

    first = cache.load("u1")
    second = cache.load("u2")
    assert first is not None and first.session_length == 30
    assert second is not None and second.session_length == 45

    cache.clear("u2")
    assert cache.load("u2") is None
    assert cache.load("u1") is not None

    cache.clear("u1")
    assert not path.exists()


def test_local_storage_writes_camel_case_payload(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "draft.json"
    DraftCache(LocalDraftStorage(path)).save(_draft("u1", 45))

    payload = json.loads(path.read_text(encoding="utf-8"))["u1"]

    assert set(payload) == {"activities", "sessionLength", "timestamp", "userId"}
    assert payload["sessionLength"] == 45
    assert payload["activities"][1]["sourceExerciseId"] == "major-scales"


def test_empty_drafts_are_never_written() -> None:
    storage = MemoryDraftStorage()
    cache = DraftCache(storage)

    assert cache.save(Draft(user_id="u1", session_length=30)) is None
    assert storage.read("u1") is None


def test_clear_removes_the_entry() -> None:
    cache = DraftCache(MemoryDraftStorage())
    cache.save(_draft("u1"))

    cache.clear("u1")

    assert cache.load("u1") is None


def test_expired_drafts_are_discarded() -> None:
    events = _collect()
    clock = _Clock(datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc))
    storage = MemoryDraftStorage()
    cache = DraftCache(storage, ttl=timedelta(hours=72), clock=clock)
    cache.save(_draft("u1"))

    clock.now += timedelta(hours=71)
    assert cache.load("u1") is not None

    clock.now += timedelta(hours=2)
    assert cache.load("u1") is None
    assert storage.read("u1") is None
    assert events[-1].name == "draft_discarded"
    assert events[-1].payload["reason"] == "expired"
    clear_listeners()


def test_without_ttl_drafts_never_expire() -> None:
    clock = _Clock(datetime(2026, 1, 1, tzinfo=timezone.utc))
    cache = DraftCache(MemoryDraftStorage(), clock=clock)
    cache.save(_draft("u1"))

    clock.now += timedelta(days=365)

    assert cache.load("u1") is not None


def test_corrupt_file_is_discarded_not_raised(tmp_path: Path) -> None:
    path = tmp_path / "draft.json"
    path.write_text("{not json", encoding="utf-8")
    cache = DraftCache(LocalDraftStorage(path))

    assert cache.load("u1") is None
    assert not path.exists()


def test_payload_with_invalid_activity_is_discarded(tmp_path: Path) -> None:
    path = tmp_path / "draft.json"
    cache = DraftCache(LocalDraftStorage(path))
    cache.save(_draft("u2"))
    entries = json.loads(path.read_text(encoding="utf-8"))
    entries["u1"] = {
        "activities": [{"id": "x", "kind": "warmup", "title": "Warm Up", "duration": 0}],
        "sessionLength": 30,
        "timestamp": "2026-10-18T09:00:00+00:00",
        "userId": "u1",
    }
    path.write_text(json.dumps(entries), encoding="utf-8")

    assert cache.load("u1") is None
    assert set(json.loads(path.read_text(encoding="utf-8"))) == {"u2"}
    assert cache.load("u2") is not None


def test_database_storage_keeps_one_row_per_user() -> None:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    cache = DraftCache(DatabaseDraftStorage(factory))
    try:
        cache.save(_draft("u1", 30))
        cache.save(_draft("u1", 60))
        cache.save(_draft("u2", 20))

        first = cache.load("u1")
        second = cache.load("u2")
        assert first is not None and first.session_length == 60
        assert second is not None and second.session_length == 20

        cache.clear("u1")
        assert cache.load("u1") is None
        assert cache.load("u2") is not None
    finally:
        engine.dispose()
