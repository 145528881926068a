from __future__ import annotations

import pytest

from app.cache import LocalDraftStorage, MemoryDraftStorage
from app.cache.draft_cache import build_draft_cache
from app.config import Settings, get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PIANO_COACH_GENERATION_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("PIANO_COACH_DRAFT_STORAGE", raising=False)

    settings = Settings()  # type: ignore[call-arg]

    assert settings.default_session_length == 60
    assert settings.generation_timeout_seconds == 30.0
    assert settings.draft_cache_ttl_hours == 72


def test_env_overrides_and_timeout_floor(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIANO_COACH_GENERATION_TIMEOUT_MS", "250")
    monkeypatch.setenv("PIANO_COACH_DRAFT_STORAGE", "memory")
    monkeypatch.setenv("PIANO_COACH_DRAFT_CACHE_TTL_HOURS", "0")

    settings = Settings()  # type: ignore[call-arg]

    assert settings.generation_timeout_seconds == 1.0
    cache = build_draft_cache(settings)
    assert isinstance(cache._storage, MemoryDraftStorage)
    assert cache._ttl is None


def test_local_storage_is_the_default_backend(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.delenv("PIANO_COACH_DRAFT_STORAGE", raising=False)
    monkeypatch.setenv("PIANO_COACH_DRAFT_CACHE_PATH", str(tmp_path / "draft.json"))

    cache = build_draft_cache(Settings())  # type: ignore[call-arg]

    assert isinstance(cache._storage, LocalDraftStorage)


def test_invalid_configuration_raises_runtime_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIANO_COACH_DRAFT_STORAGE", "floppy")
    get_settings.cache_clear()
    try:
        with pytest.raises(RuntimeError, match="Invalid backend configuration"):
            get_settings()
    finally:
        monkeypatch.delenv("PIANO_COACH_DRAFT_STORAGE")
        get_settings.cache_clear()
