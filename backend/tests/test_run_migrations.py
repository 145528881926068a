from __future__ import annotations

import io
import types
from pathlib import Path

import pytest
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from scripts import run_migrations as runner

BACKEND_ROOT = Path(__file__).resolve().parents[1]


def _config(url: str = "") -> Config:
    config = Config()
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_resolve_database_url_prefers_explicit_option(monkeypatch) -> None:
    monkeypatch.setenv("PIANO_COACH_DATABASE_URL", "sqlite:///ignored.sqlite")
    assert runner.resolve_database_url(_config("sqlite://")) == "sqlite://"


def test_resolve_database_url_falls_back_to_env(monkeypatch) -> None:
    monkeypatch.setenv("PIANO_COACH_DATABASE_URL", "sqlite://")
    config = _config()

    assert runner.resolve_database_url(config) == "sqlite://"
    assert config.get_main_option("sqlalchemy.url") == "sqlite://"


def test_resolve_database_url_requires_configuration(monkeypatch) -> None:
    monkeypatch.delenv("PIANO_COACH_DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        runner.resolve_database_url(_config())


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    runner.wait_for_database(f"sqlite:///{tmp_path / 'ready.sqlite'}", timeout=2, poll_interval=0.1)


def test_wait_for_database_times_out(monkeypatch) -> None:
    class DummyEngine:
        def connect(self) -> types.SimpleNamespace:
            raise runner.OperationalError("SELECT 1", {}, Exception("boom"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: DummyEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", timeout=0, poll_interval=0)


def test_run_migrations_invokes_upgrade(monkeypatch) -> None:
    recorded: dict[str, object] = {}

    def fake_wait(url: str, *, timeout: int, poll_interval: float) -> None:
        recorded["wait"] = (url, timeout, poll_interval)

    def fake_upgrade(cfg, revision: str) -> None:
        recorded["revision"] = revision
        recorded["script_location"] = cfg.get_main_option("script_location")

    monkeypatch.setattr(runner, "wait_for_database", fake_wait)
    monkeypatch.setattr(runner.command, "upgrade", fake_upgrade)

    runner.run_migrations("head", timeout=5, poll_interval=0.1, config=_config("sqlite://"), verify=False)

    assert recorded["revision"] == "head"
    assert recorded["wait"] == ("sqlite://", 5, 0.1)
    assert str(recorded["script_location"]).endswith("alembic")


def test_upgrade_creates_cached_drafts_table(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'drafts.sqlite'}"

    runner.run_migrations("head", timeout=2, poll_interval=0.1, config=_config(url))

    engine = create_engine(url, future=True)
    try:
        inspector = inspect(engine)
        assert "cached_drafts" in inspector.get_table_names()
        indexes = {index["name"]: index for index in inspector.get_indexes("cached_drafts")}
        assert indexes["ix_cached_drafts_user_id"]["unique"]
    finally:
        engine.dispose()
    assert runner.missing_tables(url) == []


def test_offline_mode_renders_sql_without_connecting(monkeypatch) -> None:
    buffer = io.StringIO()
    config = Config(output_buffer=buffer)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", "sqlite://")

    def fail_wait(*_: object, **__: object) -> None:
        raise AssertionError("offline mode must not probe the database")

    monkeypatch.setattr(runner, "wait_for_database", fail_wait)

    runner.run_migrations("head", timeout=0, poll_interval=0, config=config, offline=True)

    sql = buffer.getvalue()
    assert "CREATE TABLE cached_drafts" in sql
    assert "ix_cached_drafts_user_id" in sql


def test_main_reports_failure_exit_code(monkeypatch) -> None:
    monkeypatch.delenv("PIANO_COACH_DATABASE_URL", raising=False)
    config_path = BACKEND_ROOT / "alembic.ini"

    assert runner.main(["--config", str(config_path), "--timeout", "0"]) == 1
