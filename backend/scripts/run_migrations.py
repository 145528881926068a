"""Bring the cached draft schema up to date.

Run before starting the API when ``PIANO_COACH_DRAFT_STORAGE=database``. The
script waits for the database to accept connections, upgrades it with Alembic
and then confirms the draft tables exist. ``--sql`` prints the DDL instead of
touching the database.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

LOGGER = logging.getLogger("piano_coach.migrations")
BACKEND_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = BACKEND_ROOT / "alembic.ini"
DATABASE_URL_ENV = "PIANO_COACH_DATABASE_URL"
REQUIRED_TABLES = ("cached_drafts",)


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or upgrade the cached draft tables.")
    parser.add_argument("--revision", default=os.getenv("PIANO_COACH_DB_MIGRATION_REVISION", "head"))
    parser.add_argument(
        "--timeout",
        type=int,
        default=int(_env_float("PIANO_COACH_DB_MIGRATION_TIMEOUT", 60)),
        help="Seconds to keep retrying the connection.",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=_env_float("PIANO_COACH_DB_MIGRATION_POLL_INTERVAL", 3),
        help="Seconds between connection attempts.",
    )
    parser.add_argument("--config", default=str(DEFAULT_CONFIG), help="Path to alembic.ini.")
    parser.add_argument("--sql", action="store_true", help="Print the migration SQL instead of applying it.")
    parser.add_argument("--skip-verify", action="store_true", help="Skip the post-upgrade table check.")
    return parser.parse_args(argv)


def get_alembic_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    """Prefer an explicit ``sqlalchemy.url``; otherwise read ``PIANO_COACH_DATABASE_URL``."""
    url = config.get_main_option("sqlalchemy.url")
    if url and url != f"%({DATABASE_URL_ENV})s":
        return url
    env_url = os.getenv(DATABASE_URL_ENV)
    if not env_url:
        raise RuntimeError(f"{DATABASE_URL_ENV} must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", env_url)
    return env_url


def _probe(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def wait_for_database(database_url: str, *, timeout: int, poll_interval: float) -> None:
    """Retry ``SELECT 1`` until it succeeds; at least one attempt is always made."""
    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    deadline = time.time() + timeout
    attempts = 0
    try:
        while True:
            attempts += 1
            try:
                _probe(engine)
            except OperationalError as exc:
                LOGGER.warning("Database not ready (attempt %s): %s", attempts, exc)
                if time.time() >= deadline:
                    raise RuntimeError(f"Database did not become ready within {timeout}s.") from exc
                time.sleep(poll_interval)
                continue
            except SQLAlchemyError as exc:
                raise RuntimeError(f"Database rejected the readiness probe: {exc}") from exc
            LOGGER.info("Database reachable after %s attempt(s).", attempts)
            return
    finally:
        engine.dispose()


def missing_tables(database_url: str, required: Sequence[str] = REQUIRED_TABLES) -> list[str]:
    engine = create_engine(database_url, future=True)
    try:
        present = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    return [table for table in required if table not in present]


def run_migrations(
    revision: str,
    *,
    timeout: int,
    poll_interval: float,
    config: Optional[Config] = None,
    verify: bool = True,
    offline: bool = False,
) -> None:
    config = config or get_alembic_config(str(DEFAULT_CONFIG))
    database_url = resolve_database_url(config)

    if offline:
        LOGGER.info("Rendering SQL for %s", revision)
        command.upgrade(config, revision, sql=True)
        return

    wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    LOGGER.info("Upgrading draft storage to %s", revision)
    command.upgrade(config, revision)
    if verify:
        absent = missing_tables(database_url)
        if absent:
            raise RuntimeError(f"Upgrade finished without creating: {', '.join(absent)}")
    LOGGER.info("Draft storage is up to date.")


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("PIANO_COACH_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
            verify=not args.skip_verify,
            offline=args.sql,
        )
    except Exception:  # noqa: BLE001
        LOGGER.exception("Migration run failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
