"""Read-only access to learner goal, repertoire, and skill snapshots."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .practice_models import LearnerSnapshot

logger = logging.getLogger(__name__)

_ID_PUNCTUATION = frozenset("-_.")


class SnapshotSource(Protocol):
    def load(self, user_id: str) -> LearnerSnapshot:  # pragma: no cover - protocol definition
        ...


class JsonSnapshotStore:
    """Loads ``<directory>/<user_id>.json`` exported by the goal and skill stores."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def _path(self, user_id: str) -> Path:
        key = user_id.strip()
        if not key or key.startswith(".") or not all(ch.isalnum() or ch in _ID_PUNCTUATION for ch in key):
            raise ValueError(f"Unsupported user id for snapshot lookup: {user_id!r}")
        return self._directory / f"{key}.json"

    def load(self, user_id: str) -> LearnerSnapshot:
        path = self._path(user_id)
        if not path.exists():
            logger.debug("No snapshot on disk for %s; using an empty snapshot", user_id)
            return LearnerSnapshot()
        try:
            with path.open("r", encoding="utf-8") as handle:
                return LearnerSnapshot.model_validate(json.load(handle))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Failed to parse learner snapshot %s: %s", path, exc)
            return LearnerSnapshot()


__all__ = ["JsonSnapshotStore", "SnapshotSource"]
