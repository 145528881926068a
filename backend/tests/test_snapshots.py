from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.practice_models import NewPieceGoal, TechniqueGoal
from app.snapshots import JsonSnapshotStore


def test_missing_snapshot_is_empty(tmp_path: Path) -> None:
    snapshot = JsonSnapshotStore(tmp_path).load("u1")

    assert snapshot.goals == []
    assert snapshot.repertoire == []
    assert snapshot.practice_goal is None


def test_snapshot_parses_tagged_goals(tmp_path: Path) -> None:
    (tmp_path / "u1.json").write_text(
        json.dumps(
            {
                "goals": [
                    {"type": "newPiece", "id": "g1", "name": "Nocturne", "sections": 2},
                    {"type": "technique", "id": "g2", "focus": ["Scales"]},
                ],
                "repertoire": [{"id": "p1", "name": "Für Elise", "lastReviewed": "2026-10-01T00:00:00Z"}],
                "scaleSkills": [{"key": "C Major", "scales": 90}],
                "defaultSessionLength": 45,
            }
        ),
        encoding="utf-8",
    )

    snapshot = JsonSnapshotStore(tmp_path).load("u1")

    assert isinstance(snapshot.goals[0], NewPieceGoal)
    assert isinstance(snapshot.goals[1], TechniqueGoal)
    assert snapshot.repertoire[0].last_reviewed is not None
    assert snapshot.scale_skills[0].scales == 90
    assert snapshot.default_session_length == 45


def test_invalid_snapshot_falls_back_to_empty(tmp_path: Path) -> None:
    (tmp_path / "u1.json").write_text(json.dumps({"goals": [{"type": "juggling", "id": "x"}]}), encoding="utf-8")

    assert JsonSnapshotStore(tmp_path).load("u1").goals == []


def test_path_traversal_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        JsonSnapshotStore(tmp_path).load("../secrets")


def test_ids_with_unsupported_characters_are_rejected_not_rewritten(tmp_path: Path) -> None:
    (tmp_path / "ab.json").write_text(json.dumps({"goals": [{"type": "technique", "id": "g1", "focus": []}]}), encoding="utf-8")
    store = JsonSnapshotStore(tmp_path)

    assert len(store.load("ab").goals) == 1
    for user_id in ("a/b", "a b", "ab\x00", ".ab"):
        with pytest.raises(ValueError):
            store.load(user_id)
