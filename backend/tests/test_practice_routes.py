from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.cache import DraftCache, MemoryDraftStorage
from app.cancellation import CancellationToken
from app.errors import RemoteGenerationError
from app.main import app
from app.orchestrator import EngineRegistry, GenerationOrchestrator
from app.practice_models import Activity, LearnerSnapshot
from app.practice_routes import get_registry

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


class _Snapshots:
    def load(self, user_id: str) -> LearnerSnapshot:
        return LearnerSnapshot()


class _Generator:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.lengths: List[int] = []

    async def generate(self, brief: str, session_length: int, token: CancellationToken) -> List[Activity]:
        self.lengths.append(session_length)
        if self.fail:
            raise RemoteGenerationError("Failed to generate session", status_code=503)
        return [
            Activity(id="g-0", kind="warmup", title="Warm Up", duration=5, suggestions=["Hanon #1"]),
            Activity(id="g-1", kind="technique", title="Scales", duration=session_length - 5),
        ]


def _registry(generator: _Generator, **engine_kwargs: object) -> EngineRegistry:
    cache = DraftCache(MemoryDraftStorage())

    def factory(user_id: str) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            user_id,
            generator=generator,
            cache=cache,
            snapshots=_Snapshots(),
            default_session_length=30,
            min_session_length=5,
            max_session_length=240,
            rng=random.Random(5),
            clock=lambda: NOW,
            **engine_kwargs,  # type: ignore[arg-type]
        )

    return EngineRegistry(factory)


@pytest.fixture
def generator() -> _Generator:
    return _Generator()


@pytest.fixture
def client(generator: _Generator) -> Iterator[TestClient]:
    registry = _registry(generator)
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_registry, None)


def test_exercise_listing_filters_by_category_and_query(client: TestClient) -> None:
    response = client.get("/api/practice/exercises", params={"category": "Sight Reading"})
    assert response.status_code == 200
    body = response.json()
    assert len(body) == 4
    assert {entry["category"] for entry in body} == {"Sight Reading"}
    assert "defaultDuration" in body[0]

    response = client.get("/api/practice/exercises", params={"q": "arpeggio"})
    matches = response.json()
    assert matches
    assert all(
        "arpeggio" in entry["name"].lower() or "arpeggio" in entry["description"].lower() for entry in matches
    )

    assert client.get("/api/practice/exercises", params={"category": "Juggling"}).status_code == 422


def test_get_draft_generates_once(client: TestClient, generator: _Generator) -> None:
    response = client.get("/api/practice/learner-1/draft")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["userId"] == "learner-1"
    assert body["sessionLength"] == 30
    assert body["totalDuration"] == 30
    assert body["state"] == "resolved"
    assert [activity["kind"] for activity in body["activities"]] == ["warmup", "technique"]

    client.get("/api/practice/learner-1/draft")
    assert generator.lengths == [30]


def test_get_draft_without_generation(client: TestClient, generator: _Generator) -> None:
    body = client.get("/api/practice/learner-1/draft", params={"generate": "false"}).json()

    assert body["activities"] == []
    assert body["state"] == "idle"
    assert generator.lengths == []


def test_changing_length_regenerates(client: TestClient, generator: _Generator) -> None:
    client.get("/api/practice/learner-1/draft")

    response = client.put("/api/practice/learner-1/draft/length", json={"sessionLength": 45})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["sessionLength"] == 45
    assert body["activities"][1]["duration"] == 40
    assert generator.lengths == [30, 45]


def test_length_outside_bounds_is_rejected(client: TestClient) -> None:
    assert client.put("/api/practice/learner-1/draft/length", json={"sessionLength": 2}).status_code == 422
    assert client.put("/api/practice/learner-1/draft/length", json={"sessionLength": 0}).status_code == 422


def test_activity_edits(client: TestClient) -> None:
    client.get("/api/practice/learner-1/draft")

    added = client.post("/api/practice/learner-1/draft/activities", json={"exerciseId": "hanon-1"})
    assert added.status_code == 201, added.text
    assert added.json()["activities"][-1]["sourceExerciseId"] == "hanon-1"

    replaced = client.put("/api/practice/learner-1/draft/activities/1", json={"exerciseId": "major-scales"})
    assert replaced.json()["activities"][1]["sourceExerciseId"] == "major-scales"

    resized = client.patch("/api/practice/learner-1/draft/activities/1", json={"duration": 25})
    assert resized.json()["activities"][1]["duration"] == 25

    reordered = client.post(
        "/api/practice/learner-1/draft/reorder",
        json={"sourceIndex": 2, "targetIndex": 0, "edge": "top"},
    )
    assert reordered.status_code == 200
    assert reordered.json()["activities"][0]["sourceExerciseId"] == "hanon-1"

    removed = client.delete("/api/practice/learner-1/draft/activities/0")
    assert [activity["kind"] for activity in removed.json()["activities"]] == ["warmup", "exercise"]


def test_edit_errors_map_to_status_codes(client: TestClient) -> None:
    client.get("/api/practice/learner-1/draft")

    assert client.post(
        "/api/practice/learner-1/draft/activities", json={"exerciseId": "kazoo"}
    ).status_code == 404
    assert client.delete("/api/practice/learner-1/draft/activities/9").status_code == 404
    assert client.patch(
        "/api/practice/learner-1/draft/activities/0", json={"duration": 0}
    ).status_code == 422
    assert client.post(
        "/api/practice/learner-1/draft/reorder",
        json={"sourceIndex": 0, "targetIndex": 7, "edge": "after"},
    ).status_code == 404


def test_start_session_returns_frozen_session(client: TestClient) -> None:
    client.get("/api/practice/learner-1/draft")

    response = client.post("/api/practice/learner-1/sessions")

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["userId"] == "learner-1"
    assert body["totalDuration"] == 30
    assert len(body["activities"]) == 2
    assert body["id"]

    draft = client.get("/api/practice/learner-1/draft", params={"generate": "false"}).json()
    assert draft["activities"] == []
    assert client.post("/api/practice/learner-1/sessions").status_code == 409


def test_fallback_exhaustion_is_service_unavailable() -> None:
    registry = _registry(_Generator(fail=True), catalog=[])
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        response = TestClient(app).get("/api/practice/learner-1/draft")
    finally:
        app.dependency_overrides.pop(get_registry, None)

    assert response.status_code == 503
    assert "catalog" in response.json()["detail"]
