"""REST endpoints for drafting, customizing, and starting practice sessions."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from .config import get_settings
from .errors import DraftBusyError, FallbackExhaustedError
from .exercise_catalog import EXERCISE_CATALOG, search_exercises
from .orchestrator import (
    MAX_ACTIVITY_MINUTES,
    MIN_ACTIVITY_MINUTES,
    EngineRegistry,
    GenerationOrchestrator,
    GenerationState,
    build_registry,
)
from .practice_models import Activity, CamelModel, Draft, Exercise, ExerciseCategory, Session

router = APIRouter(prefix="/api/practice", tags=["practice"])
logger = logging.getLogger(__name__)

_registry: Optional[EngineRegistry] = None


def get_registry() -> EngineRegistry:
    global _registry
    if _registry is None:
        _registry = build_registry(get_settings())
    return _registry


class DraftPayload(CamelModel):
    user_id: str
    session_length: int
    activities: List[Activity]
    total_duration: int
    error: Optional[str] = None
    state: GenerationState


class SessionLengthRequest(CamelModel):
    session_length: int = Field(..., gt=0)


class ExerciseSelectionRequest(CamelModel):
    exercise_id: str = Field(..., min_length=1)


class DurationRequest(CamelModel):
    duration: int = Field(..., ge=MIN_ACTIVITY_MINUTES, le=MAX_ACTIVITY_MINUTES)


class ReorderRequest(CamelModel):
    source_index: int = Field(..., ge=0)
    target_index: int = Field(..., ge=0)
    edge: Literal["before", "after", "top", "bottom"] = "before"


def _draft_payload(draft: Draft, engine: GenerationOrchestrator) -> DraftPayload:
    return DraftPayload(
        user_id=draft.user_id,
        session_length=draft.session_length,
        activities=draft.activities,
        total_duration=draft.total_duration,
        error=draft.error,
        state=engine.state,
    )


@contextmanager
def _engine_errors() -> Iterator[None]:
    try:
        yield
    except (LookupError, IndexError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except DraftBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except FallbackExhaustedError as exc:
        logger.error("Unable to assemble a practice session: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def _engine(user_id: str, registry: EngineRegistry) -> GenerationOrchestrator:
    with _engine_errors():
        return registry.get(user_id)


@router.get("/exercises", response_model=List[Exercise])
def list_exercises(
    category: Optional[ExerciseCategory] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=80),
) -> List[Exercise]:
    return search_exercises(q or "", category=category, catalog=EXERCISE_CATALOG)


@router.get("/{user_id}/draft", response_model=DraftPayload)
async def get_draft(
    user_id: str,
    generate: bool = Query(default=True),
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = await engine.ensure_generated() if generate else engine.draft
    return _draft_payload(draft, engine)


@router.put("/{user_id}/draft/length", response_model=DraftPayload)
async def change_session_length(
    user_id: str,
    payload: SessionLengthRequest,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        engine.change_session_length(payload.session_length)
        draft = await engine.ensure_generated()
    return _draft_payload(draft, engine)


@router.post("/{user_id}/draft/activities", response_model=DraftPayload, status_code=status.HTTP_201_CREATED)
async def add_activity(
    user_id: str,
    payload: ExerciseSelectionRequest,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = engine.add_exercise(payload.exercise_id)
    return _draft_payload(draft, engine)


@router.put("/{user_id}/draft/activities/{index}", response_model=DraftPayload)
async def replace_activity(
    user_id: str,
    index: int,
    payload: ExerciseSelectionRequest,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = engine.replace_activity(index, payload.exercise_id)
    return _draft_payload(draft, engine)


@router.patch("/{user_id}/draft/activities/{index}", response_model=DraftPayload)
async def resize_activity(
    user_id: str,
    index: int,
    payload: DurationRequest,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = engine.resize_activity(index, payload.duration)
    return _draft_payload(draft, engine)


@router.delete("/{user_id}/draft/activities/{index}", response_model=DraftPayload)
async def remove_activity(
    user_id: str,
    index: int,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = engine.remove_activity(index)
    return _draft_payload(draft, engine)


@router.post("/{user_id}/draft/reorder", response_model=DraftPayload)
async def reorder_activities(
    user_id: str,
    payload: ReorderRequest,
    registry: EngineRegistry = Depends(get_registry),
) -> DraftPayload:
    engine = _engine(user_id, registry)
    with _engine_errors():
        draft = engine.reorder_activities(payload.source_index, payload.target_index, payload.edge)
    return _draft_payload(draft, engine)


@router.post("/{user_id}/sessions", response_model=Session, status_code=status.HTTP_201_CREATED)
async def start_session(
    user_id: str,
    registry: EngineRegistry = Depends(get_registry),
) -> Session:
    engine = _engine(user_id, registry)
    with _engine_errors():
        session = engine.start_session()
    logger.info("Started practice session %s for %s", session.id, user_id)
    return session


__all__ = ["router", "get_registry"]
