"""Generation state machine that owns a learner's practice draft."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from threading import RLock
from typing import Callable, Dict, List, Optional, Sequence, Set

from .cache import DraftCache, build_draft_cache
from .cancellation import CancellationToken
from .config import Settings, get_settings
from .errors import DraftBusyError, FallbackExhaustedError, GenerationCancelledError, RemoteGenerationError
from .exercise_catalog import EXERCISE_CATALOG, activity_from_exercise, get_exercise
from .fallback_generator import generate_fallback
from .generation_client import RemoteGenerationClient, SessionGenerator
from .practice_models import Activity, Draft, Exercise, LearnerSnapshot, Session
from .reorder import DropEdge, reorder
from .skill_summary import build_brief
from .snapshots import JsonSnapshotStore, SnapshotSource
from .telemetry import (
    track_draft_restored,
    track_generation_cancelled,
    track_generation_fallback,
    track_session_generated,
    track_session_started,
)

logger = logging.getLogger(__name__)

MIN_ACTIVITY_MINUTES = 1
MAX_ACTIVITY_MINUTES = 120


class GenerationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    FALLBACK_REQUESTING = "fallback_requesting"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


_IN_FLIGHT = {GenerationState.REQUESTING, GenerationState.FALLBACK_REQUESTING}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe_ids(activities: Sequence[Activity]) -> List[Activity]:
    seen: Set[str] = set()
    unique: List[Activity] = []
    for activity in activities:
        candidate = activity.id
        suffix = 1
        while candidate in seen:
            candidate = f"{activity.id}-{suffix}"
            suffix += 1
        seen.add(candidate)
        unique.append(activity if candidate == activity.id else activity.model_copy(update={"id": candidate}))
    return unique


class GenerationOrchestrator:
    """Owns one user's draft and the single generation attempt that may fill it.

    Every invalidation (session-length change, session start) bumps an epoch and
    cancels the current token; a generation result is committed only while its
    epoch is current and its token is live, so superseded results are dropped.
    """

    def __init__(
        self,
        user_id: str,
        *,
        generator: SessionGenerator,
        cache: DraftCache,
        snapshots: SnapshotSource,
        default_session_length: int = 60,
        min_session_length: int = 1,
        max_session_length: Optional[int] = None,
        catalog: Sequence[Exercise] = EXERCISE_CATALOG,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._user_id = user_id
        self._generator = generator
        self._cache = cache
        self._snapshots = snapshots
        self._catalog = catalog
        self._rng = rng or random.Random()
        self._clock = clock
        self._min_length = min_session_length
        self._max_length = max_session_length
        self._draft = Draft(user_id=user_id, session_length=default_session_length)
        self._state = GenerationState.IDLE
        self._epoch = 0
        self._token: Optional[CancellationToken] = None
        self._inflight: Optional[asyncio.Future[Draft]] = None
        self._superseded: Set[asyncio.Future[Draft]] = set()
        self._started = False

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def is_generating(self) -> bool:
        return self._state in _IN_FLIGHT

    @property
    def draft(self) -> Draft:
        return self._draft.model_copy(deep=True)

    def start(self) -> Draft:
        """Seed the draft from the cache, or from the learner's preferred length."""
        if self._started:
            return self.draft
        self._started = True
        cached = self._cache.load(self._user_id)
        if cached is not None:
            self._draft.session_length = cached.session_length
            self._draft.activities = _dedupe_ids(cached.activities)
            self._state = GenerationState.RESOLVED
            track_draft_restored(self._user_id, cached.session_length, len(cached.activities))
            return self.draft
        snapshot = self._load_snapshot()
        if snapshot.default_session_length:
            self._draft.session_length = snapshot.default_session_length
        return self.draft

    async def ensure_generated(self) -> Draft:
        """Fill an empty draft. Concurrent callers share the one in-flight attempt."""
        self.start()
        if self._draft.activities:
            return self.draft
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Generation already in flight for %s; joining it", self._user_id)
            return await asyncio.shield(self._inflight)

        token = CancellationToken()
        self._token = token
        self._state = GenerationState.REQUESTING
        task = asyncio.ensure_future(self._generate(self._epoch, token))
        self._inflight = task
        return await asyncio.shield(task)

    def change_session_length(self, session_length: int) -> Draft:
        """Cancel any in-flight generation and clear the draft for the new length."""
        if session_length < self._min_length:
            raise ValueError(f"Session length must be at least {self._min_length} minutes.")
        if self._max_length is not None and session_length > self._max_length:
            raise ValueError(f"Session length must be at most {self._max_length} minutes.")
        self.start()
        if session_length == self._draft.session_length:
            return self.draft
        self._invalidate("session_length_changed")
        self._draft.session_length = session_length
        self._draft.activities = []
        self._draft.error = None
        self._state = GenerationState.IDLE
        return self.draft

    def start_session(self) -> Session:
        """Freeze the draft into a session and clear the cache."""
        self.start()
        if not self._draft.activities:
            raise DraftBusyError("There are no activities to start a session with.")
        self._invalidate("session_started")
        session = Session(
            user_id=self._user_id,
            activities=tuple(activity.model_copy(deep=True) for activity in self._draft.activities),
            total_duration=self._draft.session_length,
            created_at=self._clock(),
        )
        self._cache.clear(self._user_id)
        track_session_started(self._user_id, session.total_duration, len(session.activities))
        self._draft.activities = []
        self._draft.error = None
        self._state = GenerationState.IDLE
        return session

    def add_exercise(self, exercise_id: str) -> Draft:
        self._require_editable()
        exercise = get_exercise(exercise_id, self._catalog)
        activity = activity_from_exercise(exercise, len(self._draft.activities), stamp=self._stamp())
        self._draft.activities = _dedupe_ids([*self._draft.activities, activity])
        return self._after_edit()

    def replace_activity(self, index: int, exercise_id: str) -> Draft:
        self._require_editable()
        self._check_index(index)
        exercise = get_exercise(exercise_id, self._catalog)
        activities = list(self._draft.activities)
        activities[index] = activity_from_exercise(exercise, len(activities), stamp=self._stamp())
        self._draft.activities = _dedupe_ids(activities)
        return self._after_edit()

    def remove_activity(self, index: int) -> Draft:
        self._require_editable()
        self._check_index(index)
        self._draft.activities = [
            activity for position, activity in enumerate(self._draft.activities) if position != index
        ]
        return self._after_edit()

    def resize_activity(self, index: int, minutes: int) -> Draft:
        self._require_editable()
        self._check_index(index)
        if not MIN_ACTIVITY_MINUTES <= minutes <= MAX_ACTIVITY_MINUTES:
            raise ValueError(
                f"Duration must be between {MIN_ACTIVITY_MINUTES} and {MAX_ACTIVITY_MINUTES} minutes."
            )
        self._draft.activities[index].duration = minutes
        return self._after_edit()

    def reorder_activities(self, source_index: int, target_index: int, edge: DropEdge | str) -> Draft:
        self._require_editable()
        self._draft.activities = reorder(self._draft.activities, source_index, target_index, edge)
        return self._after_edit()

    async def _generate(self, epoch: int, token: CancellationToken) -> Draft:
        session_length = self._draft.session_length
        try:
            snapshot = self._load_snapshot()
            brief = build_brief(snapshot, now=self._clock())
            source = "remote"
            diagnostic: Optional[str] = None
            try:
                activities = await self._generator.generate(brief, session_length, token)
            except GenerationCancelledError:
                logger.info("Generation for %s cancelled (%s)", self._user_id, token.reason)
                return self.draft
            except RemoteGenerationError as exc:
                if not self._is_current(epoch, token):
                    return self.draft
                logger.warning("Remote generation failed for %s, using fallback: %s", self._user_id, exc)
                activities, diagnostic = self._fallback(snapshot, session_length, reason=str(exc))
                source = "fallback"
            except Exception as exc:  # noqa: BLE001
                if not self._is_current(epoch, token):
                    return self.draft
                logger.exception("Unexpected generation failure for %s, using fallback", self._user_id)
                activities, diagnostic = self._fallback(snapshot, session_length, reason=type(exc).__name__)
                source = "fallback"

            if not self._is_current(epoch, token):
                logger.info("Discarding superseded generation result for %s", self._user_id)
                return self.draft

            self._draft.activities = _dedupe_ids(activities)
            self._draft.error = diagnostic
            self._state = GenerationState.RESOLVED
            self._cache.save(self._draft)
            track_session_generated(self._user_id, session_length, len(activities), source)
            return self.draft
        finally:
            if self._inflight is not None and self._inflight is asyncio.current_task():
                self._inflight = None

    def _fallback(self, snapshot: LearnerSnapshot, session_length: int, *, reason: str) -> tuple[List[Activity], Optional[str]]:
        self._state = GenerationState.FALLBACK_REQUESTING
        track_generation_fallback(self._user_id, reason)
        try:
            result = generate_fallback(
                snapshot.goals,
                snapshot.repertoire,
                session_length,
                catalog=self._catalog,
                rng=self._rng,
                now=self._clock(),
            )
        except FallbackExhaustedError as exc:
            logger.error("Fallback generation exhausted for %s: %s", self._user_id, exc)
            self._draft.error = str(exc)
            self._state = GenerationState.IDLE
            raise
        return result.activities, result.diagnostic

    def _invalidate(self, reason: str) -> None:
        self._epoch += 1
        if self._token is not None and not self._token.cancelled:
            self._token.cancel(reason)
        if self._inflight is not None and not self._inflight.done():
            self._state = GenerationState.CANCELLED
            track_generation_cancelled(self._user_id, reason)
            superseded = self._inflight
            self._superseded.add(superseded)
            superseded.add_done_callback(self._superseded.discard)
        self._inflight = None
        self._token = None

    def _is_current(self, epoch: int, token: CancellationToken) -> bool:
        return epoch == self._epoch and not token.cancelled

    def _require_editable(self) -> None:
        self.start()
        if self.is_generating:
            raise DraftBusyError("The session is still being generated.")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._draft.activities):
            raise IndexError(f"No activity at position {index}.")

    def _after_edit(self) -> Draft:
        if self._draft.activities:
            self._cache.save(self._draft)
            self._state = GenerationState.RESOLVED
        else:
            self._cache.clear(self._user_id)
            self._state = GenerationState.IDLE
        return self.draft

    def _load_snapshot(self) -> LearnerSnapshot:
        return self._snapshots.load(self._user_id)

    def _stamp(self) -> int:
        return int(self._clock().timestamp() * 1000)


class EngineRegistry:
    """Holds exactly one orchestrator per user."""

    def __init__(self, factory: Callable[[str], GenerationOrchestrator]) -> None:
        self._factory = factory
        self._engines: Dict[str, GenerationOrchestrator] = {}
        self._lock = RLock()

    def get(self, user_id: str) -> GenerationOrchestrator:
        key = user_id.strip()
        if not key:
            raise ValueError("User id cannot be empty.")
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = self._factory(key)
                engine.start()
                self._engines[key] = engine
            return engine

    def clear(self) -> None:
        with self._lock:
            self._engines.clear()


def build_registry(settings: Optional[Settings] = None) -> EngineRegistry:
    resolved = settings or get_settings()
    generator = RemoteGenerationClient.from_settings(resolved)
    cache = build_draft_cache(resolved)
    snapshots = JsonSnapshotStore(Path(resolved.snapshot_dir))

    def factory(user_id: str) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            user_id,
            generator=generator,
            cache=cache,
            snapshots=snapshots,
            default_session_length=resolved.default_session_length,
            min_session_length=resolved.min_session_length,
            max_session_length=resolved.max_session_length,
        )

    return EngineRegistry(factory)


__all__ = [
    "EngineRegistry",
    "GenerationOrchestrator",
    "GenerationState",
    "build_registry",
]
