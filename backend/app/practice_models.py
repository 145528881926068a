"""Domain models shared by the practice session engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Tuple, Union
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ActivityKind = Literal["warmup", "newPiece", "technique", "listening", "repertoire", "exercise"]

ExerciseCategory = Literal[
    "Finger Independence & Strength",
    "Scales",
    "Arpeggios",
    "Chord Work",
    "Rhythm & Coordination",
    "Hand Position & Technique",
    "Speed Development",
    "Sight Reading",
    "Ear Training",
    "Advanced Techniques",
    "Warm-up Exercises",
    "Expression & Musicality",
    "Contemporary Techniques",
    "Memory & Mental Practice",
]

PracticeGoalType = Literal[
    "performance",
    "specificPiece",
    "exam",
    "sightReading",
    "improvisation",
    "earTrainingGoal",
    "technique",
    "general",
    "other",
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model whose JSON form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Activity(CamelModel):
    """One timed practice item within a draft or session."""

    id: str
    kind: ActivityKind = Field(validation_alias=AliasChoices("kind", "type"))
    source_exercise_id: Optional[str] = None
    source_piece_id: Optional[str] = None
    source_goal_id: Optional[str] = None
    title: str
    description: str = ""
    duration: int = Field(..., gt=0)
    suggestions: List[str] = Field(default_factory=list)
    achieved: Optional[bool] = None


class Exercise(CamelModel):
    """Immutable catalog entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    category: ExerciseCategory
    description: str
    default_duration: int = Field(..., gt=0)


class NewPieceGoal(CamelModel):
    type: Literal["newPiece"] = "newPiece"
    id: str
    name: str
    piece_type: Literal["traditional", "leadSheet"] = "traditional"
    sections: Optional[int] = Field(default=None, ge=0)
    current_progress: Optional[str] = None
    challenges: Optional[str] = None


class TechniqueGoal(CamelModel):
    type: Literal["technique"] = "technique"
    id: str
    focus: List[str] = Field(default_factory=list)
    details: Optional[str] = None


class ListeningGoal(CamelModel):
    type: Literal["listening"] = "listening"
    id: str
    skills: List[str] = Field(default_factory=list)
    details: Optional[str] = None


class RepertoireGoal(CamelModel):
    type: Literal["repertoire"] = "repertoire"
    id: str
    pieces: List[str] = Field(default_factory=list)


Goal = Annotated[
    Union[NewPieceGoal, TechniqueGoal, ListeningGoal, RepertoireGoal],
    Field(discriminator="type"),
]


class RepertoirePiece(CamelModel):
    id: str
    name: str
    added_at: Optional[datetime] = None
    last_reviewed: Optional[datetime] = None


class ScaleSkill(CamelModel):
    """Recorded BPM per technique for one key. Zero means not yet recorded."""

    key: str
    scales: int = Field(default=0, ge=0)
    chords: int = Field(default=0, ge=0)
    arpeggios: int = Field(default=0, ge=0)


class EarTrainingSkills(CamelModel):
    intervals: List[str] = Field(default_factory=list)
    chords: List[str] = Field(default_factory=list)


class PracticeGoal(CamelModel):
    """The learner's overall practice objective."""

    title: Optional[str] = None
    goal_type: PracticeGoalType = "general"
    specific_details: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: Literal["active", "completed", "abandoned"] = "active"


class LearnerSnapshot(CamelModel):
    """Read-only view of a learner's goals and skills at generation time."""

    practice_goal: Optional[PracticeGoal] = None
    goals: List[Goal] = Field(default_factory=list)
    repertoire: List[RepertoirePiece] = Field(default_factory=list)
    scale_skills: List[ScaleSkill] = Field(default_factory=list)
    ear_training: Optional[EarTrainingSkills] = None
    default_session_length: Optional[int] = Field(default=None, gt=0)


class Draft(CamelModel):
    """Mutable, uncommitted activity list for one user."""

    user_id: str
    session_length: int = Field(..., gt=0)
    activities: List[Activity] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def total_duration(self) -> int:
        return sum(activity.duration for activity in self.activities)


class Session(CamelModel):
    """Immutable snapshot of a committed draft."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    activities: Tuple[Activity, ...]
    total_duration: int
    created_at: datetime = Field(default_factory=_now)


class CachedDraft(CamelModel):
    """Persisted form of a draft: ``{activities, sessionLength, timestamp, userId}``."""

    activities: List[Activity]
    session_length: int = Field(..., gt=0)
    timestamp: datetime = Field(default_factory=_now)
    user_id: str


__all__ = [
    "Activity",
    "ActivityKind",
    "CachedDraft",
    "Draft",
    "EarTrainingSkills",
    "Exercise",
    "ExerciseCategory",
    "Goal",
    "LearnerSnapshot",
    "ListeningGoal",
    "NewPieceGoal",
    "PracticeGoal",
    "PracticeGoalType",
    "RepertoireGoal",
    "RepertoirePiece",
    "ScaleSkill",
    "Session",
    "TechniqueGoal",
]
