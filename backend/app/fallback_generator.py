"""Offline session assembly used when the generation service is unavailable."""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .duration_normalizer import NormalizationResult, normalize_durations
from .errors import FallbackExhaustedError
from .exercise_catalog import EXERCISE_CATALOG, activity_from_exercise, exercises_in_category
from .practice_models import (
    Activity,
    Exercise,
    ExerciseCategory,
    Goal,
    ListeningGoal,
    NewPieceGoal,
    RepertoireGoal,
    RepertoirePiece,
    TechniqueGoal,
)
from .skill_summary import order_by_review_priority

logger = logging.getLogger(__name__)

WARMUP_MINUTES = 5
WARMUP_SUGGESTIONS = [
    "Hanon exercises #1-5",
    "C major scale, 2 octaves, hands together",
    "Simple chord progressions (I-IV-V-I)",
]

TARGET_ACTIVITY_COUNT = 4
MAX_REPERTOIRE_PIECES = 2
REPERTOIRE_REVIEW_MINUTES = 15
NEW_PIECE_SECTION_MINUTES = 15
MAX_NEW_PIECE_SECTIONS = 3
TECHNIQUE_MINUTES = 10
LISTENING_MINUTES = 8
REPERTOIRE_GOAL_MINUTES = 10
MAX_FOCUS_AREAS = 2

SECTION_LABELS = ("A", "B", "C", "D", "E", "F")

GENERIC_CATEGORY_PRIORITY: Sequence[ExerciseCategory] = (
    "Scales",
    "Arpeggios",
    "Finger Independence & Strength",
    "Sight Reading",
)

REPERTOIRE_SUGGESTIONS = [
    "Play through once at performance tempo",
    "Focus on previously difficult sections",
    "Practice with expression and dynamics",
    "Record yourself and listen back",
    "Practice performing (imagine an audience)",
]

LISTENING_SUGGESTIONS = [
    "Use musictheory.net trainer",
    "Practice with teoria.com exercises",
    "Play intervals/chords on piano and identify",
    "Use ear training app for 5-10 minutes",
]

TECHNIQUE_SUGGESTIONS: Dict[str, List[str]] = {
    "Scales": [
        "C major scale, all octaves",
        "A minor scale (natural, harmonic, melodic)",
        "Major scales with 1-2 sharps/flats",
        "Scale in contrary motion",
    ],
    "Arpeggios": [
        "Major arpeggios (C, G, F)",
        "Minor arpeggios (A, D, E)",
        "Dominant 7th arpeggios",
        "Broken chords in various inversions",
    ],
    "Sight Reading": [
        "Read new piece at easy level",
        "Practice 5 new short pieces",
        "Sight read hymns or simple songs",
        "Read one hand at a time first",
    ],
    "Hand Independence": [
        "Contrary motion exercises",
        "Different rhythms each hand",
        "Hanon exercises focusing on evenness",
        "Play melody with one hand, chords with other",
    ],
    "Fingering": [
        "Practice problematic passages with marked fingering",
        "Exercises for finger strength (Hanon)",
        "Practice thumb-under technique",
        "Slow practice with perfect fingering",
    ],
    "Dynamics": [
        "Practice crescendo/diminuendo",
        "Contrast forte and piano sections",
        "Control soft playing (pp)",
        "Practice sudden dynamic changes",
    ],
    "Rhythm": [
        "Practice with metronome",
        "Clap complex rhythms",
        "Practice dotted rhythms",
        "Work on syncopation",
    ],
}


def technique_suggestions(focus: str) -> List[str]:
    suggestions = TECHNIQUE_SUGGESTIONS.get(focus)
    if suggestions is not None:
        return list(suggestions)
    return [
        f"Practice {focus} fundamentals",
        f"Work on {focus} technique",
        f"Focus on improving {focus}",
    ]


def warmup_activity(stamp: int) -> Activity:
    return Activity(
        id=f"activity-{stamp}-warmup",
        kind="warmup",
        title="Warm Up",
        description="Finger exercises and stretches",
        duration=WARMUP_MINUTES,
        suggestions=list(WARMUP_SUGGESTIONS),
    )


def _new_piece_activities(goal: NewPieceGoal, stamp: int) -> List[Activity]:
    section_count = min(goal.sections or 1, MAX_NEW_PIECE_SECTIONS)
    activities: List[Activity] = []
    for index in range(section_count):
        section = SECTION_LABELS[index]
        activities.append(
            Activity(
                id=f"activity-{stamp}-{goal.id}-section-{index}",
                kind="newPiece",
                source_goal_id=goal.id,
                title=f"{goal.name} - Section {section}",
                description=f"Work on Section {section}",
                duration=NEW_PIECE_SECTION_MINUTES,
                suggestions=[
                    f"Practice left hand alone in Section {section}",
                    f"Practice right hand alone in Section {section}",
                    f"Hands together slowly in Section {section}",
                    f"Focus on difficult measures in Section {section}",
                    f"Work on tempo transitions in Section {section}",
                    "Practice with metronome, gradually increasing speed",
                ],
            )
        )
    return activities


def _technique_activities(goal: TechniqueGoal, stamp: int) -> List[Activity]:
    return [
        Activity(
            id=f"activity-{stamp}-{goal.id}-{index}",
            kind="technique",
            source_goal_id=goal.id,
            title=focus,
            description=f"Practice {focus.lower()}",
            duration=TECHNIQUE_MINUTES,
            suggestions=technique_suggestions(focus),
        )
        for index, focus in enumerate(goal.focus[:MAX_FOCUS_AREAS])
    ]


def _listening_activities(goal: ListeningGoal, stamp: int) -> List[Activity]:
    return [
        Activity(
            id=f"activity-{stamp}-{goal.id}-{index}",
            kind="listening",
            source_goal_id=goal.id,
            title=skill,
            description=f"Practice {skill.lower()}",
            duration=LISTENING_MINUTES,
            suggestions=list(LISTENING_SUGGESTIONS),
        )
        for index, skill in enumerate(goal.skills[:MAX_FOCUS_AREAS])
    ]


def _repertoire_goal_activities(goal: RepertoireGoal, stamp: int) -> List[Activity]:
    return [
        Activity(
            id=f"activity-{stamp}-{goal.id}-{index}",
            kind="repertoire",
            source_goal_id=goal.id,
            title=piece,
            description=f"Maintain {piece}",
            duration=REPERTOIRE_GOAL_MINUTES,
            suggestions=list(REPERTOIRE_SUGGESTIONS),
        )
        for index, piece in enumerate(goal.pieces[:MAX_REPERTOIRE_PIECES])
    ]


def activities_for_goal(goal: Goal, stamp: int) -> List[Activity]:
    if isinstance(goal, NewPieceGoal):
        return _new_piece_activities(goal, stamp)
    if isinstance(goal, TechniqueGoal):
        return _technique_activities(goal, stamp)
    if isinstance(goal, ListeningGoal):
        return _listening_activities(goal, stamp)
    if isinstance(goal, RepertoireGoal):
        return _repertoire_goal_activities(goal, stamp)
    raise TypeError(f"Unsupported goal type: {type(goal).__name__}")


def _activities_without_goals(
    repertoire: Sequence[RepertoirePiece],
    catalog: Sequence[Exercise],
    rng: random.Random,
    stamp: int,
    now: Optional[datetime],
) -> List[Activity]:
    activities: List[Activity] = []
    prioritized = order_by_review_priority(repertoire, now)[:MAX_REPERTOIRE_PIECES]
    for index, (piece, _) in enumerate(prioritized):
        activities.append(
            Activity(
                id=f"activity-{stamp}-repertoire-{index}",
                kind="repertoire",
                source_piece_id=piece.id,
                title=piece.name,
                description=f"Review {piece.name}",
                duration=REPERTOIRE_REVIEW_MINUTES,
                suggestions=list(REPERTOIRE_SUGGESTIONS),
            )
        )

    exercise_index = 0
    for category in GENERIC_CATEGORY_PRIORITY:
        if len(activities) >= TARGET_ACTIVITY_COUNT:
            break
        candidates = exercises_in_category(category, catalog)
        if not candidates:
            continue
        activities.append(activity_from_exercise(rng.choice(candidates), exercise_index, stamp=stamp))
        exercise_index += 1
    return activities


def assemble_fallback(
    goals: Sequence[Goal],
    repertoire: Sequence[RepertoirePiece],
    *,
    catalog: Sequence[Exercise] = EXERCISE_CATALOG,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[Activity]:
    """Build the un-normalized activity list: warm-up first, then goal or generic work."""
    if not catalog:
        raise FallbackExhaustedError("The exercise catalog is empty; no fallback session can be assembled.")
    stamp = int(time.time() * 1000)
    activities = [warmup_activity(stamp)]
    if goals:
        for goal in goals:
            activities.extend(activities_for_goal(goal, stamp))
    else:
        activities.extend(_activities_without_goals(repertoire, catalog, rng or random.Random(), stamp, now))
    return activities


def generate_fallback(
    goals: Sequence[Goal],
    repertoire: Sequence[RepertoirePiece],
    session_length: int,
    *,
    catalog: Sequence[Exercise] = EXERCISE_CATALOG,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> NormalizationResult:
    """Assemble an offline session and rescale it to ``session_length`` minutes."""
    activities = assemble_fallback(goals, repertoire, catalog=catalog, rng=rng, now=now)
    logger.info(
        "Assembled fallback session with %s activities for %s goals",
        len(activities),
        len(goals),
    )
    return normalize_durations(activities, session_length)


__all__ = [
    "GENERIC_CATEGORY_PRIORITY",
    "TECHNIQUE_SUGGESTIONS",
    "WARMUP_MINUTES",
    "activities_for_goal",
    "assemble_fallback",
    "generate_fallback",
    "technique_suggestions",
    "warmup_activity",
]
