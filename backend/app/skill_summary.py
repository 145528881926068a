"""Builds the learner skill brief sent to the session generation service."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .practice_models import (
    EarTrainingSkills,
    LearnerSnapshot,
    PracticeGoal,
    PracticeGoalType,
    RepertoirePiece,
    ScaleSkill,
)
from .skills_data import CHORDS, GOOD_PROGRESS_BPM, INTERVALS, MASTERED_BPM, SCALES, SCALE_SKILL_FIELDS

SECONDS_PER_DAY = 60 * 60 * 24

GOAL_TYPE_LABELS: Dict[PracticeGoalType, str] = {
    "performance": "Performance/Recital",
    "specificPiece": "Learning a Specific Piece",
    "exam": "Exam/Audition",
    "sightReading": "Improve Sight-Reading",
    "improvisation": "Build Improvisation Skills",
    "earTrainingGoal": "Ear Training",
    "technique": "Master Technique",
    "general": "General Practice",
    "other": "Other",
}

CoverageBand = Literal["beginning", "early", "intermediate", "advanced"]

_BAND_LABELS: Dict[CoverageBand, str] = {
    "beginning": "Just beginning scale work",
    "early": "Early stage of technical development",
    "intermediate": "Intermediate technical skills",
    "advanced": "Advanced technical foundation",
}


class RepertoireReview(BaseModel):
    piece_id: str
    name: str
    last_reviewed: Optional[datetime] = None
    days_since_review: Optional[int] = None


class ScaleSkillAnalysis(BaseModel):
    overall: str
    band: Optional[CoverageBand] = None
    coverage_percent: float = 0.0
    details: List[str] = Field(default_factory=list)


class EarTrainingAnalysis(BaseModel):
    intervals: str
    chords: str
    intervals_mastered: int = 0
    intervals_total: int = len(INTERVALS)
    chords_mastered: int = 0
    chords_total: int = len(CHORDS)


class SkillSummary(BaseModel):
    practice_goal: Optional[PracticeGoal] = None
    repertoire: List[RepertoireReview] = Field(default_factory=list)
    scale_skills: ScaleSkillAnalysis
    ear_training: EarTrainingAnalysis


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_since(moment: Optional[datetime], now: datetime) -> Optional[int]:
    if moment is None:
        return None
    elapsed = (_as_utc(now) - _as_utc(moment)).total_seconds()
    return math.floor(elapsed / SECONDS_PER_DAY)


def order_by_review_priority(
    pieces: Iterable[RepertoirePiece],
    now: Optional[datetime] = None,
) -> List[Tuple[RepertoirePiece, Optional[int]]]:
    """Order pieces least-recently-reviewed first; never-reviewed pieces lead the list.

    The sort is stable, so ties keep their input order.
    """
    current = now or datetime.now(timezone.utc)
    annotated = [(piece, days_since(piece.last_reviewed, current)) for piece in pieces]
    return sorted(
        annotated,
        key=lambda item: (0, 0) if item[1] is None else (1, -item[1]),
    )


def coverage_band(coverage_percent: float) -> CoverageBand:
    if coverage_percent < 10:
        return "beginning"
    if coverage_percent < 30:
        return "early"
    if coverage_percent < 60:
        return "intermediate"
    return "advanced"


def analyze_scale_skills(scale_skills: Sequence[ScaleSkill]) -> ScaleSkillAnalysis:
    if not scale_skills:
        return ScaleSkillAnalysis(overall="No scale skills data recorded yet")

    details: List[str] = []
    half_the_keys = len(SCALES) / 2
    for field_name, label in SCALE_SKILL_FIELDS:
        values = [getattr(skill, field_name) for skill in scale_skills if getattr(skill, field_name) > 0]
        if not values:
            continue
        average = round(sum(values) / len(values))
        highest = max(values)
        lowest = min(values)
        mastered = sum(1 for value in values if value >= MASTERED_BPM)
        if mastered > half_the_keys:
            details.append(f"Has mastered {label} for most keys (average {average} BPM)")
        elif average >= GOOD_PROGRESS_BPM:
            details.append(
                f"Working on {label} with good progress (average {average} BPM, range {lowest}-{highest})"
            )
        elif len(values) >= half_the_keys:
            details.append(f"Developing {label} across multiple keys (average {average} BPM)")
        else:
            details.append(f"Beginning work on {label} ({len(values)} keys practiced, {lowest}-{highest} BPM)")

    populated = sum(
        1
        for skill in scale_skills
        for field_name, _ in SCALE_SKILL_FIELDS
        if getattr(skill, field_name) > 0
    )
    max_possible = len(SCALES) * len(SCALE_SKILL_FIELDS)
    coverage = min(100.0, populated / max_possible * 100)
    band = coverage_band(coverage)
    return ScaleSkillAnalysis(
        overall=_BAND_LABELS[band],
        band=band,
        coverage_percent=coverage,
        details=details,
    )


def _mastery_phrase(kind: str, mastered: Sequence[str], reference: Sequence[str]) -> Tuple[str, int]:
    known = [item for item in reference if item in set(mastered)]
    count = len(known)
    total = len(reference)
    if count == 0:
        return f"Just starting {kind} recognition", count
    if count < 4:
        return f"Can identify basic {kind}s ({count}/{total})", count
    if count < 8:
        return f"Developing {kind} recognition ({count}/{total} mastered)", count
    if count < total:
        remaining = [item for item in reference if item not in known][:2]
        return (
            f"Strong {kind} recognition ({count}/{total}), working on advanced {kind}s like "
            f"{' and '.join(remaining)}",
            count,
        )
    label = "chord types" if kind == "chord" else f"{kind}s"
    return f"Mastered all {total} {label}", count


def analyze_ear_training(ear_training: Optional[EarTrainingSkills]) -> EarTrainingAnalysis:
    if ear_training is None:
        return EarTrainingAnalysis(
            intervals="No interval recognition data yet",
            chords="No chord recognition data yet",
        )
    intervals, interval_count = _mastery_phrase("interval", ear_training.intervals, INTERVALS)
    chords, chord_count = _mastery_phrase("chord", ear_training.chords, CHORDS)
    return EarTrainingAnalysis(
        intervals=intervals,
        chords=chords,
        intervals_mastered=interval_count,
        chords_mastered=chord_count,
    )


def build_skill_summary(snapshot: LearnerSnapshot, *, now: Optional[datetime] = None) -> SkillSummary:
    """Summarise a learner snapshot. Pure apart from the wall-clock ``now``."""
    current = now or datetime.now(timezone.utc)
    repertoire = [
        RepertoireReview(
            piece_id=piece.id,
            name=piece.name,
            last_reviewed=piece.last_reviewed,
            days_since_review=days,
        )
        for piece, days in order_by_review_priority(snapshot.repertoire, current)
    ]
    return SkillSummary(
        practice_goal=snapshot.practice_goal,
        repertoire=repertoire,
        scale_skills=analyze_scale_skills(snapshot.scale_skills),
        ear_training=analyze_ear_training(snapshot.ear_training),
    )


def _format_goal(goal: PracticeGoal, now: datetime) -> List[str]:
    start = _as_utc(goal.start_date)
    end = _as_utc(goal.end_date)
    week_seconds = SECONDS_PER_DAY * 7
    total_weeks = math.ceil((end - start).total_seconds() / week_seconds)
    weeks_remaining = max(0, math.ceil((end - _as_utc(now)).total_seconds() / week_seconds))
    lines = ["Current Practice Goal:"]
    if goal.title:
        lines.append(f"  Title: {goal.title}")
    lines.append(f"  Type: {GOAL_TYPE_LABELS[goal.goal_type]}")
    if goal.specific_details:
        lines.append(f"  Details: {goal.specific_details}")
    lines.append(f"  Timeline: {weeks_remaining} of {total_weeks} weeks remaining")
    lines.append(f"  Started: {start.date().isoformat()}")
    lines.append(f"  Target End: {end.date().isoformat()}")
    lines.append("")
    lines.append("IMPORTANT: Weight your practice session recommendations to support this goal.")
    return lines


def format_skill_summary(summary: SkillSummary, *, now: Optional[datetime] = None) -> str:
    """Render the natural-language brief for the generation service."""
    current = now or datetime.now(timezone.utc)
    lines: List[str] = []

    if summary.practice_goal is not None:
        lines.extend(_format_goal(summary.practice_goal, current))
    else:
        lines.append("No specific practice goal set.")
    lines.append("")

    if summary.repertoire:
        lines.append("Repertoire (Learned Pieces):")
        for piece in summary.repertoire:
            if piece.days_since_review is None:
                lines.append(f"- {piece.name} (never reviewed)")
            else:
                lines.append(f"- {piece.name} (last reviewed {piece.days_since_review} days ago)")
        lines.append("")
        lines.append("Note: Prioritize pieces that haven't been reviewed recently to maintain the repertoire.")
        lines.append("")

    lines.append("Technical Skills (Scales):")
    lines.append(summary.scale_skills.overall)
    lines.extend(f"- {detail}" for detail in summary.scale_skills.details)
    lines.append("")

    lines.append("Ear Training:")
    lines.append(f"- Intervals: {summary.ear_training.intervals}")
    lines.append(f"- Chords: {summary.ear_training.chords}")
    return "\n".join(lines) + "\n"


def build_brief(snapshot: LearnerSnapshot, *, now: Optional[datetime] = None) -> str:
    current = now or datetime.now(timezone.utc)
    return format_skill_summary(build_skill_summary(snapshot, now=current), now=current)


__all__ = [
    "EarTrainingAnalysis",
    "RepertoireReview",
    "ScaleSkillAnalysis",
    "SkillSummary",
    "analyze_ear_training",
    "analyze_scale_skills",
    "build_brief",
    "build_skill_summary",
    "coverage_band",
    "days_since",
    "format_skill_summary",
    "order_by_review_priority",
]
