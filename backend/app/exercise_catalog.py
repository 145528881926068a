"""Static exercise library used for offline generation and manual exercise picks."""

from __future__ import annotations

import time
from typing import Dict, List, Optional, Sequence, Tuple

from .practice_models import Activity, Exercise, ExerciseCategory

EXERCISE_CATEGORIES: Tuple[ExerciseCategory, ...] = (
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
)

EXERCISE_CATALOG: Tuple[Exercise, ...] = (
    Exercise(id="hanon-1", name="Hanon Exercises", category="Finger Independence & Strength", description="Classic finger exercises for building strength and independence", default_duration=10),
    Exercise(id="czerny-1", name="Czerny Studies", category="Finger Independence & Strength", description="Technical studies for developing finger dexterity", default_duration=10),
    Exercise(id="trill-practice", name="Trill Practice", category="Finger Independence & Strength", description="Practice trills between different finger combinations", default_duration=5),
    Exercise(id="finger-crossing", name="Finger Crossing Exercises", category="Finger Independence & Strength", description="Exercises for smooth finger crossings and thumb-under technique", default_duration=5),
    Exercise(id="major-scales", name="Major Scales", category="Scales", description="Practice all major scales in various patterns", default_duration=10),
    Exercise(id="minor-scales", name="Minor Scales (Natural, Harmonic, Melodic)", category="Scales", description="Practice all three forms of minor scales", default_duration=10),
    Exercise(id="chromatic-scales", name="Chromatic Scales", category="Scales", description="Practice chromatic scales for finger coordination", default_duration=5),
    Exercise(id="scale-thirds", name="Scales in Thirds, Sixths, Octaves", category="Scales", description="Practice scales in intervals for advanced technique", default_duration=10),
    Exercise(id="modes", name="Modal Scales", category="Scales", description="Practice Dorian, Phrygian, Lydian, and other modes", default_duration=10),
    Exercise(id="major-arpeggios", name="Major Arpeggios", category="Arpeggios", description="Practice major arpeggios in all keys", default_duration=8),
    Exercise(id="minor-arpeggios", name="Minor Arpeggios", category="Arpeggios", description="Practice minor arpeggios in all keys", default_duration=8),
    Exercise(id="diminished-arpeggios", name="Diminished Arpeggios", category="Arpeggios", description="Practice diminished seventh arpeggios", default_duration=5),
    Exercise(id="dominant-arpeggios", name="Dominant 7th Arpeggios", category="Arpeggios", description="Practice dominant seventh arpeggios", default_duration=8),
    Exercise(id="broken-chords", name="Broken Chord Patterns", category="Arpeggios", description="Practice various broken chord patterns", default_duration=8),
    Exercise(id="chord-progressions", name="Chord Progressions", category="Chord Work", description="Practice common chord progressions (I-IV-V-I, ii-V-I)", default_duration=10),
    Exercise(id="inversions", name="Chord Inversions", category="Chord Work", description="Practice triads and seventh chords in all inversions", default_duration=8),
    Exercise(id="voicings", name="Voicing Practice", category="Chord Work", description="Practice different chord voicings and voicing techniques", default_duration=8),
    Exercise(id="cadences", name="Cadence Practice", category="Chord Work", description="Practice authentic, plagal, and deceptive cadences", default_duration=5),
    Exercise(id="polyrhythms", name="Polyrhythms", category="Rhythm & Coordination", description="Practice 3 against 2, 4 against 3, and other polyrhythms", default_duration=10),
    Exercise(id="hand-independence", name="Hand Independence Exercises", category="Rhythm & Coordination", description="Practice different rhythms in each hand simultaneously", default_duration=10),
    Exercise(id="syncopation", name="Syncopation Practice", category="Rhythm & Coordination", description="Practice syncopated rhythms and off-beat accents", default_duration=8),
    Exercise(id="metronome", name="Metronome Work", category="Rhythm & Coordination", description="Practice with metronome at various tempos and subdivisions", default_duration=10),
    Exercise(id="wrist-rotation", name="Wrist Rotation Exercises", category="Hand Position & Technique", description="Practice proper wrist rotation for fluid playing", default_duration=5),
    Exercise(id="arm-weight", name="Arm Weight Transfer", category="Hand Position & Technique", description="Practice transferring arm weight for better tone", default_duration=5),
    Exercise(id="finger-legato", name="Finger Legato", category="Hand Position & Technique", description="Practice smooth legato technique with finger connection", default_duration=8),
    Exercise(id="staccato", name="Staccato Technique", category="Hand Position & Technique", description="Practice various staccato touches and articulations", default_duration=5),
    Exercise(id="thumb-positioning", name="Thumb Positioning", category="Hand Position & Technique", description="Practice proper thumb placement and movement", default_duration=5),
    Exercise(id="graduated-tempo", name="Graduated Tempo Practice", category="Speed Development", description="Gradually increase tempo from slow to fast", default_duration=10),
    Exercise(id="burst-practice", name="Burst Practice", category="Speed Development", description="Practice short bursts at target tempo", default_duration=8),
    Exercise(id="accent-patterns", name="Accent Patterns", category="Speed Development", description="Practice with varying accent patterns for evenness", default_duration=8),
    Exercise(id="rhythmic-variations", name="Rhythmic Variations", category="Speed Development", description="Practice passages in dotted rhythms and other variations", default_duration=10),
    Exercise(id="sight-reading-easy", name="Easy Sight Reading", category="Sight Reading", description="Practice sight reading simpler pieces", default_duration=10),
    Exercise(id="sight-reading-intervals", name="Interval Recognition", category="Sight Reading", description="Practice reading and playing intervals quickly", default_duration=5),
    Exercise(id="sight-reading-patterns", name="Pattern Recognition", category="Sight Reading", description="Practice identifying and playing common patterns", default_duration=8),
    Exercise(id="sight-reading-clefs", name="Clef Reading", category="Sight Reading", description="Practice reading bass, treble, and other clefs", default_duration=5),
    Exercise(id="interval-training", name="Interval Ear Training", category="Ear Training", description="Practice identifying intervals by ear", default_duration=10),
    Exercise(id="chord-recognition", name="Chord Recognition", category="Ear Training", description="Practice identifying chords and progressions by ear", default_duration=10),
    Exercise(id="melodic-dictation", name="Melodic Dictation", category="Ear Training", description="Practice transcribing melodies by ear", default_duration=10),
    Exercise(id="playing-by-ear", name="Playing by Ear", category="Ear Training", description="Practice playing familiar tunes without sheet music", default_duration=10),
    Exercise(id="octave-technique", name="Octave Technique", category="Advanced Techniques", description="Practice octave passages with proper technique", default_duration=10),
    Exercise(id="double-notes", name="Double Notes", category="Advanced Techniques", description="Practice thirds, sixths, and other double notes", default_duration=10),
    Exercise(id="leaps", name="Large Leaps", category="Advanced Techniques", description="Practice accuracy in large interval leaps", default_duration=8),
    Exercise(id="ornamentation", name="Ornamentation", category="Advanced Techniques", description="Practice trills, mordents, turns, and other ornaments", default_duration=8),
    Exercise(id="tremolo", name="Tremolo", category="Advanced Techniques", description="Practice tremolo technique for sustained sound", default_duration=5),
    Exercise(id="five-finger", name="Five-Finger Patterns", category="Warm-up Exercises", description="Warm up with basic five-finger patterns", default_duration=5),
    Exercise(id="stretches", name="Hand and Finger Stretches", category="Warm-up Exercises", description="Gentle stretches to prepare hands for playing", default_duration=3),
    Exercise(id="block-chords", name="Block Chord Warm-up", category="Warm-up Exercises", description="Play block chords to warm up fingers and arms", default_duration=5),
    Exercise(id="slow-scales", name="Slow Scale Warm-up", category="Warm-up Exercises", description="Play scales slowly to warm up and focus on tone", default_duration=5),
    Exercise(id="dynamics", name="Dynamic Control", category="Expression & Musicality", description="Practice crescendo, diminuendo, and dynamic contrasts", default_duration=10),
    Exercise(id="phrasing", name="Phrasing Practice", category="Expression & Musicality", description="Practice musical phrasing and breathing", default_duration=10),
    Exercise(id="tone-production", name="Tone Production", category="Expression & Musicality", description="Focus on beautiful tone quality and color", default_duration=10),
    Exercise(id="rubato", name="Rubato Practice", category="Expression & Musicality", description="Practice expressive tempo flexibility", default_duration=8),
    Exercise(id="cluster-chords", name="Cluster Chords", category="Contemporary Techniques", description="Practice playing tone clusters", default_duration=5),
    Exercise(id="prepared-piano", name="Prepared Piano Techniques", category="Contemporary Techniques", description="Explore extended piano techniques", default_duration=8),
    Exercise(id="string-damping", name="String Damping", category="Contemporary Techniques", description="Practice muting strings inside the piano", default_duration=5),
    Exercise(id="glissando", name="Glissando", category="Contemporary Techniques", description="Practice white key and black key glissandos", default_duration=5),
    Exercise(id="memorization", name="Memorization Techniques", category="Memory & Mental Practice", description="Practice systematic memorization strategies", default_duration=10),
    Exercise(id="away-from-piano", name="Away-from-Piano Practice", category="Memory & Mental Practice", description="Mental practice without the instrument", default_duration=10),
    Exercise(id="score-analysis", name="Score Analysis", category="Memory & Mental Practice", description="Analyze structure, harmony, and form of pieces", default_duration=10),
    Exercise(id="hands-separate", name="Hands Separate Practice", category="Memory & Mental Practice", description="Practice each hand separately for better understanding", default_duration=10),
)

_BY_ID: Dict[str, Exercise] = {exercise.id: exercise for exercise in EXERCISE_CATALOG}


def get_exercise(exercise_id: str, catalog: Optional[Sequence[Exercise]] = None) -> Exercise:
    """Look up an exercise by id, raising ``LookupError`` when it does not exist."""
    if catalog is None:
        exercise = _BY_ID.get(exercise_id)
    else:
        exercise = next((entry for entry in catalog if entry.id == exercise_id), None)
    if exercise is None:
        raise LookupError(f"Exercise '{exercise_id}' is not in the catalog.")
    return exercise


def exercises_in_category(
    category: ExerciseCategory,
    catalog: Sequence[Exercise] = EXERCISE_CATALOG,
) -> List[Exercise]:
    return [exercise for exercise in catalog if exercise.category == category]


def search_exercises(
    query: str = "",
    *,
    category: Optional[ExerciseCategory] = None,
    catalog: Sequence[Exercise] = EXERCISE_CATALOG,
) -> List[Exercise]:
    """Case-insensitive match on name or description, optionally within one category."""
    needle = query.strip().lower()
    matches: List[Exercise] = []
    for exercise in catalog:
        if category is not None and exercise.category != category:
            continue
        if needle and needle not in exercise.name.lower() and needle not in exercise.description.lower():
            continue
        matches.append(exercise)
    return matches


def activity_from_exercise(exercise: Exercise, index: int = 0, *, stamp: Optional[int] = None) -> Activity:
    """Convert a catalog entry into an exercise activity at its default duration."""
    stamp = stamp if stamp is not None else int(time.time() * 1000)
    return Activity(
        id=f"activity-{stamp}-exercise-{index}",
        kind="exercise",
        source_exercise_id=exercise.id,
        title=exercise.name,
        description=exercise.description,
        duration=exercise.default_duration,
        suggestions=[],
    )


__all__ = [
    "EXERCISE_CATALOG",
    "EXERCISE_CATEGORIES",
    "activity_from_exercise",
    "exercises_in_category",
    "get_exercise",
    "search_exercises",
]
