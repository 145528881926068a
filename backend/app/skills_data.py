"""Reference lists that define the denominators of skill coverage ratios."""

from __future__ import annotations

from typing import Tuple

SCALES: Tuple[str, ...] = (
    "C Major",
    "G Major",
    "D Major",
    "A Major",
    "E Major",
    "B Major",
    "F♯ Major",
    "C♯ Major",
    "F Major",
    "B♭ Major",
    "E♭ Major",
    "A♭ Major",
    "A Minor",
    "E Minor",
    "B Minor",
    "F♯ Minor",
    "C♯ Minor",
    "G♯ Minor",
    "D♯ Minor",
    "A♯ Minor",
    "D Minor",
    "G Minor",
    "C Minor",
    "F Minor",
)

INTERVALS: Tuple[str, ...] = (
    "Minor 2nd",
    "Major 2nd",
    "Minor 3rd",
    "Major 3rd",
    "Perfect 4th",
    "Tritone",
    "Perfect 5th",
    "Minor 6th",
    "Major 6th",
    "Minor 7th",
    "Major 7th",
    "Octave",
)

CHORDS: Tuple[str, ...] = (
    "Major Triad",
    "Minor Triad",
    "Diminished Triad",
    "Augmented Triad",
    "Major 7th",
    "Minor 7th",
    "Dominant 7th",
    "Minor 7th ♭5 (Half-Diminished)",
    "Diminished 7th",
    "Major 6th",
    "Minor 6th",
    "Suspended 2nd",
    "Suspended 4th",
)

# (field on ScaleSkill, label used in the brief)
SCALE_SKILL_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("scales", "scales"),
    ("chords", "chords"),
    ("arpeggios", "arpeggios"),
)

MASTERED_BPM = 120
GOOD_PROGRESS_BPM = 100

__all__ = [
    "CHORDS",
    "GOOD_PROGRESS_BPM",
    "INTERVALS",
    "MASTERED_BPM",
    "SCALES",
    "SCALE_SKILL_FIELDS",
]
