"""Rescale activity durations so a generated list fits the requested session length."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .practice_models import Activity
from .telemetry import emit_event

logger = logging.getLogger(__name__)

MIN_ACTIVITY_MINUTES = 1


@dataclass(frozen=True)
class NormalizationResult:
    activities: List[Activity]
    scale_factor: Optional[float]
    diagnostic: Optional[str] = None

    @property
    def total_duration(self) -> int:
        return sum(activity.duration for activity in self.activities)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_durations(activities: Sequence[Activity], target_length: int) -> NormalizationResult:
    """Scale every activity after the leading warm-up by
    ``(target - warmup) / (total - warmup)``, rounding half-up to whole minutes.

    Rounding drift against ``target_length`` is accepted. When nothing follows the
    warm-up the factor is undefined, so durations are returned untouched with a
    diagnostic instead.
    """
    copies = [activity.model_copy(deep=True) for activity in activities]
    if not copies:
        return _skipped(copies, target_length, "No activities to normalize.")

    warmup_duration = copies[0].duration
    current_total = sum(activity.duration for activity in copies)
    remaining = current_total - warmup_duration
    if remaining <= 0:
        return _skipped(
            copies,
            target_length,
            "Only the warm-up is present; durations cannot be scaled to the session length.",
        )

    scale_factor = (target_length - warmup_duration) / remaining
    for activity in copies[1:]:
        activity.duration = max(MIN_ACTIVITY_MINUTES, _round_half_up(activity.duration * scale_factor))
    return NormalizationResult(activities=copies, scale_factor=scale_factor)


def _skipped(activities: List[Activity], target_length: int, diagnostic: str) -> NormalizationResult:
    logger.warning("Duration normalization skipped (target=%s): %s", target_length, diagnostic)
    emit_event(
        "duration_normalization_skipped",
        target_length=target_length,
        activity_count=len(activities),
    )
    return NormalizationResult(activities=activities, scale_factor=None, diagnostic=diagnostic)


__all__ = ["NormalizationResult", "normalize_durations"]
