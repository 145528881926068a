from __future__ import annotations

from typing import List

from app.duration_normalizer import normalize_durations
from app.practice_models import Activity
from app.telemetry import TelemetryEvent, clear_listeners, register_listener


def _activities(*durations: int) -> List[Activity]:
    kinds = ["warmup"] + ["exercise"] * (len(durations) - 1)
    return [
        Activity(id=f"a{index}", kind=kind, title=f"Item {index}", duration=duration)
        for index, (kind, duration) in enumerate(zip(kinds, durations))
    ]


def test_scales_everything_after_the_warmup() -> None:
    result = normalize_durations(_activities(5, 10, 10), 35)

    assert [activity.duration for activity in result.activities] == [5, 15, 15]
    assert result.scale_factor == 1.5
    assert result.diagnostic is None


def test_rounding_drift_is_accepted() -> None:
    result = normalize_durations(_activities(5, 10, 10), 30)

    assert result.scale_factor == 1.25
    assert [activity.duration for activity in result.activities] == [5, 13, 13]
    assert result.total_duration == 31


def test_rounds_half_up() -> None:
    # factor 0.5: 5 -> 2.5 -> 3, 3 -> 1.5 -> 2
    result = normalize_durations(_activities(5, 5, 3, 8), 13)

    assert [activity.duration for activity in result.activities] == [5, 3, 2, 4]


def test_shrinking_never_drops_below_one_minute() -> None:
    result = normalize_durations(_activities(5, 1, 40), 10)

    assert all(activity.duration >= 1 for activity in result.activities)
    assert result.activities[1].duration == 1


def test_input_is_left_untouched() -> None:
    original = _activities(5, 10, 10)

    normalize_durations(original, 60)

    assert [activity.duration for activity in original] == [5, 10, 10]


def test_warmup_only_list_is_returned_with_diagnostic() -> None:
    events: List[TelemetryEvent] = []
    clear_listeners()
    register_listener(events.append)

    result = normalize_durations(_activities(5), 45)

    assert [activity.duration for activity in result.activities] == [5]
    assert result.scale_factor is None
    assert result.diagnostic is not None
    assert [event.name for event in events] == ["duration_normalization_skipped"]
    clear_listeners()


def test_empty_list_is_returned_with_diagnostic() -> None:
    result = normalize_durations([], 45)

    assert result.activities == []
    assert result.scale_factor is None
    assert result.diagnostic
