"""Error taxonomy for practice session generation."""

from __future__ import annotations

from typing import Optional


class PracticeEngineError(Exception):
    """Base class for errors raised by the practice session engine."""


class RemoteGenerationError(PracticeEngineError):
    """The generation service could not produce a usable activity list."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ActivityValidationError(RemoteGenerationError):
    """The generation service returned a malformed activity."""


class GenerationCancelledError(PracticeEngineError):
    """A newer request superseded this one. Never surfaced to the learner."""


class FallbackExhaustedError(PracticeEngineError):
    """Offline generation could not assemble a session from the exercise catalog."""


class DraftBusyError(PracticeEngineError):
    """The draft cannot be edited or committed in its current state."""


__all__ = [
    "ActivityValidationError",
    "DraftBusyError",
    "FallbackExhaustedError",
    "GenerationCancelledError",
    "PracticeEngineError",
    "RemoteGenerationError",
]
