"""HTTP client for the remote practice session generation service."""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from .cancellation import CancellationToken
from .config import Settings
from .errors import ActivityValidationError, GenerationCancelledError, RemoteGenerationError
from .practice_models import Activity, ActivityKind

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate session"


class GeneratedActivityPayload(BaseModel):
    """Minimum shape the service must return for every activity."""

    kind: ActivityKind
    title: str = Field(..., min_length=1)
    description: str
    duration: int = Field(..., gt=0)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("duration", mode="before")
    @classmethod
    def _whole_minutes(cls, value: Any) -> Any:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("duration must be a whole number of minutes")
            return int(value)
        return value


class GenerationResponsePayload(BaseModel):
    activities: List[Any]


class SessionGenerator(Protocol):
    async def generate(
        self,
        brief: str,
        session_length: int,
        token: CancellationToken,
    ) -> List[Activity]:  # pragma: no cover - protocol definition
        ...


def parse_activities(raw_activities: List[Any], *, stamp: Optional[int] = None) -> List[Activity]:
    """Validate a remote activity list and assign ``activity-{stamp}-{index}`` ids."""
    if not raw_activities:
        raise ActivityValidationError("Generation service returned no activities.")
    stamp = stamp if stamp is not None else int(time.time() * 1000)
    activities: List[Activity] = []
    for index, entry in enumerate(raw_activities):
        if isinstance(entry, dict) and "kind" not in entry and "type" in entry:
            entry = {**entry, "kind": entry["type"]}
        try:
            payload = GeneratedActivityPayload.model_validate(entry)
        except ValidationError as exc:
            raise ActivityValidationError(f"Activity {index} is malformed: {exc}") from exc
        activities.append(
            Activity(
                id=f"activity-{stamp}-{index}",
                kind=payload.kind,
                title=payload.title,
                description=payload.description,
                duration=payload.duration,
                suggestions=list(payload.suggestions),
            )
        )
    return activities


def _failure_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_FAILURE_MESSAGE
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return GENERIC_FAILURE_MESSAGE


class RemoteGenerationClient:
    """Posts the learner brief to the generation endpoint and parses the activities."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> "RemoteGenerationClient":
        return cls(
            settings.generation_url,
            timeout_seconds=settings.generation_timeout_seconds,
            client=client,
        )

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self._endpoint, json=body, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._endpoint, json=body)

    async def generate(
        self,
        brief: str,
        session_length: int,
        token: CancellationToken,
    ) -> List[Activity]:
        body = {"skillSummary": brief, "sessionLength": session_length}
        started = time.perf_counter()
        try:
            response = await token.race(self._post(body))
        except GenerationCancelledError:
            logger.debug("Session generation request cancelled (length=%s)", session_length)
            raise
        except httpx.HTTPError as exc:
            raise RemoteGenerationError(f"Generation service call failed: {exc}") from exc

        token.raise_if_cancelled()
        if response.status_code != 200:
            raise RemoteGenerationError(_failure_message(response), status_code=response.status_code)

        try:
            payload = GenerationResponsePayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ActivityValidationError(f"Generation service returned an invalid payload: {exc}") from exc

        activities = parse_activities(payload.activities)
        logger.debug(
            "Generation service returned %s activities in %.0f ms",
            len(activities),
            (time.perf_counter() - started) * 1000,
        )
        return activities


__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "GeneratedActivityPayload",
    "RemoteGenerationClient",
    "SessionGenerator",
    "parse_activities",
]
