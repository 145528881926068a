"""In-process implementation of the session generation endpoint."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, cast

from agents import Agent, ModelSettings, RunConfig, Runner
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from openai.types.shared.reasoning import Reasoning
from openai.types.shared.reasoning_effort import ReasoningEffort

from .config import Settings, get_settings
from .generation_client import GENERIC_FAILURE_MESSAGE, parse_activities

router = APIRouter(prefix="/api", tags=["generation"])
logger = logging.getLogger(__name__)

ACTIVITY_KINDS = ("warmup", "newPiece", "technique", "listening", "repertoire", "exercise")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

_agent_cache: Dict[str, Agent[None]] = {}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def activity_count_range(session_length: int) -> tuple[int, int]:
    return _round_half_up(session_length / 15), _round_half_up(session_length / 6)


def build_prompt(skill_summary: str, session_length: int) -> str:
    low, high = activity_count_range(session_length)
    kinds = ", ".join(f'"{kind}"' for kind in ACTIVITY_KINDS)
    example = json.dumps(
        [
            {
                "title": "Warm Up",
                "description": "Gentle finger exercises and stretches",
                "duration": 5,
                "type": "warmup",
                "suggestions": [
                    "Hanon exercises #1-5",
                    "C major scale, 2 octaves, hands together",
                    "Simple chord progressions (I-IV-V-I)",
                ],
            }
        ],
        indent=2,
    )
    return (
        "You are a piano practice coach creating a personalized practice session. "
        "Based on the user's skill level and goals, generate a practice session.\n\n"
        f"User Profile:\n{skill_summary}\n\n"
        f"Session Length: {session_length} minutes\n\n"
        f"Please generate a practice session with {low}-{high} activities. Each activity should have:\n"
        "- A clear, specific title\n"
        "- A detailed description (be specific if the user has given context about pieces they're "
        "learning, otherwise be more general)\n"
        f"- Duration in minutes (total should equal {session_length})\n"
        f"- Type: one of {kinds}\n"
        "- Suggestions: 2-3 specific practice suggestions for that activity\n\n"
        "IMPORTANT: When including repertoire review activities, prioritize pieces that haven't been "
        "reviewed recently. The repertoire list is already sorted with the pieces most in need of "
        "review first.\n\n"
        f"Respond ONLY with a valid JSON array in this exact format:\n{example}\n\n"
        "Important:\n"
        "- Make activities specific to the user's current pieces when possible\n"
        "- Tailor difficulty to their skill level\n"
        "- Focus on their stated practice focus\n"
        f"- Ensure durations add up to exactly {session_length} minutes\n"
        "- Return ONLY the JSON array, no other text"
    )


def extract_activity_array(text: str) -> List[Any]:
    """Pull the first-to-last bracketed JSON array out of a model reply."""
    match = _JSON_ARRAY.search(text)
    if match is None:
        raise ValueError("Could not parse JSON from model response")
    parsed = json.loads(match.group(0))
    if not isinstance(parsed, list):
        raise ValueError("Model response did not contain a JSON array")
    return parsed


def _effort(value: str) -> ReasoningEffort:
    allowed = {"minimal", "low", "medium", "high"}
    return cast(ReasoningEffort, value if value in allowed else "low")


def get_session_agent(settings: Settings) -> Agent[None]:
    model = settings.agent_model or "gpt-5-mini"
    if model not in _agent_cache:
        _agent_cache[model] = Agent[None](
            name="Piano Practice Session Planner",
            instructions="You plan focused piano practice sessions and answer only with JSON.",
            model=model,
            tools=[],
            model_settings=ModelSettings(store=False),
        )
    return _agent_cache[model]


async def run_session_agent(skill_summary: str, session_length: int, settings: Settings) -> str:
    if not settings.openai_api_key:
        raise RuntimeError("OpenAI API not configured")
    result = await Runner.run(
        get_session_agent(settings),
        build_prompt(skill_summary, session_length),
        context=None,
        run_config=RunConfig(
            model_settings=ModelSettings(
                reasoning=Reasoning(effort=_effort(settings.agent_reasoning), summary="auto"),
            )
        ),
    )
    output = result.final_output
    if output is None:
        raise RuntimeError("No content in model response")
    return output if isinstance(output, str) else json.dumps(output)


def _missing_parameters() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Missing required parameters: skillSummary and sessionLength"},
    )


@router.post("/generate-session")
async def generate_session(request: Request, settings: Settings = Depends(get_settings)) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return _missing_parameters()
    if not isinstance(body, dict):
        return _missing_parameters()

    skill_summary = body.get("skillSummary")
    session_length = body.get("sessionLength")
    if not skill_summary or not isinstance(skill_summary, str):
        return _missing_parameters()
    if isinstance(session_length, bool) or not isinstance(session_length, int) or session_length <= 0:
        return _missing_parameters()

    try:
        reply = await run_session_agent(skill_summary, session_length, settings)
        activities = parse_activities(extract_activity_array(reply))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error generating session (length=%s)", session_length)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERIC_FAILURE_MESSAGE, "message": str(exc)},
        )

    logger.info("Generated %s activities for a %s minute session", len(activities), session_length)
    return JSONResponse(
        content={
            "activities": [
                activity.model_dump(mode="json", by_alias=True, exclude_none=True) for activity in activities
            ]
        }
    )


__all__ = [
    "activity_count_range",
    "build_prompt",
    "extract_activity_array",
    "router",
    "run_session_agent",
]
