import logging
import os
from logging.config import dictConfig
from typing import Any, Dict

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Loggers that trace generation attempts; tuned together with PIANO_COACH_ENGINE_LOG_LEVEL.
ENGINE_LOGGERS = (
    "app.orchestrator",
    "app.generation_client",
    "app.fallback_generator",
    "app.duration_normalizer",
)


def _level(name: str, default: str) -> str:
    value = os.getenv(name, default).upper()
    return value if isinstance(logging.getLevelName(value), int) else default


def configure_logging() -> None:
    """Configure process-wide logging from PIANO_COACH_* environment flags."""
    level = _level("PIANO_COACH_LOG_LEVEL", "INFO")
    engine_level = _level("PIANO_COACH_ENGINE_LOG_LEVEL", level)
    telemetry_level = _level("PIANO_COACH_TELEMETRY_LOG_LEVEL", "INFO")

    loggers: Dict[str, Any] = {name: {"level": engine_level} for name in ENGINE_LOGGERS}
    loggers["piano_coach.telemetry"] = {"level": telemetry_level}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": loggers,
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if os.getenv("PIANO_COACH_DEBUG_HTTP", "0") == "1":
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
