import logging
import os
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .generation_service import router as generation_router
from .logging_config import configure_logging
from .practice_routes import router as practice_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Piano Coach Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(practice_router)
app.include_router(generation_router)

settings_snapshot = get_settings()
logger.info("Backend starting with generation URL: %s", settings_snapshot.generation_url)
logger.info("Draft storage mode: %s", settings_snapshot.draft_storage_mode)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "draft_storage": settings.draft_storage_mode}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Database health probe failed")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "pool": get_pool_snapshot(engine),
        "draft_storage": settings.draft_storage_mode,
    }


def main() -> None:
    import uvicorn

    host = os.getenv("PIANO_COACH_HOST", "0.0.0.0")
    port = int(os.getenv("PIANO_COACH_PORT", "8000"))
    logger.info("Starting practice engine API on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info", timeout_graceful_shutdown=30)


if __name__ == "__main__":
    main()
