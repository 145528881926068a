import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    generation_url: str = Field(
        "http://127.0.0.1:8000/api/generate-session",
        alias="PIANO_COACH_GENERATION_URL",
    )
    generation_timeout_ms: int = Field(30000, alias="PIANO_COACH_GENERATION_TIMEOUT_MS")
    default_session_length: int = Field(60, alias="PIANO_COACH_DEFAULT_SESSION_LENGTH")
    min_session_length: int = Field(5, alias="PIANO_COACH_MIN_SESSION_LENGTH")
    max_session_length: int = Field(240, alias="PIANO_COACH_MAX_SESSION_LENGTH")
    draft_storage_mode: Literal["local", "database", "memory"] = Field(
        "local",
        alias="PIANO_COACH_DRAFT_STORAGE",
    )
    draft_cache_path: str = Field("data/draft_cache.json", alias="PIANO_COACH_DRAFT_CACHE_PATH")
    draft_cache_ttl_hours: int = Field(72, alias="PIANO_COACH_DRAFT_CACHE_TTL_HOURS")
    snapshot_dir: str = Field("data/snapshots", alias="PIANO_COACH_SNAPSHOT_DIR")
    agent_model: str = Field("gpt-5-mini", alias="PIANO_COACH_AGENT_MODEL")
    agent_reasoning: Literal["minimal", "low", "medium", "high"] = Field("low", alias="PIANO_COACH_AGENT_REASONING")
    database_url: Optional[str] = Field(None, alias="PIANO_COACH_DATABASE_URL")
    database_pool_size: int = Field(10, alias="PIANO_COACH_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="PIANO_COACH_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PIANO_COACH_DATABASE_ECHO")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def generation_timeout_seconds(self) -> float:
        return max(self.generation_timeout_ms, 1000) / 1000


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
