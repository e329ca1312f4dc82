from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "PageGrade"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    PUBLIC_APP_URL: str = "http://localhost:3000"

    # ── Redis / Celery ──────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    CELERY_ACCEPT_CONTENT: str = "json"
    CELERY_TASK_TRACK_STARTED: bool = True
    CELERY_TASK_TIME_LIMIT: int = 300  # 5 minutes max per analysis attempt

    # ── Analysis pipeline ───────────────────────
    ANALYSIS_WORKER_CONCURRENCY: int = 5
    ANALYSIS_MAX_RETRIES: int = 3
    ANALYSIS_RETRY_BACKOFF_SECONDS: int = 1
    ANALYSIS_TTL_SECONDS: int = 60 * 60 * 24  # 24 hours
    ANALYSIS_LOCK_TTL_SECONDS: Optional[int] = None  # derived from retries and time limit when unset

    # ── Fetcher ─────────────────────────────────
    FETCH_TIMEOUT_SECONDS: int = 30
    CHROMEDRIVER_PATH: Optional[str] = None

    # ── Model scorer ────────────────────────────
    OPENROUTER_API_KEY: Optional[str] = None
    MODEL_API_BASE_URL: str = "https://openrouter.ai/api/v1"
    MODEL_SCORER_MODEL: str = "openai/gpt-4o-mini"
    MODEL_SCORER_TIMEOUT_SECONDS: float = 60.0
    MODEL_SCORER_MAX_CHARS: int = 8000

    # ── Progress streaming ──────────────────────
    SSE_STREAM_TIMEOUT_SECONDS: int = 300
    SSE_HEARTBEAT_SECONDS: float = 15.0

    # ── Logging ─────────────────────────────────
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
