# FILE: backend/lumendocs/core/config.py
# 1. Handles comma-separated CORS strings (for Docker/Production).
# 2. Resolution poll loop is tuned here, not in the worker.

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Union
from pydantic import field_validator
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- API Setup ---
    PROJECT_NAME: str = "Lumen Documents API"
    API_V1_STR: str = "/api/v1"

    # --- CORS Configuration ---
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            # Handle comma-separated string: "http://localhost,https://myapp.com"
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        return v

    # --- Database & Broker ---
    DATABASE_URI: str = "mongodb://localhost:27017/lumendocs"
    DOCUMENTS_COLLECTION: str = "documents"
    MONGO_TIMEOUT_MS: int = 5000
    REDIS_URL: str = "redis://redis:6379/0"

    # --- Object Storage (S3-compatible) ---
    STORAGE_ENDPOINT_URL: str = "https://storage.googleapis.com"
    STORAGE_ACCESS_KEY_ID: str = ""
    STORAGE_SECRET_ACCESS_KEY: str = ""
    STORAGE_BUCKET_NAME: str = ""
    STORAGE_REGION: str = "auto"
    # Scheme the corpus service understands when importing from the bucket.
    STORAGE_URI_SCHEME: str = "gs"
    STORAGE_TIMEOUT_SECONDS: float = 30.0
    SIGNED_URL_TTL_SECONDS: int = 1800

    # --- Retrieval Corpus (Vertex AI RAG) ---
    CORPUS_PROJECT_ID: str = ""
    CORPUS_LOCATION: str = "us-central1"
    # Empty means the regional endpoint derived from CORPUS_LOCATION.
    CORPUS_API_BASE_URL: str = ""
    CORPUS_ACCESS_TOKEN: str = ""
    CORPUS_TIMEOUT_SECONDS: float = 30.0
    CORPUS_CREATE_TIMEOUT_SECONDS: float = 60.0

    # --- External id resolution ---
    RESOLUTION_DEADLINE_SECONDS: float = 240.0
    RESOLUTION_INITIAL_DELAY_SECONDS: float = 2.0
    RESOLUTION_MAX_DELAY_SECONDS: float = 30.0
    RESOLUTION_BACKOFF_FACTOR: float = 2.0

    # --- Worker & task metrics ---
    # threads/solo run tasks in the process that receives the shutdown signal.
    CELERY_WORKER_POOL: str = "threads"
    CELERY_WORKER_CONCURRENCY: int = 4
    CELERY_QUEUE_NAME: str = "celery"
    METRICS_MIN_SUCCESS_RATE: float = 0.9
    METRICS_MAX_QUEUE_DEPTH: int = 100

    @property
    def corpus_base_url(self) -> str:
        if self.CORPUS_API_BASE_URL:
            return self.CORPUS_API_BASE_URL.rstrip("/")
        return f"https://{self.CORPUS_LOCATION}-aiplatform.googleapis.com/v1"

    @property
    def import_task_time_limit(self) -> int:
        # Leaves headroom over the resolution deadline for rename and final patch.
        return int(self.RESOLUTION_DEADLINE_SECONDS + 2 * self.CORPUS_TIMEOUT_SECONDS + 60)


settings = Settings()
