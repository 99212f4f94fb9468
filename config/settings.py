# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import EmbeddingBackend, Environment, StoreBackend


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_ENABLED: bool = Field(default=False, validation_alias="RATE_LIMIT_ENABLED")
    RATE_LIMIT_TIMES: int = Field(default=60, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(default=10, validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Storage collaborators
    STORE_BACKEND: StoreBackend = Field(
        default=StoreBackend.MEMORY, validation_alias="STORE_BACKEND"
    )
    SUPABASE_URL: str = Field(default="", validation_alias="SUPABASE_URL")
    SUPABASE_SERVICE_KEY: str = Field(default="", validation_alias="SUPABASE_SERVICE_KEY")
    SUPABASE_BUCKET: str = Field(default="resumes", validation_alias="SUPABASE_BUCKET")
    MEMORY_PUBLIC_URL: str = "memory://resumes"
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="HTTP_TIMEOUT_SECONDS"
    )

    # Embedding Engine
    EMBEDDING_BACKEND: EmbeddingBackend = Field(
        default=EmbeddingBackend.LOCAL, validation_alias="EMBEDDING_BACKEND"
    )
    EMBEDDING_MODEL_NAME: str = "sentence-transformers/all-MiniLM-L6-v2"
    OPENAI_API_KEY: str = Field(default="", validation_alias="OPENAI_API_KEY")
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBED_BATCH_SIZE: int = 48

    # Ingestion
    CHUNK_MIN_LEN: int = 130
    CHUNK_MAX_LEN: int = 240
    MAX_TEXT_CHARS: int = 200_000

    # Matching
    MAX_PILLS: int = 20
    MIN_PILL_WEIGHT: float = 0.1
    MAX_PILL_WEIGHT: float = 2.0
    DEFAULT_PILL_WEIGHT: float = 1.0
    MAX_RESULTS_PER_PILL: int = 10
    DEFAULT_WEIGHTED_TOP_K: int = 15
    DEFAULT_DETAILS_RESULTS_PER_PILL: int = 3
    MATCH_CONCURRENCY: int = Field(default=8, validation_alias="MATCH_CONCURRENCY")
    SLOW_QUERY_MS: int = Field(default=2000, validation_alias="SLOW_QUERY_MS")

    # Logging knobs
    LOGGER_NAME: str = "pill-match"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
