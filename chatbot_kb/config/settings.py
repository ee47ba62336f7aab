"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources (in priority order):
#
#   1. **Environment variables** - e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** - key=value lines in the project root .env file
#
# Field `openai_api_key` maps to env var `OPENAI_API_KEY`.  Defaults below
# are used when neither source sets a value.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Knowledge-base ingestion settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding service ===
    # Empty key = "not configured"; factories report the provider unavailable.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_embedding_model: str = ""  # Empty = text-embedding-3-small

    # === Knowledge store ===
    knowledge_db_path: str = "data/knowledge.db"

    # === Extraction ===
    ingest_temp_dir: str = ""  # Empty = system temp dir

    # === Chunking (characters) ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunk_boundary_window: int = 200

    # === Embedding call policy ===
    embedding_batch_size: int = 512
    embedding_timeout_seconds: float = 30.0
    embedding_max_attempts: int = 4
    embedding_backoff_base_seconds: float = 1.0
    embedding_backoff_max_seconds: float = 20.0

    # === Store call policy ===
    storage_timeout_seconds: float = 15.0

    # === Upload handling ===
    max_upload_bytes: int = 10 * 1024 * 1024

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_allowed_origins: str = "*"  # Comma-separated

    @field_validator(
        "chunk_size",
        "embedding_batch_size",
        "embedding_max_attempts",
        "max_upload_bytes",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @model_validator(mode="after")
    def _overlap_below_chunk_size(self) -> "Settings":
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        return self

    def get_cors_origins(self) -> list[str]:
        """Return the configured CORS origins as a list."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
