"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./docqa.db"
    auto_create_schema: bool = True

    # UI
    ui_origin: str = "http://localhost:3000"

    # OpenAI (stub clients are used when no key is configured)
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_max_retries: int = 1

    # Offline hashing embedder
    embedding_dimensions: int = 256

    # Chunking (characters)
    chunk_size: int = 500
    chunk_overlap: int = 100

    # Retrieval and prompting
    retrieval_k: int = 3
    history_limit: int | None = None

    # Generation
    generation_max_tokens: int = 2048
    answer_deadline_seconds: float = 60.0

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
