"""Application configuration using Pydantic BaseSettings."""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def _load_env_file() -> None:
    """Load .env with fallback encodings to avoid Unicode errors."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            load_dotenv(dotenv_path=env_path, encoding=encoding, override=False)
            return
        except UnicodeDecodeError:
            continue
    logger.warning("Failed to decode .env; using process env vars only.")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Product Marketing Analyzer"
    app_version: str = "1.0.0"
    app_env: str = "dev"  # dev, test, prod

    # API settings
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5001",
    ]

    # Logging settings
    log_level: str = "info"
    log_dir: str = "logs"
    log_backup_count: int = 14

    debug: bool = False

    # LLM settings (OpenAI-compatible chat completions endpoint)
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.openai.com/v1/chat/completions"
    llm_model: str = "gpt-4o"
    vision_model: str = "gpt-4o"
    llm_timeout_seconds: float = 60.0

    # Storage settings
    storage_backend: str = "rest"  # rest (Supabase PostgREST + Storage) or sql
    supabase_url: str | None = None
    supabase_key: str | None = None
    storage_bucket: str = "report-images"
    storage_timeout_seconds: float = 30.0

    # SQL backend (local development)
    database_url: str = "sqlite:///./reports.db"
    media_dir: str = "media"
    public_base_url: str = "http://127.0.0.1:8000"

    # Upload limits
    max_upload_bytes: int = 10 * 1024 * 1024

    # Per-client request limit on API routes; 0 disables it
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100

    def missing_required(self) -> list[str]:
        """Return the names of required environment variables that are unset."""
        missing = []
        if not self.llm_api_key:
            missing.append("LLM_API_KEY")
        if self.storage_backend == "rest":
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_key:
                missing.append("SUPABASE_KEY")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# Load .env file on module import
_load_env_file()
