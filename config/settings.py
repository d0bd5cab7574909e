"""Application settings and configuration management."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/knowledge.db")
    APP_CONFIG_PATH: str = Field(default="app_config.json")
    EXTRACTION_CONFIG: Optional[str] = None

    MAX_SESSIONS_PER_USER: int = 3
    MIN_ANSWER_CHARS: int = 15

    DEFAULT_QUOTA_TIER: str = "basic"

    EMBEDDINGS_URL: Optional[str] = None
    EMBEDDINGS_TIMEOUT_S: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
