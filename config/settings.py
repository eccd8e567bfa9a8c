"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    LOCAL_STATE_DIR: str = Field(default="data/local_sessions")
    APP_CONFIG_PATH: str = Field(default="app_config.json")

    AI_CALL_TIMEOUT_S: float = Field(default=25.0, gt=0.0)
    SESSION_CLEAR_DELAY_S: float = Field(default=5.0, ge=0.0)
    ANSWER_WRITE_ATTEMPTS: int = Field(default=1, ge=1)
    ENFORCE_DEADLINES: bool = True

    FRONTEND_URL: str = "http://localhost:5173"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
