"""Centralized settings module — single source of truth for all config.

Values come from env vars (or backend/.env). Durations are minutes unless the
name says otherwise.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # ── Environment ──────────────────────────────────────────────
    ENV: Literal["dev", "staging", "prod"] = Field(default="dev")

    # ── MongoDB ──────────────────────────────────────────────────
    MONGO_URL: str = Field(default="mongodb://localhost:27017")
    DB_NAME: str = Field(default="monitabits_dev")

    # ── HTTP ─────────────────────────────────────────────────────
    CORS_ORIGINS: str = Field(default="*")  # comma separated

    # ── Anti-tamper ──────────────────────────────────────────────
    CLIENT_TIME_TOLERANCE_S: int = Field(default=300)  # |server - client| > 5 min → reject

    # ── Lockdown state machine ───────────────────────────────────
    # Status a live session moves to once its end_time has passed.
    LOCKDOWN_EXPIRY_STATUS: Literal["active", "completed"] = Field(default="active")
    DEFAULT_LOCKDOWN_MINUTES: int = Field(default=60)

    # ── Pomodoro ─────────────────────────────────────────────────
    DEFAULT_WORK_MINUTES: int = Field(default=25)
    DEFAULT_SHORT_BREAK_MINUTES: int = Field(default=5)
    DEFAULT_LONG_BREAK_MINUTES: int = Field(default=15)

    # ── Observability ────────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")
    LOG_REDACTION_ENABLED: bool = Field(default=True)

    model_config = {
        "env_file": str(_ROOT / ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
