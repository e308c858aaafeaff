"""Startup configuration validation guardrails."""

import logging

from schemas.settings import (
    LOCKDOWN_MINUTES_MAX,
    LONG_BREAK_MINUTES_MAX,
    SHORT_BREAK_MINUTES_MAX,
    WORK_MINUTES_MAX,
)

logger = logging.getLogger(__name__)


def _require_store(settings) -> None:
    """Fail closed if the record store is not configured."""
    missing = [
        k for k, v in {"MONGO_URL": settings.MONGO_URL, "DB_NAME": settings.DB_NAME}.items()
        if not v or not v.strip()
    ]
    if missing:
        raise RuntimeError(
            f"STARTUP FAILED — missing required env vars: {', '.join(missing)}\n"
            "Set them in .env or container environment and restart the server."
        )


def validate_startup_config(settings) -> None:
    """Centralized startup guardrails for required and warning-level config."""
    _require_store(settings)

    if settings.CLIENT_TIME_TOLERANCE_S <= 0:
        raise RuntimeError(
            "STARTUP FAILED — CLIENT_TIME_TOLERANCE_S must be a positive number of seconds."
        )

    bounds = {
        "DEFAULT_LOCKDOWN_MINUTES": (settings.DEFAULT_LOCKDOWN_MINUTES, LOCKDOWN_MINUTES_MAX),
        "DEFAULT_WORK_MINUTES": (settings.DEFAULT_WORK_MINUTES, WORK_MINUTES_MAX),
        "DEFAULT_SHORT_BREAK_MINUTES": (settings.DEFAULT_SHORT_BREAK_MINUTES, SHORT_BREAK_MINUTES_MAX),
        "DEFAULT_LONG_BREAK_MINUTES": (settings.DEFAULT_LONG_BREAK_MINUTES, LONG_BREAK_MINUTES_MAX),
    }
    out_of_range = [k for k, (value, upper) in bounds.items() if not 1 <= value <= upper]
    if out_of_range:
        raise RuntimeError(
            f"STARTUP FAILED — default durations out of range: {', '.join(out_of_range)}"
        )

    if settings.ENV == "prod" and "*" in settings.CORS_ORIGINS:
        logger.warning("CONFIG WARNING: CORS_ORIGINS is '*' in prod; any origin may call the API")
