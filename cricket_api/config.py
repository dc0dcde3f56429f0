# cricket_api/config.py
from __future__ import annotations

import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


# -------------------------
# Store backend
# -------------------------
# "memory" keeps everything in-process (dev/tests), "sqlite" persists to DATABASE_PATH
STORE_BACKEND: str = _get_env("STORE_BACKEND", "memory").lower()
DATABASE_PATH: str = _get_env("DATABASE_PATH", "cricket_scoring.db")
SQLITE_TIMEOUT_SECONDS: float = _get_env_float("SQLITE_TIMEOUT_SECONDS", 5.0)


# -------------------------
# Per-match write serialization
# -------------------------
MATCH_LOCK_TIMEOUT_SECONDS: float = _get_env_float("MATCH_LOCK_TIMEOUT_SECONDS", 10.0)


# -------------------------
# Match defaults (used when a match is created without config)
# -------------------------
DEFAULT_TOTAL_OVERS: int = _get_env_int("DEFAULT_TOTAL_OVERS", 20)
DEFAULT_MAX_OVERS_PER_BOWLER: int = _get_env_int("DEFAULT_MAX_OVERS_PER_BOWLER", 4)


# Cache TTLs
SCORECARD_CACHE_TTL_SECONDS: int = _get_env_int("SCORECARD_CACHE_TTL_SECONDS", 30)


# -------------------------
# Logging
# -------------------------
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO").upper()

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": LOG_LEVEL,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}


def validate_config() -> None:
    if STORE_BACKEND not in {"memory", "sqlite"}:
        raise RuntimeError("STORE_BACKEND must be 'memory' or 'sqlite'")

    if STORE_BACKEND == "sqlite" and not DATABASE_PATH:
        raise RuntimeError("DATABASE_PATH is required when STORE_BACKEND=sqlite")

    if SQLITE_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("SQLITE_TIMEOUT_SECONDS must be positive")

    if MATCH_LOCK_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("MATCH_LOCK_TIMEOUT_SECONDS must be positive")

    if DEFAULT_TOTAL_OVERS <= 0:
        raise RuntimeError("DEFAULT_TOTAL_OVERS must be positive")

    if DEFAULT_MAX_OVERS_PER_BOWLER <= 0 or DEFAULT_MAX_OVERS_PER_BOWLER > DEFAULT_TOTAL_OVERS:
        raise RuntimeError("DEFAULT_MAX_OVERS_PER_BOWLER must be between 1 and DEFAULT_TOTAL_OVERS")

    # TTL validation
    if SCORECARD_CACHE_TTL_SECONDS < 0:
        raise RuntimeError("SCORECARD_CACHE_TTL_SECONDS must not be negative")

    if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"Unknown LOG_LEVEL: {LOG_LEVEL}")
