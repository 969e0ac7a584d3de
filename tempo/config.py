"""Tempo attribution engine configuration."""
import logging
import os
from datetime import timedelta


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Session age window
DEFAULT_SESSION_MAX_AGE_HOURS = 72

# Structured store access ("embedded" uses aiosqlite, "cli" shells out to sqlite3)
SQLITE_BACKEND = os.getenv("TEMPO_SQLITE_BACKEND", "embedded").strip().lower()
SQLITE_CLI_TIMEOUT_SECONDS = _env_int("TEMPO_SQLITE_CLI_TIMEOUT_SECONDS", 10)
GIT_TIMEOUT_SECONDS = _env_int("TEMPO_GIT_TIMEOUT_SECONDS", 15)

# Observability
OTEL_ENABLED = _env_bool("TEMPO_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("TEMPO_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("TEMPO_OTEL_SERVICE_NAME", "tempo-attribution")

# Logging
LOG_LEVEL = os.getenv("TEMPO_LOG_LEVEL", "WARNING")


def session_max_age() -> timedelta:
    """Max age of a session artifact, read from TEMPO_SESSION_MAX_AGE (hours)."""
    hours = _env_int("TEMPO_SESSION_MAX_AGE", DEFAULT_SESSION_MAX_AGE_HOURS)
    if hours <= 0:
        hours = DEFAULT_SESSION_MAX_AGE_HOURS
    return timedelta(hours=hours)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL).upper())
