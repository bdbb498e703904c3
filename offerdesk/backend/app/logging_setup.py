from __future__ import annotations

import logging

DEFAULT_LOG_LEVEL_NAME = "INFO"
ALLOWED_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"})
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that are chatty at INFO.
_NOISY = ("httpx", "apscheduler", "uvicorn.access", "aiosqlite")


def normalize_log_level_name(log_level: str | None) -> str:
    normalized = str(log_level or "").strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        return DEFAULT_LOG_LEVEL_NAME
    return normalized


def configure_logging(log_level: str | None = None) -> int:
    """
    Configure root logging once per process and return the effective level.
    Safe to call repeatedly (basicConfig is a no-op when handlers exist).
    """
    level = getattr(logging, normalize_log_level_name(log_level))
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
