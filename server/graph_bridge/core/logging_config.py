"""Central logging configuration and helpers for the bridge."""

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from graph_bridge.core.config import settings


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# uvicorn's own loggers; access lines duplicate request_completed events
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.asgi")
ACCESS_LOGGER = "uvicorn.access"

_configured = False


def resolve_log_level(name: Any = None) -> str:
    """Upper-case level name from MCP_LOG_LEVEL, INFO when unknown."""
    level_name = str(name or settings.MCP_LOG_LEVEL or "INFO").upper()
    if not isinstance(logging.getLevelName(level_name), int):
        return "INFO"
    return level_name


def align_server_loggers(level_name: str) -> None:
    """
    Put uvicorn's loggers on the bridge level.

    The access log stays at WARNING unless the bridge runs at DEBUG, since
    every request is already logged by the request middleware.
    """
    level = logging.getLevelName(level_name)
    for name in SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)
    access_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    logging.getLogger(ACCESS_LOGGER).setLevel(access_level)


def configure_logging() -> None:
    """Configure application logging once per process."""
    global _configured
    if _configured:
        return

    level_name = resolve_log_level()
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.getLevelName(level_name))

    if not root_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)
    else:
        for handler in root_logger.handlers:
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter(LOG_FORMAT))

    log_file = (settings.MCP_LOG_FILE or "").strip()
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=int(settings.MCP_LOG_MAX_BYTES),
            backupCount=int(settings.MCP_LOG_BACKUP_COUNT),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    align_server_loggers(level_name)
    _configured = True


def log_structured(logger: logging.Logger, level: str, event_name: str, **fields: Any) -> None:
    """Emit a structured JSON log line with an event name and context fields."""
    payload = {"event": event_name, **fields}
    log_method = getattr(logger, level.lower(), logger.info)
    log_method(json.dumps(payload, default=str))


def truncate_for_log(value: Any, max_length: int = 600) -> Any:
    """Truncate large values before logging them."""
    if value is None:
        return None
    try:
        text = json.dumps(value, default=str)
    except (TypeError, ValueError):
        text = str(value)
    if len(text) <= max_length:
        return value
    return text[:max_length] + "...[truncated]"
