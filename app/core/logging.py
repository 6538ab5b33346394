"""Structured logging configuration for the BevGenie engine.

Lines are space-separated key=value pairs. Values containing whitespace,
quotes or '=' are double-quoted so a line splits back into its fields.
"""

import logging
import sys
from typing import Any

_QUOTE_TRIGGERS = (" ", "\t", "\n", "=", '"')


def format_value(value: Any) -> str:
    if isinstance(value, float):
        value = round(value, 3)
    text = str(value)
    if not text or any(c in text for c in _QUOTE_TRIGGERS):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        session_id = getattr(record, "session_id", None)
        if session_id:
            log_data["session_id"] = session_id

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={format_value(v)}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def resolve_level(env: str, override: str | None = None) -> int:
    """Explicit LOG_LEVEL wins; otherwise dev logs DEBUG and everything else INFO."""
    if override:
        level = logging.getLevelName(override.strip().upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        try:
            from app.core.config import get_settings

            settings = get_settings()
            logger.setLevel(resolve_level(settings.BEVGENIE_ENV, settings.LOG_LEVEL))
        except Exception:
            # Settings unavailable (missing env), default to INFO
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields; session_id gets its own slot
    """
    extra: dict[str, Any] = {}
    if "session_id" in kwargs:
        extra["session_id"] = kwargs.pop("session_id")
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
