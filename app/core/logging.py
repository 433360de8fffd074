"""Structured logging for the Product Clarity engine.

Log lines are rendered as ``key=value`` pairs. Pipeline context passed through
``extra`` (session id, stage name, duration, analysis generation) is promoted
to top-level keys so a single session can be followed across stages.
"""

import logging
import sys
from typing import Any

# Attributes copied from ``extra`` into the structured line, in this order
CONTEXT_FIELDS = ("session_id", "operation", "duration_ms", "generation", "analyzer_id", "locale")

APP_LOGGER = "app"


class StructuredFormatter(logging.Formatter):
    """key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={v}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from app.core.config import get_settings

        env = get_settings().CLARITY_ENV
    except Exception:
        # Settings unavailable (e.g. invalid env); fall back to INFO
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def configure_logging(level: int | None = None) -> logging.Logger:
    """
    Attach the structured handler to the ``app`` logger tree once.

    Every module logger (``logging.getLogger(__name__)`` under ``app.``)
    propagates to it.

    Args:
        level: Explicit level; derived from CLARITY_ENV when omitted

    Returns:
        The configured ``app`` logger
    """
    root = logging.getLogger(APP_LOGGER)
    if not any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
    root.setLevel(level if level is not None else _level_for_env())
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger with the structured handler configured on its tree."""
    configure_logging()
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with pipeline context fields.

    Known context fields (see CONTEXT_FIELDS) become top-level keys; anything
    else is appended as extra data.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context fields (e.g., session_id, generation)
    """
    extra: dict[str, Any] = {field: kwargs.pop(field) for field in CONTEXT_FIELDS if field in kwargs}
    if kwargs:
        extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)
