"""
Logging setup for the Taskboard app.

One stream handler on the root logger, formatted as:

- JSON lines in production (one object per record, log aggregator friendly)
- colored single lines in development and tests

The level comes from the LOG_LEVEL env var, then ``LOG_LEVEL`` in the
app config, then DEBUG (development / testing) or INFO (production).

Services attach context with ``extra=``; the keys in ``CONTEXT_KEYS``
are picked up by both formatters.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

CONTEXT_KEYS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "user_id",
    "project_id",
    "sprint_id",
    "story_id",
)

# Context keys shown inline by the readable formatter, with their labels.
_INLINE_KEYS = (("project_id", "project"), ("sprint_id", "sprint"), ("story_id", "story"))

_QUIET_LOGGERS = ("werkzeug", "urllib3", "sqlalchemy.engine", "flask_limiter")


def _context(record: logging.LogRecord) -> dict:
    return {key: getattr(record, key) for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; context keys are merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message story=4 [12ms]`` with a colored level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        parts = [f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"]
        for key, label in _INLINE_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                parts.append(f"{label}={value}")
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"[{duration:.0f}ms]")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_level(app, is_prod: bool) -> str:
    return (os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL")
            or ("INFO" if is_prod else "DEBUG")).upper()


def configure_logging(app):
    """Install the root handler for ``app``; safe to call once per app instance."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = _resolve_level(app, is_prod)
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.setLevel(level)

    # Replace, not append: test sessions build several apps.
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if is_prod else "readable")
