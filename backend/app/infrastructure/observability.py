"""Structured Logging — JSON and text formatters carrying carnet context fields.

Invariants:
    - Every line has timestamp (record time, UTC), level, logger name and message
    - Carnet context extras (carnet_id, lot_number, row, error_code, store, path,
      success_count, error_count) appear only when the call site passed them
    - setup_logging is idempotent: calling it again replaces its own handler, never stacks

Design Decisions:
    - JSONFormatter on stdlib logging, no extra dependency
    - Text format appends the same extras as key=value, so local runs show the lot or
      carnet a warning refers to
    - SQLAlchemy engine/pool loggers pinned to WARNING: query echo is not wanted in either format
"""

import logging
import json
from datetime import datetime, timezone


EXTRA_FIELDS: tuple[str, ...] = (
    "carnet_id", "lot_number", "row", "error_code", "store", "path",
    "success_count", "error_count",
)

_HANDLER_NAME = "carnets"


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for development, extras appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " [" + " ".join(f"{k}={v}" for k, v in extras.items()) + "]"
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the carnets handler on the root logger."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for noisy in ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
