"""
Logging setup for the FFE tracker.

One stderr handler on the root logger; its shape is picked by the
``LOG_FORMAT`` config key:

    json   one object per line, request context as top-level keys
    text   ``14:02:11 INFO    ffe_tracker.services.logic_expansion: ... [room=R-101 req=9f3a]``

Request context (``request_id``, ``room_id``, ``actor``, ...) arrives via
``extra=`` from middleware.timing; service loggers carry none of it.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# extra= keys set by middleware.timing
REQUEST_FIELDS = ("request_id", "method", "path", "status", "duration_ms", "room_id", "actor")

_QUIET_LOGGERS = ("sqlalchemy.engine", "werkzeug")


def request_context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in REQUEST_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(request_context(record))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Single-line format; room and request id are appended as tags."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        ctx = request_context(record)
        tags = [f"{label}={ctx[key]}" for key, label in (("room_id", "room"), ("request_id", "req"))
                if key in ctx]
        return f"{line} [{' '.join(tags)}]" if tags else line


FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def configure_logging(app):
    """Install the root handler from ``LOG_LEVEL`` and ``LOG_FORMAT``.

    Raises:
        ValueError: unknown ``LOG_FORMAT``.
    """
    fmt = str(app.config.get("LOG_FORMAT", "text")).lower()
    if fmt not in FORMATTERS:
        raise ValueError(f"LOG_FORMAT must be one of {sorted(FORMATTERS)}, got {fmt!r}")
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(FORMATTERS[fmt]())

    # replaced, not stacked, when create_app() runs more than once
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)
