"""Structured logging with JSON format, rotation, and reply correlation.

Provides two formatters:
- JSONFormatter: machine-parseable JSON lines (sorted keys)
- HumanFormatter: clean human-readable output for the CLI

A reply ID lives in thread-local storage so that every validation and
hydration record produced while handling one model reply can be traced
together. Records may also carry ``structured_type`` and ``property``
extras, which both formatters render.
"""

import json
import logging
import logging.handlers
import sys
import threading
import uuid
from pathlib import Path

from . import config

_local = threading.local()

# LogRecord extras rendered by the formatters.
_EXTRA_FIELDS = ("structured_type", "property")


# ---------------------------------------------------------------------------
# Reply correlation (thread-local)
# ---------------------------------------------------------------------------

def set_reply_id(reply_id: str | None = None) -> str:
    """Tag the current thread with a reply ID (generated when omitted)."""
    rid = reply_id or uuid.uuid4().hex[:12]
    _local.reply_id = rid
    return rid


def get_reply_id() -> str | None:
    return getattr(_local, "reply_id", None)


def clear_reply_id() -> None:
    if hasattr(_local, "reply_id"):
        del _local.reply_id


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Fields: timestamp, level, logger, message, plus reply_id,
    structured_type and property when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        reply_id = get_reply_id()
        if reply_id:
            entry["reply_id"] = reply_id
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, sort_keys=True, default=str)


class HumanFormatter(logging.Formatter):
    """Readable single-line format for interactive use."""

    def format(self, record: logging.LogRecord) -> str:
        reply_id = get_reply_id()
        prefix = f"[{reply_id}] " if reply_id else ""
        where = getattr(record, "structured_type", None)
        prop = getattr(record, "property", None)
        if where and prop:
            where = f"{where}.{prop}"
        suffix = f" ({where})" if where else ""
        base = f"{prefix}{record.levelname} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[1]:
            base += "\n" + self.formatException(record.exc_info)
        return base


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def setup_logging(
    *,
    level: int | None = None,
    log_file: Path | str | None = None,
    json_format: bool | None = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> None:
    """Configure root logging.

    Unset arguments fall back to ``config.LOG_LEVEL``, ``config.LOG_FILE``
    and ``config.LOG_JSON``. Files always receive JSON lines.
    """
    if level is None:
        level = config.LOG_LEVEL
    if log_file is None:
        log_file = config.LOG_FILE
    if json_format is None:
        json_format = config.LOG_JSON

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    formatter = JSONFormatter() if json_format else HumanFormatter()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root.addHandler(stderr_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)
